from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from backend.core.validators import prescription_upload_path


class PatientContact(models.Model):
    """Contact details captured from public request forms"""
    patient_name = models.CharField(max_length=255, blank=True)
    patient_email = models.EmailField(blank=True)
    patient_phone = models.CharField(max_length=50, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)

    class Meta:
        abstract = True


class Prescription(PatientContact):
    REQUEST_TYPE_CHOICES = [
        ('standard', 'Standard'),
        ('refill', 'Refill'),
        ('transfer', 'Transfer'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('completed', 'Completed'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='prescriptions')
    request_type = models.CharField(max_length=20, choices=REQUEST_TYPE_CHOICES, default='standard')
    medication = models.CharField(max_length=255)
    dosage = models.CharField(max_length=255, blank=True)
    instructions = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    pharmacy_name = models.CharField(max_length=255, blank=True)
    pharmacy_phone = models.CharField(max_length=50, blank=True)
    file = models.FileField(upload_to=prescription_upload_path, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'prescriptions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_prescription_status'),
            models.Index(fields=['request_type'], name='idx_prescription_type'),
        ]

    def __str__(self):
        return f"{self.medication} ({self.get_request_type_display()})"


class RefillRequest(PatientContact):
    URGENCY_CHOICES = [
        ('normal', 'Normal'),
        ('urgent', 'Urgent'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('completed', 'Completed'),
        ('rejected', 'Rejected'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='refill_requests')
    prescription = models.ForeignKey(Prescription, on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='refill_requests')
    medication = models.CharField(max_length=255)
    dosage = models.CharField(max_length=255)
    prescription_number = models.CharField(max_length=100, blank=True)
    quantity = models.PositiveIntegerField(default=30, validators=[MinValueValidator(1)])
    urgency = models.CharField(max_length=20, choices=URGENCY_CHOICES, default='normal')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    notes = models.TextField(blank=True)
    admin_notes = models.TextField(blank=True)
    notified = models.BooleanField(default=False)
    requested_date = models.DateTimeField(auto_now_add=True)
    completed_date = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'refill_requests'
        ordering = ['-requested_date']
        indexes = [
            models.Index(fields=['status'], name='idx_refill_status'),
            models.Index(fields=['urgency'], name='idx_refill_urgency'),
        ]

    def __str__(self):
        return f"Refill {self.medication} ({self.status})"


class TransferRequest(PatientContact):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
        ('rejected', 'Rejected'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='transfer_requests')
    current_pharmacy = models.CharField(max_length=255)
    current_pharmacy_phone = models.CharField(max_length=50, blank=True)
    to_pharmacy = models.CharField(max_length=255, blank=True)
    medications = models.JSONField(default=list)
    prescription_number = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    notes = models.TextField(blank=True)
    admin_notes = models.TextField(blank=True)
    notified = models.BooleanField(default=False)
    requested_date = models.DateTimeField(auto_now_add=True)
    completed_date = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'transfer_requests'
        ordering = ['-requested_date']
        indexes = [
            models.Index(fields=['status'], name='idx_transfer_status'),
        ]

    def __str__(self):
        return f"Transfer from {self.current_pharmacy} ({self.status})"
