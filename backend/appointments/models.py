from django.conf import settings
from django.db import models


class Appointment(models.Model):
    STATUS_PENDING = 'PENDING'
    STATUS_CONFIRMED = 'CONFIRMED'
    STATUS_CANCELLED = 'CANCELLED'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_COMPLETED, 'Completed'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='appointments')
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField()
    phone = models.CharField(max_length=50)
    service = models.CharField(max_length=255)
    preferred_date = models.DateField()
    preferred_time = models.CharField(max_length=50)
    reason = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'appointments'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_appointment_status'),
            models.Index(fields=['preferred_date'], name='idx_appointment_date'),
        ]

    def __str__(self):
        return f"{self.full_name} - {self.service} on {self.preferred_date}"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()
