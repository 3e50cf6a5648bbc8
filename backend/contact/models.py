from django.db import models


class ContactForm(models.Model):
    STATUS_CHOICES = [
        ('new', 'New'),
        ('read', 'Read'),
        ('responded', 'Responded'),
    ]

    name = models.CharField(max_length=255)
    email = models.EmailField()
    phone = models.CharField(max_length=50, blank=True)
    subject = models.CharField(max_length=255, blank=True)
    message = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='new')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'contact_forms'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_contact_status'),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}>: {self.subject or 'No subject'}"
