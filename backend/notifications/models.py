from django.db import models
from django.conf import settings


class Notification(models.Model):
    """Dashboard / user notification; user=None means it is for admins"""
    TYPE_CHOICES = [
        ('order', 'Order'),
        ('appointment', 'Appointment'),
        ('prescription', 'Prescription'),
        ('refill', 'Refill Request'),
        ('transfer', 'Transfer Request'),
        ('contact', 'Contact Form'),
        ('inventory', 'Inventory'),
        ('review', 'Review'),
        ('payment', 'Payment'),
        ('system', 'System'),
    ]

    type = models.CharField(max_length=50, choices=TYPE_CHOICES, default='system')
    title = models.CharField(max_length=255)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True,
                             related_name='notifications')
    admin_only = models.BooleanField(default=False)
    read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'read'], name='idx_notification_user_read'),
            models.Index(fields=['type'], name='idx_notification_type'),
            models.Index(fields=['-created_at'], name='idx_notification_created'),
        ]

    def __str__(self):
        return f"{self.type}: {self.title}"
