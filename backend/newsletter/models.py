from django.db import models


class NewsletterSubscription(models.Model):
    """Mailing list entry; unsubscribing keeps the row inactive"""
    email = models.EmailField(unique=True)
    source = models.CharField(max_length=100, default='website')
    marketing_consent = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'newsletter_subscriptions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active'], name='idx_newsletter_active'),
        ]

    def __str__(self):
        return f"{self.email} ({'active' if self.is_active else 'unsubscribed'})"
