from django.conf import settings
from django.db import models


class Subscription(models.Model):
    """Recurring payment held with the payment provider"""
    ACTIVE_STATUSES = ('active', 'trialing', 'past_due')

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='subscriptions')
    provider_customer_id = models.CharField(max_length=255)
    provider_subscription_id = models.CharField(max_length=255, unique=True)
    price_id = models.CharField(max_length=255)
    status = models.CharField(max_length=50, default='incomplete')
    current_period_end = models.DateTimeField(null=True, blank=True)
    cancel_at_period_end = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'subscriptions'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.provider_subscription_id} ({self.status})"

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES
