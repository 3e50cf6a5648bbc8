from django.db import models

from backend.core.models import IntegrationSettings


class WooCommerceSettings(IntegrationSettings):
    SECRET_FIELDS = ('consumer_key', 'consumer_secret', 'webhook_secret')

    store_url = models.URLField(blank=True)
    consumer_key = models.CharField(max_length=255, blank=True)
    consumer_secret = models.CharField(max_length=255, blank=True)

    class Meta:
        db_table = 'woocommerce_settings'
        verbose_name_plural = 'WooCommerce settings'

    def __str__(self):
        return self.store_url or 'WooCommerce (not configured)'
