from django.conf import settings

from backend.core.integrations import RestClient
from .models import WooCommerceSettings


class WooCommerceClient(RestClient):
    api_path = 'wp-json/wc/v3'
    name = 'WooCommerce'

    @classmethod
    def from_settings(cls, wc_settings=None):
        """Credentials from the settings row, falling back to WOOCOMMERCE_* settings per field"""
        wc_settings = wc_settings or WooCommerceSettings.load()
        return cls(
            wc_settings.store_url or settings.WOOCOMMERCE_STORE_URL,
            wc_settings.consumer_key or settings.WOOCOMMERCE_CONSUMER_KEY,
            wc_settings.consumer_secret or settings.WOOCOMMERCE_CONSUMER_SECRET,
        )

    def store_info(self):
        data = self.get('system_status') or {}
        environment = data.get('environment') or {}
        store_settings = data.get('settings') or {}
        return {
            'url': environment.get('site_url') or self.base_url,
            'version': environment.get('version', ''),
            'currency': store_settings.get('currency', ''),
        }

    def products(self):
        return self.paginate('products', {'status': 'any'})

    def create_order(self, payload):
        return self.post('orders', payload)

    def get_order(self, order_id):
        return self.get(f'orders/{order_id}')

    def update_order_status(self, order_id, status):
        return self.put(f'orders/{order_id}', {'status': status})

    def enabled_payment_gateways(self):
        return [gateway for gateway in (self.get('payment_gateways') or []) if gateway.get('enabled')]


def webhook_secret(wc_settings=None):
    wc_settings = wc_settings or WooCommerceSettings.load()
    return wc_settings.webhook_secret or settings.WOOCOMMERCE_WEBHOOK_SECRET
