from django.apps import AppConfig


class WoocommerceConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backend.woocommerce'
