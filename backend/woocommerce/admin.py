from django.contrib import admin
from .models import WooCommerceSettings


@admin.register(WooCommerceSettings)
class WooCommerceSettingsAdmin(admin.ModelAdmin):
    list_display = ['store_url', 'enabled', 'sync_status', 'last_sync']
    exclude = ['consumer_key', 'consumer_secret', 'webhook_secret']
