from django.contrib import admin
from .models import Subscription


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ['provider_subscription_id', 'user', 'price_id', 'status', 'current_period_end',
                    'cancel_at_period_end']
    list_filter = ['status', 'cancel_at_period_end']
    search_fields = ['provider_subscription_id', 'provider_customer_id', 'user__email']
