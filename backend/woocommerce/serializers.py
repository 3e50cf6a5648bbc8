from decimal import Decimal

from rest_framework import serializers

from backend.core.integrations import IntegrationSettingsSerializer
from backend.orders.serializers import OrderItemInputSerializer
from .models import WooCommerceSettings


class WooCommerceSettingsSerializer(IntegrationSettingsSerializer):
    class Meta:
        model = WooCommerceSettings
        fields = ['enabled', 'store_url', 'consumer_key', 'consumer_secret', 'webhook_secret',
                  'sync_status', 'last_sync', 'last_error', 'updated_at']
        read_only_fields = ['sync_status', 'last_sync', 'last_error', 'updated_at']


class AddressSerializer(serializers.Serializer):
    address1 = serializers.CharField(max_length=255)
    address2 = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100)
    postcode = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=2, default='US')


class CheckoutCustomerSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    address = AddressSerializer()


class WooCommerceOrderSerializer(serializers.Serializer):
    items = OrderItemInputSerializer(many=True, allow_empty=False)
    customer_info = CheckoutCustomerSerializer()
    payment_method = serializers.ChoiceField(choices=['woocommerce', 'paypal'], default='woocommerce')
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_items(self, items):
        for item in items:
            if item['price'] <= 0:
                raise serializers.ValidationError('Item prices must be positive.')
        return items
