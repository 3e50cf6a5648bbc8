from decimal import Decimal

from rest_framework import serializers
from .models import Subscription


class PaymentIntentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    currency = serializers.CharField(max_length=3, default='usd')
    order_id = serializers.IntegerField(required=False, allow_null=True)

    def validate_currency(self, value):
        return value.lower()


class CreateSubscriptionSerializer(serializers.Serializer):
    price_id = serializers.CharField(max_length=255)


class CancelSubscriptionSerializer(serializers.Serializer):
    subscription_id = serializers.CharField(max_length=255)


class SubscriptionSerializer(serializers.ModelSerializer):
    is_active = serializers.ReadOnlyField()

    class Meta:
        model = Subscription
        fields = ['id', 'provider_subscription_id', 'price_id', 'status', 'is_active',
                  'current_period_end', 'cancel_at_period_end', 'created_at', 'updated_at']
        read_only_fields = fields
