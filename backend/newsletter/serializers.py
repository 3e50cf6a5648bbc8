from rest_framework import serializers
from .models import NewsletterSubscription


class NewsletterSubscriptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = NewsletterSubscription
        fields = ['id', 'email', 'source', 'marketing_consent', 'is_active', 'created_at', 'updated_at']
        read_only_fields = fields


class SubscribeSerializer(serializers.Serializer):
    email = serializers.EmailField()
    source = serializers.CharField(max_length=100, required=False, default='website')
    consent = serializers.BooleanField(required=False, default=True)

    def validate_email(self, value):
        return value.strip().lower()


class UnsubscribeSerializer(serializers.Serializer):
    email = serializers.EmailField()

    def validate_email(self, value):
        return value.strip().lower()
