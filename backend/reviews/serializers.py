from rest_framework import serializers
from .models import Review


class ReviewSerializer(serializers.ModelSerializer):
    """Public review; the reviewer's email is write-only"""
    product_name = serializers.CharField(source='product.name', read_only=True)

    class Meta:
        model = Review
        fields = ['id', 'product', 'product_name', 'rating', 'title', 'comment', 'customer_name',
                  'customer_email', 'verified', 'status', 'created_at']
        read_only_fields = ['verified', 'status', 'created_at']
        extra_kwargs = {
            'customer_email': {'write_only': True},
            'title': {'min_length': 5},
            'comment': {'min_length': 10},
            'customer_name': {'min_length': 2},
        }
        # Duplicate reviews are reported by the view with a single error
        validators = []

    def validate_product(self, value):
        if not value.is_active:
            raise serializers.ValidationError('Product is not available.')
        return value

    def validate_customer_email(self, value):
        return value.strip().lower()


class AdminReviewSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)

    class Meta:
        model = Review
        fields = ['id', 'product', 'product_name', 'user', 'rating', 'title', 'comment', 'customer_name',
                  'customer_email', 'verified', 'status', 'admin_notes', 'reviewed_at', 'created_at',
                  'updated_at']
        read_only_fields = [field for field in fields if field not in ('status', 'admin_notes')]
