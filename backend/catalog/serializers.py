from rest_framework import serializers
from backend.core.validators import IMAGE_CONTENT_TYPES, IMAGE_EXTENSIONS, validate_upload
from .models import Category, Product, ProductVariant, ProductImage, StockAdjustment


class CategorySerializer(serializers.ModelSerializer):
    product_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Category
        fields = ['id', 'name', 'description', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class ProductVariantSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductVariant
        fields = ['id', 'product', 'name', 'value', 'sku', 'price', 'stock', 'created_at', 'updated_at']
        read_only_fields = ['product', 'created_at', 'updated_at']


class ProductImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductImage
        fields = ['id', 'product', 'image', 'alt_text', 'is_primary', 'created_at']
        read_only_fields = ['product', 'created_at']

    def validate_image(self, value):
        return validate_upload(value, IMAGE_EXTENSIONS, IMAGE_CONTENT_TYPES)


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, allow_null=True)
    variants = ProductVariantSerializer(many=True, read_only=True)
    images = ProductImageSerializer(many=True, read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'price', 'stock', 'low_stock_threshold', 'is_low_stock',
                  'image_url', 'category', 'category_name', 'is_active', 'woocommerce_id',
                  'average_rating', 'review_count', 'variants', 'images', 'created_at', 'updated_at']
        read_only_fields = ['woocommerce_id', 'average_rating', 'review_count', 'created_at', 'updated_at']


class ProductListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for the storefront list"""
    category_name = serializers.CharField(source='category.name', read_only=True, allow_null=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'price', 'stock', 'image_url', 'category', 'category_name',
                  'is_active', 'average_rating', 'review_count']


class StockAdjustmentSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    created_by_email = serializers.EmailField(source='created_by.email', read_only=True, allow_null=True)

    class Meta:
        model = StockAdjustment
        fields = ['id', 'product', 'product_name', 'adjustment_type', 'quantity', 'reason', 'notes',
                  'previous_stock', 'new_stock', 'created_by', 'created_by_email', 'created_at']
        read_only_fields = ['previous_stock', 'new_stock', 'created_by', 'created_at']
        extra_kwargs = {'quantity': {'min_value': 1}}


class StockLevelSerializer(serializers.Serializer):
    stock = serializers.IntegerField(min_value=0)
    reason = serializers.ChoiceField(choices=StockAdjustment.REASON_CHOICES, default='correction')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
