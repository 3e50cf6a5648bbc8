from django.contrib import admin
from .models import Category, Product, ProductVariant, ProductImage, StockAdjustment


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0


class ProductImageInline(admin.TabularInline):
    model = ProductImage
    extra = 0


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'price', 'stock', 'is_active', 'woocommerce_id', 'updated_at']
    list_filter = ['is_active', 'category']
    search_fields = ['name', 'description']
    inlines = [ProductVariantInline, ProductImageInline]


@admin.register(StockAdjustment)
class StockAdjustmentAdmin(admin.ModelAdmin):
    list_display = ['product', 'adjustment_type', 'quantity', 'reason', 'previous_stock', 'new_stock',
                    'created_by', 'created_at']
    list_filter = ['adjustment_type', 'reason']
    search_fields = ['product__name', 'notes']
    readonly_fields = ['previous_stock', 'new_stock', 'created_at']
