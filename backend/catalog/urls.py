from django.urls import path
from .views import (
    product_list_create, product_detail, product_image_upload, product_image_delete,
    variant_list_create, variant_detail,
    category_list_create, category_detail,
    stock_adjustment_list_create, product_stock_update, low_stock_alerts,
)

urlpatterns = [
    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/images/', product_image_upload, name='product-image-upload'),
    path('products/<int:pk>/images/<int:image_id>/', product_image_delete, name='product-image-delete'),
    path('products/<int:pk>/variants/', variant_list_create, name='product-variant-list-create'),
    path('products/<int:pk>/variants/<int:variant_id>/', variant_detail, name='product-variant-detail'),

    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),

    # Inventory endpoints
    path('inventory/adjustments/', stock_adjustment_list_create, name='stock-adjustment-list-create'),
    path('inventory/products/<int:pk>/stock/', product_stock_update, name='product-stock-update'),
    path('inventory/alerts/', low_stock_alerts, name='low-stock-alerts'),
]
