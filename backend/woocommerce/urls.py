from django.urls import path
from .views import woocommerce_settings, test_connection, sync_products_view, sync_status, woocommerce_webhook
from .payment_views import (
    create_store_order, store_order_status, store_payment_webhook, payment_methods, cancel_store_order,
)

urlpatterns = [
    path('woocommerce/settings/', woocommerce_settings, name='woocommerce-settings'),
    path('woocommerce/test-connection/', test_connection, name='woocommerce-test-connection'),
    path('woocommerce/sync-products/', sync_products_view, name='woocommerce-sync-products'),
    path('woocommerce/sync-status/', sync_status, name='woocommerce-sync-status'),
    path('woocommerce/webhook/', woocommerce_webhook, name='woocommerce-webhook'),

    path('woocommerce-payments/create-order/', create_store_order, name='woocommerce-payments-create-order'),
    path('woocommerce-payments/order/<int:pk>/', store_order_status, name='woocommerce-payments-order'),
    path('woocommerce-payments/webhook/', store_payment_webhook, name='woocommerce-payments-webhook'),
    path('woocommerce-payments/payment-methods/', payment_methods, name='woocommerce-payments-methods'),
    path('woocommerce-payments/cancel-order/<int:pk>/', cancel_store_order, name='woocommerce-payments-cancel'),
]
