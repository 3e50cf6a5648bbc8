from django.urls import path
from .views import create_payment_intent, create_subscription, cancel_subscription, subscription_list, stripe_webhook

urlpatterns = [
    path('payments/create-payment-intent/', create_payment_intent, name='payment-create-intent'),
    path('payments/create-subscription/', create_subscription, name='payment-create-subscription'),
    path('payments/cancel-subscription/', cancel_subscription, name='payment-cancel-subscription'),
    path('payments/subscriptions/', subscription_list, name='payment-subscriptions'),
    path('payments/webhook/', stripe_webhook, name='payment-webhook'),
]
