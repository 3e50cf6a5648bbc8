import logging
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import validation_error_response
from backend.notifications.services import trigger_system_notification
from backend.orders.models import Order
from .models import Subscription
from .serializers import (
    PaymentIntentSerializer, CreateSubscriptionSerializer, CancelSubscriptionSerializer, SubscriptionSerializer,
)
from .stripe_client import PaymentProviderError, SignatureVerificationError, StripeClient, construct_webhook_event

logger = logging.getLogger('backend.payments')

PAYMENT_SERVICE_DISABLED = 'PAYMENT_SERVICE_DISABLED'


def payment_service_disabled():
    return Response({
        'error': 'Payment service is not configured.',
        'code': PAYMENT_SERVICE_DISABLED,
    }, status=status.HTTP_503_SERVICE_UNAVAILABLE)


def _provider_error(message, error):
    return Response({'error': message, 'details': error.message}, status=status.HTTP_502_BAD_GATEWAY)


def to_cents(amount):
    return int((Decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def _from_timestamp(value):
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)


@api_view(['POST'])
@permission_classes([AllowAny])
def create_payment_intent(request):
    """Create a card payment intent; the amount is given in dollars"""
    client = StripeClient()
    if not client.configured:
        return payment_service_disabled()

    serializer = PaymentIntentSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    data = serializer.validated_data

    order = None
    if data.get('order_id'):
        order = get_object_or_404(Order, pk=data['order_id'])

    metadata = {'order_id': order.pk} if order else {}
    try:
        intent = client.create_payment_intent(to_cents(data['amount']), data['currency'], metadata)
    except PaymentProviderError as e:
        return _provider_error('Failed to create payment intent', e)

    if order is not None:
        order.payment_intent_id = intent['id']
        order.payment_method = order.payment_method or 'stripe'
        order.save(update_fields=['payment_intent_id', 'payment_method', 'updated_at'])

    logger.info(f"Payment intent {intent['id']} created for {data['amount']} {data['currency']}"
                f"{f' (order {order.pk})' if order else ''}")
    return Response({
        'client_secret': intent.get('client_secret'),
        'payment_intent_id': intent['id'],
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_subscription(request):
    client = StripeClient()
    if not client.configured:
        return payment_service_disabled()

    serializer = CreateSubscriptionSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    price_id = serializer.validated_data['price_id']

    try:
        customer = client.get_or_create_customer(request.user.email, request.user.name)
        remote = client.create_subscription(customer['id'], price_id)
    except PaymentProviderError as e:
        return _provider_error('Failed to create subscription', e)

    subscription = Subscription.objects.create(
        user=request.user,
        provider_customer_id=customer['id'],
        provider_subscription_id=remote['id'],
        price_id=price_id,
        status=remote.get('status', 'incomplete'),
        current_period_end=_from_timestamp(remote.get('current_period_end')),
    )
    logger.info(f"Subscription {remote['id']} created for user {request.user.pk}")

    payment_intent = (remote.get('latest_invoice') or {}).get('payment_intent') or {}
    return Response({
        'subscription': SubscriptionSerializer(subscription).data,
        'client_secret': payment_intent.get('client_secret') if isinstance(payment_intent, dict) else None,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_subscription(request):
    """Cancel one of the caller's subscriptions at the end of the period"""
    client = StripeClient()
    if not client.configured:
        return payment_service_disabled()

    serializer = CancelSubscriptionSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    subscription = get_object_or_404(
        Subscription, provider_subscription_id=serializer.validated_data['subscription_id'], user=request.user,
    )
    try:
        remote = client.cancel_subscription_at_period_end(subscription.provider_subscription_id)
    except PaymentProviderError as e:
        return _provider_error('Failed to cancel subscription', e)

    subscription.cancel_at_period_end = True
    subscription.status = remote.get('status', subscription.status)
    subscription.save(update_fields=['cancel_at_period_end', 'status', 'updated_at'])
    logger.info(f"Subscription {subscription.provider_subscription_id} set to cancel at period end")
    return Response(SubscriptionSerializer(subscription).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def subscription_list(request):
    subscriptions = Subscription.objects.filter(user=request.user)
    return Response(SubscriptionSerializer(subscriptions, many=True).data)


def _orders_for_intent(intent):
    orders = Order.objects.filter(payment_intent_id=intent.get('id'))
    order_id = (intent.get('metadata') or {}).get('order_id')
    if not orders.exists() and order_id:
        orders = Order.objects.filter(pk=order_id)
    return list(orders)


def _handle_payment_succeeded(intent):
    amount = Decimal(intent.get('amount_received') or intent.get('amount') or 0) / 100
    for order in _orders_for_intent(intent):
        order.status = Order.STATUS_PROCESSING
        order.payment_intent_id = intent.get('id')
        order.save(update_fields=['status', 'payment_intent_id', 'updated_at'])
        trigger_system_notification('payment-success', {'order_id': order.pk, 'amount': amount})
        logger.info(f"Order {order.pk} paid via {intent.get('id')}")


def _handle_payment_failed(intent):
    reason = (intent.get('last_payment_error') or {}).get('message') or 'unknown reason'
    for order in _orders_for_intent(intent):
        order.status = Order.STATUS_FAILED
        order.save(update_fields=['status', 'updated_at'])
        trigger_system_notification('payment-failed', {'order_id': order.pk, 'reason': reason})
        logger.warning(f"Payment failed for order {order.pk}: {reason}")


def _handle_subscription_change(remote, deleted=False):
    updated = Subscription.objects.filter(provider_subscription_id=remote.get('id')).update(
        status='canceled' if deleted else remote.get('status', 'active'),
        cancel_at_period_end=bool(remote.get('cancel_at_period_end')),
        current_period_end=_from_timestamp(remote.get('current_period_end')),
        updated_at=datetime.now(dt_timezone.utc),
    )
    if not updated:
        logger.warning(f"Webhook for unknown subscription {remote.get('id')}")


WEBHOOK_HANDLERS = {
    'payment_intent.succeeded': _handle_payment_succeeded,
    'payment_intent.payment_failed': _handle_payment_failed,
    'customer.subscription.updated': _handle_subscription_change,
    'customer.subscription.deleted': lambda remote: _handle_subscription_change(remote, deleted=True),
}


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def stripe_webhook(request):
    """Signed provider callback; unknown event types are acknowledged"""
    secret = settings.STRIPE_WEBHOOK_SECRET
    if not secret:
        return payment_service_disabled()

    payload = request.body
    try:
        event = construct_webhook_event(payload, request.META.get('HTTP_STRIPE_SIGNATURE', ''), secret)
    except SignatureVerificationError as e:
        logger.warning(f"Rejected Stripe webhook: {str(e)}")
        return Response({'error': 'Invalid signature'}, status=status.HTTP_400_BAD_REQUEST)
    except (ValueError, UnicodeDecodeError):
        return Response({'error': 'Invalid payload'}, status=status.HTTP_400_BAD_REQUEST)
    if not isinstance(event, dict):
        return Response({'error': 'Invalid payload'}, status=status.HTTP_400_BAD_REQUEST)

    event_type = event.get('type', '')
    handler = WEBHOOK_HANDLERS.get(event_type)
    if handler is None:
        logger.debug(f"Ignoring Stripe event {event_type}")
        return Response({'received': True})

    with transaction.atomic():
        handler((event.get('data') or {}).get('object') or {})
    logger.info(f"Processed Stripe event {event.get('id')} ({event_type})")
    return Response({'received': True})
