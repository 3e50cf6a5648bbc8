import logging

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from backend.core.exceptions import validation_error_response
from backend.core.permissions import IsAdminRole
from backend.core.throttling import ContactRateThrottle
from backend.core.utils import parse_bool, parse_limit, parse_offset, send_email_safely
from .models import NewsletterSubscription
from .serializers import NewsletterSubscriptionSerializer, SubscribeSerializer, UnsubscribeSerializer

logger = logging.getLogger('backend.newsletter')

RECENT_SUBSCRIPTIONS = 10


def _send_welcome(email):
    send_email_safely(
        f"Welcome to the {settings.PHARMACY_NAME} newsletter!",
        f"Thank you for subscribing to the {settings.PHARMACY_NAME} newsletter.\n\n"
        f"You'll receive special offers, health tips, news about our products and services, "
        f"and pharmacy updates.\n\n"
        f"You can unsubscribe at any time: {settings.FRONTEND_URL}/newsletter/unsubscribe\n",
        [email],
    )


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ContactRateThrottle])
def subscribe(request):
    """Subscribe an email; inactive subscriptions are reactivated"""
    serializer = SubscribeSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    data = serializer.validated_data

    subscription = NewsletterSubscription.objects.filter(email=data['email']).first()
    if subscription is not None and subscription.is_active:
        return Response({
            'success': True,
            'message': 'Email already subscribed to newsletter',
            'already_subscribed': True,
        })

    if subscription is None:
        subscription = NewsletterSubscription.objects.create(
            email=data['email'], source=data['source'], marketing_consent=data['consent'],
        )
        logger.info(f"Newsletter subscription {subscription.pk} created from {subscription.source}")
    else:
        subscription.is_active = True
        subscription.source = data['source']
        subscription.marketing_consent = data['consent']
        subscription.save(update_fields=['is_active', 'source', 'marketing_consent', 'updated_at'])
        logger.info(f"Newsletter subscription {subscription.pk} reactivated")

    _send_welcome(subscription.email)
    return Response({
        'success': True,
        'message': 'Successfully subscribed to newsletter',
        'already_subscribed': False,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ContactRateThrottle])
def unsubscribe(request):
    serializer = UnsubscribeSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    subscription = NewsletterSubscription.objects.filter(email=serializer.validated_data['email']).first()
    if subscription is None:
        return Response({'error': 'Subscription not found'}, status=status.HTTP_404_NOT_FOUND)

    if subscription.is_active:
        subscription.is_active = False
        subscription.save(update_fields=['is_active', 'updated_at'])
        logger.info(f"Newsletter subscription {subscription.pk} cancelled")
    return Response({'success': True, 'message': 'Successfully unsubscribed from newsletter'})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def subscriber_list(request):
    """Subscriptions, optionally filtered with ?active=true|false"""
    subscriptions = NewsletterSubscription.objects.all()
    active = parse_bool(request.query_params.get('active'))
    if active is not None:
        subscriptions = subscriptions.filter(is_active=active)
    limit, offset = parse_limit(request), parse_offset(request)
    return Response({
        'count': subscriptions.count(),
        'results': NewsletterSubscriptionSerializer(subscriptions[offset:offset + limit], many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def newsletter_stats(request):
    active = NewsletterSubscription.objects.filter(is_active=True)
    return Response({
        'total_subscribers': active.count(),
        'unsubscribed': NewsletterSubscription.objects.filter(is_active=False).count(),
        'recent_subscriptions': NewsletterSubscriptionSerializer(active[:RECENT_SUBSCRIPTIONS], many=True).data,
    })
