import json
import logging

from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from backend.core.exceptions import validation_error_response
from backend.core.integrations import IntegrationError, verify_base64_hmac
from backend.core.permissions import IsAdminRole
from backend.orders.models import Order
from .client import WooCommerceClient, webhook_secret
from .models import WooCommerceSettings
from .serializers import WooCommerceSettingsSerializer
from .services import apply_order_status, deactivate_product, sync_products, upsert_product

logger = logging.getLogger('backend.woocommerce')

SIGNATURE_HEADER = 'HTTP_X_WC_WEBHOOK_SIGNATURE'
TOPIC_HEADER = 'HTTP_X_WC_WEBHOOK_TOPIC'


def _not_enabled(wc_settings):
    if not wc_settings.enabled:
        return Response({'error': 'WooCommerce integration is not enabled'}, status=status.HTTP_400_BAD_REQUEST)
    if not WooCommerceClient.from_settings(wc_settings).configured:
        return Response({'error': 'WooCommerce integration is not configured'}, status=status.HTTP_400_BAD_REQUEST)
    return None


def verified_webhook_body(request):
    """
    Decoded JSON body of a signed WooCommerce webhook, or an error Response.
    """
    payload = request.body
    if not verify_base64_hmac(payload, request.META.get(SIGNATURE_HEADER, ''), webhook_secret()):
        logger.warning('Rejected WooCommerce webhook with invalid signature')
        return None, Response({'error': 'Invalid signature'}, status=status.HTTP_401_UNAUTHORIZED)
    try:
        body = json.loads(payload.decode('utf-8') or '{}')
    except (ValueError, UnicodeDecodeError):
        # WooCommerce pings a new webhook with a form-encoded body
        return {}, None
    if not isinstance(body, dict):
        return None, Response({'error': 'Invalid payload'}, status=status.HTTP_400_BAD_REQUEST)
    return body, None


@api_view(['GET', 'PUT'])
@permission_classes([IsAdminRole])
def woocommerce_settings(request):
    wc_settings = WooCommerceSettings.load()
    if request.method == 'GET':
        return Response(WooCommerceSettingsSerializer(wc_settings).data)

    serializer = WooCommerceSettingsSerializer(wc_settings, data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    serializer.save()
    logger.info(f"WooCommerce settings updated by {request.user.email} (enabled={wc_settings.enabled})")
    return Response(WooCommerceSettingsSerializer(wc_settings).data)


@api_view(['POST'])
@permission_classes([IsAdminRole])
def test_connection(request):
    wc_settings = WooCommerceSettings.load()
    error = _not_enabled(wc_settings)
    if error:
        return error
    try:
        store_info = WooCommerceClient.from_settings(wc_settings).store_info()
    except IntegrationError as e:
        return Response({'error': 'Connection test failed', 'details': e.message}, status=status.HTTP_502_BAD_GATEWAY)
    return Response({'success': True, 'message': 'Connection test successful', 'store_info': store_info})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def sync_products_view(request):
    wc_settings = WooCommerceSettings.load()
    error = _not_enabled(wc_settings)
    if error:
        return error
    try:
        result = sync_products(wc_settings)
    except IntegrationError as e:
        return Response({'error': 'Failed to sync products', 'details': e.message},
                        status=status.HTTP_502_BAD_GATEWAY)
    return Response({'success': True, **result})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def sync_status(request):
    return Response(WooCommerceSettings.load().sync_status_payload())


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def woocommerce_webhook(request):
    """Signed store events: product changes and order status updates"""
    body, error = verified_webhook_body(request)
    if error:
        return error

    topic = request.META.get(TOPIC_HEADER, '')
    if not topic or not body.get('id'):
        return Response({'success': True})
    try:
        wc_id = int(body['id'])
    except (TypeError, ValueError):
        return Response({'error': 'Invalid id'}, status=status.HTTP_400_BAD_REQUEST)

    if topic in ('product.created', 'product.updated', 'product.restored'):
        product, created = upsert_product(body)
        logger.info(f"WooCommerce webhook {topic}: product {product.pk} {'created' if created else 'updated'}")
    elif topic == 'product.deleted':
        deactivate_product(wc_id)
        logger.info(f"WooCommerce webhook product.deleted: {wc_id} deactivated")
    elif topic == 'order.updated':
        orders = Order.objects.filter(woocommerce_order_id=wc_id)
        updated = apply_order_status(orders, body.get('status'))
        logger.info(f"WooCommerce webhook order.updated: {wc_id} -> {body.get('status')} ({updated} updated)")
    else:
        logger.debug(f"Ignoring WooCommerce topic {topic}")
    return Response({'success': True})
