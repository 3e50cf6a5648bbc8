"""
Checkout through WooCommerce: the store holds the order and takes payment,
the local Order mirrors it.
"""
import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from backend.catalog.models import Product
from backend.core.exceptions import validation_error_response
from backend.core.integrations import IntegrationError
from backend.core.permissions import is_owner_or_admin
from backend.orders.models import Order
from backend.orders.serializers import OrderSerializer
from backend.orders.services import OrderError, create_order
from backend.payments.views import payment_service_disabled
from .client import WooCommerceClient
from .serializers import WooCommerceOrderSerializer
from .services import apply_order_status
from .views import verified_webhook_body

logger = logging.getLogger('backend.woocommerce')


def _client_or_none():
    client = WooCommerceClient.from_settings()
    return client if client.configured else None


def _upstream_error(message, error):
    return Response({'error': message, 'details': error.message}, status=status.HTTP_502_BAD_GATEWAY)


def _address_lines(address):
    parts = [address['address1'], address.get('address2'), address['city'], address['state'],
             address['postcode'], address.get('country')]
    return ' '.join(part for part in parts if part)


def build_store_order(items, customer, products, payment_method):
    address = customer['address']
    contact = {
        'first_name': customer['first_name'],
        'last_name': customer['last_name'],
        'address_1': address['address1'],
        'address_2': address.get('address2', ''),
        'city': address['city'],
        'state': address['state'],
        'postcode': address['postcode'],
        'country': address.get('country', 'US'),
    }
    line_items = []
    for item in items:
        product = products[item['product_id']]
        line = {'quantity': item['quantity'], 'total': str(item['price'] * item['quantity'])}
        if product.woocommerce_id:
            line['product_id'] = product.woocommerce_id
        else:
            line['name'] = product.name
        line_items.append(line)
    return {
        'payment_method': payment_method,
        'payment_method_title': 'WooCommerce Checkout' if payment_method == 'woocommerce' else 'PayPal',
        'set_paid': False,
        'billing': {**contact, 'email': customer['email'], 'phone': customer.get('phone', '')},
        'shipping': contact,
        'line_items': line_items,
    }


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_store_order(request):
    client = _client_or_none()
    if client is None:
        return payment_service_disabled()

    serializer = WooCommerceOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    data = serializer.validated_data
    customer = data['customer_info']

    products = Product.objects.in_bulk({item['product_id'] for item in data['items']})
    missing = sorted({item['product_id'] for item in data['items']} - set(products))
    if missing:
        return Response({'error': f"Unknown product(s): {', '.join(str(pk) for pk in missing)}"},
                        status=status.HTTP_400_BAD_REQUEST)

    try:
        remote = client.create_order(build_store_order(data['items'], customer, products, data['payment_method']))
    except IntegrationError as e:
        return _upstream_error('Failed to create order', e)

    try:
        order = create_order(
            data['items'],
            user=request.user,
            customer={
                'name': f"{customer['first_name']} {customer['last_name']}",
                'email': customer['email'],
                'phone': customer.get('phone', ''),
            },
            shipping_address=_address_lines(customer['address']),
            notes=data['notes'],
            payment_method='woocommerce',
            payment_intent_id=str(remote.get('order_key') or remote.get('id')),
            woocommerce_order_id=remote.get('id'),
        )
    except OrderError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    if order.total != data['total_amount']:
        logger.warning(f"Order {order.pk} total {order.total} differs from submitted {data['total_amount']}")
    logger.info(f"WooCommerce order {remote.get('id')} created for local order {order.pk}")
    return Response({
        'success': True,
        'order': OrderSerializer(order).data,
        'woocommerce_order': {
            'id': remote.get('id'),
            'status': remote.get('status'),
            'payment_url': remote.get('payment_url'),
        },
    }, status=status.HTTP_201_CREATED)


def _own_order(request, pk):
    order = get_object_or_404(Order.objects.prefetch_related('items'), pk=pk)
    if not is_owner_or_admin(request.user, order.user_id):
        return order, Response({'error': 'You do not have access to this order'}, status=status.HTTP_403_FORBIDDEN)
    return order, None


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def store_order_status(request, pk):
    """Local order plus its current status in the store"""
    client = _client_or_none()
    if client is None:
        return payment_service_disabled()
    order, error = _own_order(request, pk)
    if error:
        return error
    if not order.woocommerce_order_id:
        return Response({'error': 'Order was not placed through WooCommerce'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        remote = client.get_order(order.woocommerce_order_id)
    except IntegrationError as e:
        return _upstream_error('Failed to get order status', e)

    apply_order_status([order], remote.get('status'))
    return Response({
        'success': True,
        'order': OrderSerializer(order).data,
        'woocommerce_order': {
            'id': remote.get('id'),
            'status': remote.get('status'),
            'total': remote.get('total'),
            'payment_url': remote.get('payment_url'),
        },
    })


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def store_payment_webhook(request):
    """Payment status for an order, matched on the stored order key or id"""
    if _client_or_none() is None:
        return payment_service_disabled()
    body, error = verified_webhook_body(request)
    if error:
        return error

    reference = body.get('order_key') or body.get('order_id')
    if not reference:
        return Response({'error': 'order_id is required'}, status=status.HTTP_400_BAD_REQUEST)
    orders = Order.objects.filter(payment_intent_id=str(reference))
    if not orders.exists() and str(reference).isdigit():
        orders = Order.objects.filter(woocommerce_order_id=int(reference))
    updated = apply_order_status(list(orders), body.get('status'))
    logger.info(f"WooCommerce payment webhook for {reference}: {body.get('status')} ({updated} updated)")
    return Response({'success': True, 'updated': updated})


@api_view(['GET'])
@permission_classes([AllowAny])
def payment_methods(request):
    client = _client_or_none()
    if client is None:
        return payment_service_disabled()
    try:
        gateways = client.enabled_payment_gateways()
    except IntegrationError as e:
        return _upstream_error('Failed to get payment methods', e)
    return Response({
        'success': True,
        'payment_methods': [
            {'id': g.get('id'), 'title': g.get('title'), 'description': g.get('description'),
             'enabled': g.get('enabled')}
            for g in gateways
        ],
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_store_order(request, pk):
    client = _client_or_none()
    if client is None:
        return payment_service_disabled()
    order, error = _own_order(request, pk)
    if error:
        return error
    if order.status not in (Order.STATUS_PENDING, Order.STATUS_FAILED):
        return Response({'error': f"Order cannot be cancelled once {order.status}"},
                        status=status.HTTP_400_BAD_REQUEST)

    if order.woocommerce_order_id:
        try:
            client.update_order_status(order.woocommerce_order_id, 'cancelled')
        except IntegrationError as e:
            return _upstream_error('Failed to cancel order', e)

    order.status = Order.STATUS_CANCELLED
    order.save(update_fields=['status', 'updated_at'])
    logger.info(f"Order {order.pk} cancelled by {request.user.email}")
    return Response({'success': True, 'message': 'Order cancelled successfully'})
