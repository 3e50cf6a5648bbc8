import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from backend.catalog.models import Product
from backend.core.exceptions import validation_error_response
from backend.core.permissions import IsAdminRole
from backend.core.utils import parse_limit, parse_offset
from backend.notifications.services import notify_user
from .models import Order, OrderItem
from .serializers import (
    OrderSerializer, OrderItemSerializer, OrderItemInputSerializer,
    OrderCreateSerializer, PublicOrderCreateSerializer, OrderUpdateSerializer,
)
from .services import OrderError, create_order, email_admin_about_order

logger = logging.getLogger('backend.orders')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List all orders (admin) or place an order as the current user"""
    if request.method == 'GET':
        if not request.user.is_admin_role:
            return Response({'error': 'Admin access required.'}, status=status.HTTP_403_FORBIDDEN)

        orders = Order.objects.select_related('user').prefetch_related('items')
        order_status = request.query_params.get('status')
        if order_status:
            orders = orders.filter(status=order_status)

        limit = parse_limit(request)
        offset = parse_offset(request)
        return Response({
            'count': orders.count(),
            'limit': limit,
            'offset': offset,
            'results': OrderSerializer(orders[offset:offset + limit], many=True).data,
        })

    serializer = OrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    data = serializer.validated_data
    try:
        order = create_order(
            data['items'],
            user=request.user,
            shipping_address=data.get('shipping_address', ''),
            notes=data.get('notes', ''),
        )
    except OrderError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def public_order_create(request):
    """Guest checkout: order with contact details, emailed to the pharmacy"""
    serializer = PublicOrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    data = serializer.validated_data
    try:
        order = create_order(
            data['items'],
            user=request.user if request.user.is_authenticated else None,
            customer=data['customer_info'],
            shipping_address=data.get('shipping_address', ''),
            notes=data.get('notes', ''),
        )
    except OrderError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    email_admin_about_order(order)
    return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_orders(request):
    orders = Order.objects.filter(user=request.user).prefetch_related('items')
    return Response(OrderSerializer(orders[:parse_limit(request)], many=True).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def order_detail(request, pk):
    """Retrieve, update status of, or delete an order"""
    order = get_object_or_404(Order.objects.select_related('user').prefetch_related('items'), pk=pk)

    if request.method == 'GET':
        return Response(OrderSerializer(order).data)
    elif request.method in ('PUT', 'PATCH'):
        previous_status = order.status
        serializer = OrderUpdateSerializer(order, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        order = serializer.save()

        if order.status != previous_status:
            logger.info(f"Order {order.pk} status {previous_status} -> {order.status}")
            notify_user(order.user, 'order', 'Order updated',
                        f"Your order #{order.pk} is now {order.get_status_display().lower()}.",
                        data={'order_id': order.pk, 'status': order.status})
        return Response(OrderSerializer(order).data)
    else:  # DELETE
        order.delete()
        logger.info(f"Order {pk} deleted by {request.user.email}")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def order_items(request, pk):
    """List an order's items, or add one and recompute the total"""
    order = get_object_or_404(Order, pk=pk)

    if request.method == 'GET':
        return Response(OrderItemSerializer(order.items.all(), many=True).data)

    serializer = OrderItemInputSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    data = serializer.validated_data
    product = get_object_or_404(Product, pk=data['product_id'])
    with transaction.atomic():
        item = OrderItem.objects.create(
            order=order,
            product=product,
            product_name=product.name,
            quantity=data['quantity'],
            price=data['price'],
        )
        order.recalculate_total()

    return Response({
        'item': OrderItemSerializer(item).data,
        'order_total': str(order.total),
    }, status=status.HTTP_201_CREATED)
