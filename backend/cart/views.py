import logging
import uuid

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from backend.catalog.models import Product
from backend.core.exceptions import validation_error_response
from .models import Cart, CartItem
from .serializers import CartSerializer, AddItemSerializer, UpdateItemSerializer

logger = logging.getLogger('backend.cart')


def _requested_cart_id(request):
    cart_id = request.query_params.get('cart_id') or request.data.get('cart_id')
    if not cart_id:
        return None
    try:
        return uuid.UUID(str(cart_id))
    except ValueError:
        return None


def resolve_cart(request, create=True):
    """
    The caller's cart: the user's own cart when authenticated, otherwise the
    guest cart named by ``cart_id``. Expired guest carts are replaced.
    """
    if request.user.is_authenticated:
        cart = Cart.objects.filter(user=request.user).first()
        if cart is None and create:
            cart = Cart.objects.create(user=request.user)
        return cart

    cart_id = _requested_cart_id(request)
    cart = Cart.objects.filter(pk=cart_id, user__isnull=True).first() if cart_id else None
    if cart is not None and cart.is_expired:
        logger.info(f"Guest cart {cart.pk} expired, starting a new one")
        cart.delete()
        cart = None
    if cart is None and create:
        cart = Cart.objects.create()
    return cart


def _cart_response(cart, status_code=status.HTTP_200_OK):
    cart = Cart.objects.prefetch_related('items__product').get(pk=cart.pk)
    return Response(CartSerializer(cart).data, status=status_code)


def _insufficient_stock(product, quantity):
    return Response({
        'error': f"Insufficient stock for {product.name}",
        'available': product.stock,
        'requested': quantity,
    }, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'DELETE'])
@permission_classes([AllowAny])
def cart_detail(request):
    """Get (or create) the caller's cart, or clear it"""
    cart = resolve_cart(request)
    if request.method == 'DELETE':
        deleted, _ = cart.items.all().delete()
        logger.info(f"Cleared cart {cart.pk} ({deleted} item(s))")
    return _cart_response(cart)


@api_view(['POST'])
@permission_classes([AllowAny])
def add_item(request):
    serializer = AddItemSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    data = serializer.validated_data
    product = get_object_or_404(Product, pk=data['product_id'], is_active=True)

    with transaction.atomic():
        cart = resolve_cart(request)
        item = CartItem.objects.select_for_update().filter(cart=cart, product=product).first()
        quantity = data['quantity'] + (item.quantity if item else 0)
        if quantity > product.stock:
            return _insufficient_stock(product, quantity)
        if quantity > 100:
            return Response({'error': 'Maximum quantity per item is 100'}, status=status.HTTP_400_BAD_REQUEST)

        if item:
            item.quantity = quantity
            item.price = product.price
            item.save(update_fields=['quantity', 'price', 'updated_at'])
        else:
            CartItem.objects.create(cart=cart, product=product, quantity=quantity, price=product.price)
        cart.save(update_fields=['updated_at'])

    return _cart_response(cart, status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
@permission_classes([AllowAny])
def item_detail(request, item_id):
    """Update the quantity of, or remove, a cart line"""
    cart = resolve_cart(request, create=False)
    if cart is None:
        return Response({'error': 'Cart not found'}, status=status.HTTP_404_NOT_FOUND)
    item = get_object_or_404(CartItem.objects.select_related('product'), pk=item_id, cart=cart)

    if request.method == 'DELETE':
        item.delete()
        return _cart_response(cart)

    serializer = UpdateItemSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    quantity = serializer.validated_data['quantity']
    if quantity > item.product.stock:
        return _insufficient_stock(item.product, quantity)
    item.quantity = quantity
    item.save(update_fields=['quantity', 'updated_at'])
    return _cart_response(cart)


@api_view(['GET'])
@permission_classes([AllowAny])
def cart_summary(request):
    cart = resolve_cart(request, create=False)
    if cart is None:
        return Response({'item_count': 0, 'total_items': 0, 'subtotal': '0.00'})
    summary = cart.summary()
    summary['subtotal'] = str(summary['subtotal'])
    summary['cart_id'] = str(cart.pk)
    return Response(summary)
