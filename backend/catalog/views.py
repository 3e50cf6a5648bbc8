import logging

from django.db.models import Count, F, ProtectedError
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response

from backend.core.cache_utils import cache_products_list, get_cached_products_list
from backend.core.exceptions import validation_error_response
from backend.core.permissions import IsAdminRole, IsAdminRoleOrReadOnly
from backend.core.utils import parse_limit, parse_offset
from .filters import ProductFilter
from .models import Category, Product, ProductVariant, ProductImage, StockAdjustment
from .serializers import (
    CategorySerializer, ProductSerializer, ProductListSerializer,
    ProductVariantSerializer, ProductImageSerializer, StockAdjustmentSerializer, StockLevelSerializer,
)
from .services import StockError, adjust_stock, set_stock

logger = logging.getLogger('backend.catalog')


def _visible_products(request):
    queryset = Product.objects.select_related('category')
    if not (request.user.is_authenticated and request.user.is_admin_role):
        queryset = queryset.filter(is_active=True)
    return queryset


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRoleOrReadOnly])
def product_list_create(request):
    """List products (public, cached) or create a product (admin)"""
    if request.method == 'GET':
        limit = parse_limit(request)
        offset = parse_offset(request)
        is_admin = request.user.is_authenticated and request.user.is_admin_role

        filters_dict = {key: value for key, value in request.query_params.items()}
        filters_dict.update({'limit': limit, 'offset': offset, 'admin': is_admin})
        cached_data, cache_key = get_cached_products_list(filters_dict)
        if cached_data is not None:
            return Response(cached_data)

        filterset = ProductFilter(request.query_params, queryset=_visible_products(request))
        if not filterset.is_valid():
            return validation_error_response(filterset.errors)
        queryset = filterset.qs

        data = {
            'count': queryset.count(),
            'limit': limit,
            'offset': offset,
            'results': ProductListSerializer(queryset[offset:offset + limit], many=True).data,
        }
        cache_products_list(cache_key, data)
        return Response(data)

    serializer = ProductSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    product = serializer.save()
    logger.info(f"Product {product.pk} created by {request.user.email}")
    return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRoleOrReadOnly])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(
        _visible_products(request).prefetch_related('variants', 'images'), pk=pk
    )

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        serializer.save()
        return Response(serializer.data)
    else:  # DELETE
        try:
            product.delete()
        except ProtectedError:
            return Response({'error': 'Product is referenced by existing records'},
                            status=status.HTTP_400_BAD_REQUEST)
        logger.info(f"Product {pk} deleted by {request.user.email}")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAdminRole])
@parser_classes([MultiPartParser, FormParser])
def product_image_upload(request, pk):
    product = get_object_or_404(Product, pk=pk)
    serializer = ProductImageSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    image = serializer.save(product=product)
    if image.is_primary or not product.image_url:
        product.images.exclude(pk=image.pk).update(is_primary=False)
        image.is_primary = True
        image.save(update_fields=['is_primary'])
        product.image_url = image.image.url
        product.save(update_fields=['image_url', 'updated_at'])
    return Response(ProductImageSerializer(image).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAdminRole])
def product_image_delete(request, pk, image_id):
    image = get_object_or_404(ProductImage, pk=image_id, product_id=pk)
    image.image.delete(save=False)
    image.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# Variant views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRoleOrReadOnly])
def variant_list_create(request, pk):
    product = get_object_or_404(_visible_products(request), pk=pk)
    if request.method == 'GET':
        return Response(ProductVariantSerializer(product.variants.all(), many=True).data)

    serializer = ProductVariantSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    variant = serializer.save(product=product)
    return Response(ProductVariantSerializer(variant).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRoleOrReadOnly])
def variant_detail(request, pk, variant_id):
    variant = get_object_or_404(ProductVariant, pk=variant_id, product_id=pk)

    if request.method == 'GET':
        return Response(ProductVariantSerializer(variant).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductVariantSerializer(variant, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        serializer.save()
        return Response(serializer.data)
    else:  # DELETE
        variant.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRoleOrReadOnly])
def category_list_create(request):
    """List all categories or create a new category"""
    if request.method == 'GET':
        categories = Category.objects.annotate(product_count=Count('products'))
        return Response(CategorySerializer(categories, many=True).data)

    serializer = CategorySerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    serializer.save()
    return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRoleOrReadOnly])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_404(Category.objects.annotate(product_count=Count('products')), pk=pk)

    if request.method == 'GET':
        return Response(CategorySerializer(category).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        serializer.save()
        return Response(serializer.data)
    else:  # DELETE
        if category.product_count:
            return Response({'error': 'Cannot delete a category that still has products'},
                            status=status.HTTP_400_BAD_REQUEST)
        category.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Inventory views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def stock_adjustment_list_create(request):
    """Stock movement history, or record a manual stock in/out"""
    if request.method == 'GET':
        adjustments = StockAdjustment.objects.select_related('product', 'created_by')
        product_id = request.query_params.get('product')
        if product_id and product_id.isdigit():
            adjustments = adjustments.filter(product_id=product_id)
        adjustment_type = request.query_params.get('type')
        if adjustment_type:
            adjustments = adjustments.filter(adjustment_type=adjustment_type)
        limit, offset = parse_limit(request), parse_offset(request)
        return Response({
            'count': adjustments.count(),
            'results': StockAdjustmentSerializer(adjustments[offset:offset + limit], many=True).data,
        })

    serializer = StockAdjustmentSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    data = serializer.validated_data
    try:
        adjustment = adjust_stock(data['product'].pk, data['adjustment_type'], data['quantity'],
                                  data.get('reason', 'correction'), data.get('notes', ''), request.user)
    except StockError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(StockAdjustmentSerializer(adjustment).data, status=status.HTTP_201_CREATED)


@api_view(['PUT'])
@permission_classes([IsAdminRole])
def product_stock_update(request, pk):
    """Set a product's stock level; the change is recorded as an adjustment"""
    product = get_object_or_404(Product, pk=pk)
    serializer = StockLevelSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    data = serializer.validated_data

    adjustment = set_stock(product.pk, data['stock'], data['reason'], data['notes'], request.user)
    product.refresh_from_db()
    return Response({
        'product': ProductSerializer(product).data,
        'adjustment': StockAdjustmentSerializer(adjustment).data if adjustment else None,
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def low_stock_alerts(request):
    """Active products at or below their low stock threshold"""
    products = (Product.objects.select_related('category')
                .filter(is_active=True, stock__lte=F('low_stock_threshold'))
                .order_by('stock', 'name'))
    return Response({
        'count': products.count(),
        'results': ProductListSerializer(products, many=True).data,
    })
