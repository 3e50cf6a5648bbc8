import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from backend.catalog.models import Product
from backend.core.exceptions import validation_error_response
from backend.core.permissions import IsAdminRole
from backend.core.throttling import ContactRateThrottle
from backend.core.utils import parse_limit, parse_offset
from backend.notifications.services import trigger_system_notification
from .models import Review
from .serializers import AdminReviewSerializer, ReviewSerializer
from .services import is_verified_purchase, update_product_rating

logger = logging.getLogger('backend.reviews')


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ContactRateThrottle])
def review_create(request):
    """Submit a review; it is published once an admin approves it"""
    serializer = ReviewSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    data = serializer.validated_data

    product = data['product']
    if Review.objects.filter(product=product, customer_email=data['customer_email']).exists():
        return Response({'error': 'You have already reviewed this product'}, status=status.HTTP_400_BAD_REQUEST)

    user = request.user if request.user.is_authenticated else None
    review = serializer.save(user=user, verified=is_verified_purchase(product, data['customer_email'], user))
    logger.info(f"Review {review.pk} submitted for product {product.pk} ({review.rating}/5)")
    trigger_system_notification('new-review', {
        'review_id': review.pk,
        'product': product.name,
        'rating': review.rating,
        'name': review.customer_name,
    })
    return Response({
        'success': True,
        'message': 'Review submitted successfully. It will be published after approval.',
        'review': ReviewSerializer(review).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def product_reviews(request, pk):
    """Approved reviews of a product with its rating summary"""
    product = get_object_or_404(Product, pk=pk, is_active=True)
    reviews = Review.objects.filter(product=product, status=Review.STATUS_APPROVED).select_related('product')
    limit, offset = parse_limit(request), parse_offset(request)
    return Response({
        'average_rating': product.average_rating,
        'count': reviews.count(),
        'results': ReviewSerializer(reviews[offset:offset + limit], many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def review_admin_list(request):
    reviews = Review.objects.select_related('product')
    status_filter = request.query_params.get('status')
    if status_filter:
        reviews = reviews.filter(status=status_filter)
    product_id = request.query_params.get('product')
    if product_id and product_id.isdigit():
        reviews = reviews.filter(product_id=product_id)
    limit, offset = parse_limit(request), parse_offset(request)
    return Response({
        'count': reviews.count(),
        'results': AdminReviewSerializer(reviews[offset:offset + limit], many=True).data,
    })


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def review_detail(request, pk):
    """Moderate a review; the product rating follows every change"""
    review = get_object_or_404(Review.objects.select_related('product'), pk=pk)

    if request.method == 'GET':
        return Response(AdminReviewSerializer(review).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = AdminReviewSerializer(review, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        extra = {'reviewed_at': timezone.now()} if 'status' in serializer.validated_data else {}
        with transaction.atomic():
            serializer.save(**extra)
            update_product_rating(review.product_id)
        logger.info(f"Review {review.pk} marked {review.status} by {request.user.email}")
        return Response(AdminReviewSerializer(review).data)
    else:  # DELETE
        product_id = review.product_id
        with transaction.atomic():
            review.delete()
            update_product_rating(product_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
