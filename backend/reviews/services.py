"""
Review aggregates and purchase verification
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Avg, Count, Q

from backend.catalog.models import Product
from backend.orders.models import Order, OrderItem
from .models import Review

logger = logging.getLogger('backend.reviews')

PAID_STATUSES = (Order.STATUS_PROCESSING, Order.STATUS_COMPLETED)


def update_product_rating(product_id):
    """Recompute a product's average rating and count from approved reviews"""
    stats = Review.objects.filter(product_id=product_id, status=Review.STATUS_APPROVED).aggregate(
        average=Avg('rating'), count=Count('id'),
    )
    average = Decimal(str(stats['average'] or 0)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    product = Product.objects.filter(pk=product_id).first()
    if product is None:
        return None
    product.average_rating = average
    product.review_count = stats['count']
    product.save(update_fields=['average_rating', 'review_count', 'updated_at'])
    logger.debug(f"Product {product_id} rating now {average} over {stats['count']} review(s)")
    return product


def is_verified_purchase(product, email, user=None):
    """Whether the reviewer has a paid order containing the product"""
    buyer = Q(order__customer_email__iexact=email)
    if user is not None:
        buyer |= Q(order__user=user)
    return OrderItem.objects.filter(buyer, product=product, order__status__in=PAID_STATUSES).exists()
