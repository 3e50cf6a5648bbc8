"""
Inventory stock adjustments
"""
import logging

from django.db import transaction

from .models import Product, StockAdjustment

logger = logging.getLogger('backend.catalog')


class StockError(Exception):
    """Adjustment that would leave a product with negative stock"""


def adjust_stock(product_id, adjustment_type, quantity, reason='correction', notes='', user=None):
    """
    Move ``quantity`` units in or out of a product's stock and record it.
    The product row is locked so concurrent adjustments apply in sequence.
    """
    with transaction.atomic():
        product = Product.objects.select_for_update().get(pk=product_id)
        previous = product.stock
        if adjustment_type == StockAdjustment.TYPE_IN:
            new_stock = previous + quantity
        else:
            new_stock = previous - quantity
            if new_stock < 0:
                raise StockError(f"Only {previous} unit(s) of {product.name} in stock")

        product.stock = new_stock
        product.save(update_fields=['stock', 'updated_at'])
        adjustment = StockAdjustment.objects.create(
            product=product,
            adjustment_type=adjustment_type,
            quantity=quantity,
            reason=reason,
            notes=notes,
            previous_stock=previous,
            new_stock=new_stock,
            created_by=user,
        )

    logger.info(f"Stock of product {product.pk} adjusted {previous} -> {new_stock} ({reason})")
    return adjustment


def set_stock(product_id, stock, reason='correction', notes='', user=None):
    """
    Set a product's stock to an absolute level, recorded as the matching
    in/out adjustment. Returns None when the level is unchanged.
    """
    current = Product.objects.values_list('stock', flat=True).get(pk=product_id)
    if stock == current:
        return None
    adjustment_type = StockAdjustment.TYPE_IN if stock > current else StockAdjustment.TYPE_OUT
    return adjust_stock(product_id, adjustment_type, abs(stock - current), reason, notes, user)
