"""
WooCommerce product import and order status mapping
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils.html import strip_tags

from backend.catalog.models import Category, Product
from backend.core.cache_signals import suspend_cache_signals
from backend.core.cache_utils import invalidate_dashboard_cache, invalidate_products_cache
from backend.core.integrations import IntegrationError
from backend.orders.models import Order
from .client import WooCommerceClient

logger = logging.getLogger('backend.woocommerce')

# WooCommerce order status -> local order status
ORDER_STATUS_MAP = {
    'pending': Order.STATUS_PENDING,
    'on-hold': Order.STATUS_PENDING,
    'processing': Order.STATUS_PROCESSING,
    'completed': Order.STATUS_COMPLETED,
    'cancelled': Order.STATUS_CANCELLED,
    'refunded': Order.STATUS_CANCELLED,
    'failed': Order.STATUS_FAILED,
}


def _decimal(value):
    try:
        return Decimal(str(value or '0')).quantize(Decimal('0.01'))
    except InvalidOperation:
        return Decimal('0.00')


def product_fields(wc_product):
    """Local Product field values for a WooCommerce product payload"""
    categories = wc_product.get('categories') or []
    images = wc_product.get('images') or []
    category = None
    if categories and categories[0].get('name'):
        category, _ = Category.objects.get_or_create(name=strip_tags(categories[0]['name']).strip())

    return {
        'name': strip_tags(wc_product.get('name') or '').strip() or f"Product {wc_product.get('id')}",
        'description': strip_tags(wc_product.get('description') or wc_product.get('short_description') or '').strip(),
        'price': _decimal(wc_product.get('price') or wc_product.get('regular_price')),
        'stock': max(int(wc_product.get('stock_quantity') or 0), 0),
        'image_url': images[0].get('src', '') if images else '',
        'category': category,
        'is_active': wc_product.get('status', 'publish') == 'publish',
    }


def upsert_product(wc_product):
    """Create or update the local product linked to a WooCommerce product; returns (product, created)"""
    return Product.objects.update_or_create(
        woocommerce_id=int(wc_product['id']),
        defaults=product_fields(wc_product),
    )


def deactivate_product(woocommerce_id):
    # Queryset updates bypass the save signals that clear cached listings
    updated = Product.objects.filter(woocommerce_id=woocommerce_id).update(is_active=False)
    if updated:
        transaction.on_commit(invalidate_products_cache)
    return updated


def sync_products(wc_settings):
    """
    Import every store product.
    Cache invalidation signals are suspended for the bulk upsert and the
    product cache is invalidated once at the end.
    """
    client = WooCommerceClient.from_settings(wc_settings)
    wc_settings.mark_sync(wc_settings.SYNC_RUNNING)
    created = updated = 0
    try:
        with suspend_cache_signals(), transaction.atomic():
            for wc_product in client.products():
                _, was_created = upsert_product(wc_product)
                if was_created:
                    created += 1
                else:
                    updated += 1
    except IntegrationError as e:
        wc_settings.mark_sync(wc_settings.SYNC_ERROR, e.message)
        raise

    invalidate_products_cache()
    invalidate_dashboard_cache()
    wc_settings.mark_sync(wc_settings.SYNC_SUCCESS)
    logger.info(f"WooCommerce product sync finished: {created} created, {updated} updated")
    return {'synced': created + updated, 'created': created, 'updated': updated}


def apply_order_status(orders, woocommerce_status):
    """Map a WooCommerce status onto local orders; returns the number updated"""
    local_status = ORDER_STATUS_MAP.get(woocommerce_status)
    if local_status is None:
        logger.warning(f"Unmapped WooCommerce order status: {woocommerce_status}")
        return 0
    count = 0
    for order in orders:
        if order.status != local_status:
            order.status = local_status
            order.save(update_fields=['status', 'updated_at'])
            count += 1
    return count
