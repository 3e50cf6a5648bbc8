"""
Cache invalidation signals
Automatically invalidate cache when data changes
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import (
    invalidate_products_cache, invalidate_dashboard_cache, invalidate_settings_cache,
    invalidate_blog_cache, invalidate_notification_counts,
)

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

PRODUCT_MODELS = ['Product', 'Category', 'ProductVariant', 'ProductImage']
DASHBOARD_MODELS = ['Order', 'OrderItem', 'Prescription', 'RefillRequest', 'TransferRequest',
                    'Appointment', 'ContactForm', 'Product']


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations (product sync) to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def _on_commit(func, label):
    """Run an invalidation after the surrounding transaction commits"""
    def run():
        try:
            func()
        except Exception as e:
            logger.warning(f"Error invalidating {label} cache: {e}")
    transaction.on_commit(run)


# --- Signal Handlers ---

@receiver([post_save, post_delete])
def invalidate_products_cache_signal(sender, instance, **kwargs):
    """Invalidate products cache when catalog rows change"""
    if is_suspended() or sender.__name__ not in PRODUCT_MODELS:
        return
    if sender._meta.app_label != 'catalog':
        return
    _on_commit(invalidate_products_cache, 'products')


@receiver([post_save, post_delete])
def invalidate_dashboard_cache_signal(sender, instance, **kwargs):
    """Invalidate dashboard KPIs when orders and requests change"""
    if is_suspended() or sender.__name__ not in DASHBOARD_MODELS:
        return
    _on_commit(invalidate_dashboard_cache, 'dashboard')


@receiver([post_save, post_delete])
def invalidate_settings_cache_signal(sender, instance, **kwargs):
    if sender.__name__ != 'SiteSettings':
        return
    _on_commit(invalidate_settings_cache, 'settings')


@receiver([post_save, post_delete])
def invalidate_blog_cache_signal(sender, instance, **kwargs):
    """Invalidate public blog listings when posts change"""
    if is_suspended() or sender.__name__ != 'BlogPost':
        return
    _on_commit(invalidate_blog_cache, 'blog')


@receiver([post_save, post_delete])
def invalidate_notification_count_signal(sender, instance, **kwargs):
    if sender.__name__ != 'Notification':
        return
    _on_commit(invalidate_notification_counts, 'notification count')
