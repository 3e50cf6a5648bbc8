"""
Low stock alerts

The previous stock level is captured before save so an alert is raised
only when a product crosses its threshold, not on every save below it.
"""
from django.db.models.signals import pre_save, post_save
from django.dispatch import receiver
import logging

from .models import Product

logger = logging.getLogger('backend.catalog')


@receiver(pre_save, sender=Product)
def remember_previous_stock(sender, instance, **kwargs):
    if instance.pk:
        instance._previous_stock = (
            Product.objects.filter(pk=instance.pk).values_list('stock', flat=True).first()
        )
    else:
        instance._previous_stock = None


@receiver(post_save, sender=Product)
def alert_low_stock(sender, instance, created, **kwargs):
    if created or not instance.is_active or not instance.is_low_stock:
        return
    previous = getattr(instance, '_previous_stock', None)
    if previous is None or previous <= instance.low_stock_threshold:
        return

    from backend.notifications.services import trigger_system_notification
    logger.info(f"Product {instance.pk} low on stock ({instance.stock})")
    trigger_system_notification('low-stock', {
        'product_id': instance.pk,
        'product': instance.name,
        'stock': instance.stock,
    })
