"""
Order creation shared by the order, public order and WooCommerce payment endpoints
"""
import logging

from django.db import transaction

from backend.catalog.models import Product
from backend.core.utils import notify_admin_by_email
from backend.notifications.services import trigger_system_notification
from .models import Order, OrderItem

logger = logging.getLogger('backend.orders')


class OrderError(Exception):
    """Order input that passed field validation but cannot be fulfilled"""


def create_order(items, user=None, customer=None, shipping_address='', notes='',
                 payment_method='', payment_intent_id='', woocommerce_order_id=None):
    """
    Create an order with its items in one transaction.

    ``items`` are validated dicts with product_id, quantity and price; the
    total is computed from them rather than trusted from the client.
    """
    customer = customer or {}
    product_ids = {item['product_id'] for item in items}
    products = Product.objects.in_bulk(product_ids)
    missing = sorted(product_ids - set(products))
    if missing:
        raise OrderError(f"Unknown product(s): {', '.join(str(pk) for pk in missing)}")

    with transaction.atomic():
        order = Order.objects.create(
            user=user,
            customer_name=customer.get('name') or (user.name if user else ''),
            customer_email=customer.get('email') or (user.email if user else ''),
            customer_phone=customer.get('phone') or (user.phone or '' if user else ''),
            shipping_address=shipping_address or '',
            notes=notes or '',
            payment_method=payment_method,
            payment_intent_id=payment_intent_id,
            woocommerce_order_id=woocommerce_order_id,
        )
        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product=products[item['product_id']],
                product_name=products[item['product_id']].name,
                quantity=item['quantity'],
                price=item['price'],
            )
            for item in items
        ])
        order.recalculate_total()

    logger.info(f"Order {order.pk} created ({len(items)} item(s), total {order.total})")
    trigger_system_notification('new-order', {
        'order_id': order.pk,
        'customer': order.customer_label,
        'total': order.total,
    })
    return order


def email_admin_about_order(order):
    lines = '\n'.join(
        f"  - {item.product_name} x {item.quantity} @ ${item.price}" for item in order.items.all()
    )
    notify_admin_by_email(
        f"New order #{order.pk}",
        f"A new order was placed.\n\n"
        f"Customer: {order.customer_name} <{order.customer_email}> {order.customer_phone}\n"
        f"Total: ${order.total}\n\nItems:\n{lines}\n",
    )
