"""
Notification creation and system event templates
"""
import logging
from decimal import Decimal

from django.db import transaction

from .broadcast import ADMIN_ROOM, publish, user_room
from .models import Notification

logger = logging.getLogger('backend.notifications')


class _TemplateValues(dict):
    def __missing__(self, key):
        return ''


# event -> (notification type, title, message template)
SYSTEM_EVENTS = {
    'new-order': ('order', 'New Order', 'Order #{order_id} placed by {customer} for ${total}'),
    'new-appointment': ('appointment', 'New Appointment Request',
                        '{name} requested {service} on {date} at {time}'),
    'new-prescription': ('prescription', 'New Prescription', '{patient} submitted a {request_type} prescription for {medication}'),
    'new-refill-request': ('refill', 'New Refill Request', 'Refill requested for {medication} ({urgency})'),
    'new-transfer-request': ('transfer', 'New Transfer Request', 'Transfer requested from {pharmacy}'),
    'new-contact': ('contact', 'New Contact Message', '{name} ({email}) sent a message: {subject}'),
    'low-stock': ('inventory', 'Low Stock Alert', '{product} is low on stock ({stock} left)'),
    'new-review': ('review', 'New Product Review', '{name} rated {product} {rating}/5'),
    'payment-success': ('payment', 'Payment Received', 'Payment of ${amount} succeeded for order #{order_id}'),
    'payment-failed': ('payment', 'Payment Failed', 'Payment failed for order #{order_id}: {reason}'),
}


def _broadcast_after_commit(notification):
    from .serializers import NotificationSerializer

    room = user_room(notification.user_id) if notification.user_id else ADMIN_ROOM
    payload = NotificationSerializer(notification).data
    transaction.on_commit(lambda: publish(room, 'notification', payload))


def create_notification(type, title, message, user=None, admin_only=False, data=None):
    """
    Persist a notification and broadcast it.

    Notifications with a user go to that user's room; the rest go to the
    admin room.
    """
    notification = Notification.objects.create(
        type=type,
        title=title,
        message=message,
        user=user,
        admin_only=admin_only or user is None,
        data=data or {},
    )
    _broadcast_after_commit(notification)
    logger.info(f"Notification {notification.pk} created ({type}) for "
                f"{'user ' + str(user.pk) if user else 'admins'}")
    return notification


def trigger_system_notification(event, data=None):
    """
    Admin notification for a system event (new order, low stock, ...).
    Failures are logged; the caller's operation never fails because of them.
    """
    template = SYSTEM_EVENTS.get(event)
    if template is None:
        logger.warning(f"Unknown system notification event: {event}")
        return None

    data = {key: str(value) if isinstance(value, Decimal) else value for key, value in (data or {}).items()}
    notification_type, title, message_template = template
    try:
        message = message_template.format_map(_TemplateValues(data))
        return create_notification(
            notification_type, title, message,
            admin_only=True,
            data={'event': event, **data},
        )
    except Exception as e:
        logger.error(f"Failed to create system notification {event}: {str(e)}")
        return None


def notify_user(user, type, title, message, data=None):
    """Notification addressed to one user; no-op for guest records"""
    if user is None:
        return None
    try:
        return create_notification(type, title, message, user=user, data=data)
    except Exception as e:
        logger.error(f"Failed to notify user {user.pk}: {str(e)}")
        return None
