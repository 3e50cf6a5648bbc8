"""
Room broadcast for real-time notifications

Messages are published on Redis pub/sub channels, one per room
(``admin-room`` or ``user-<id>``), for the socket gateway to relay to
connected clients. Delivery is fire-and-forget: nothing is retried and a
missing or failing broker never fails the request that produced the event.
"""
import json
import logging

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django_redis import get_redis_connection

logger = logging.getLogger('backend.notifications')

ADMIN_ROOM = 'admin-room'


def user_room(user_id):
    return f"user-{user_id}"


def channel_for(room):
    return f"{settings.NOTIFICATION_CHANNEL_PREFIX}:{room}"


def _connection():
    """Redis connection behind the default cache, or None for non-Redis caches"""
    try:
        return get_redis_connection("default")
    except NotImplementedError:
        return None


def publish(room, event, payload):
    """Publish ``payload`` to ``room``. Returns True when the broker accepted it."""
    conn = _connection()
    if conn is None:
        logger.debug(f"No notification broker configured, dropped '{event}' for {room}")
        return False

    message = json.dumps({'event': event, 'room': room, 'payload': payload}, cls=DjangoJSONEncoder)
    try:
        receivers = conn.publish(channel_for(room), message)
        logger.debug(f"Broadcast '{event}' to {room} ({receivers} subscriber(s))")
        return True
    except Exception as e:
        logger.warning(f"Failed to broadcast '{event}' to {room}: {str(e)}")
        return False


def broker_status():
    conn = _connection()
    if conn is None:
        return 'disabled'
    try:
        conn.ping()
        return 'ok'
    except Exception as e:
        logger.warning(f"Notification broker ping failed: {str(e)}")
        return 'error'
