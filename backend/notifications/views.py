import logging
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.cache_utils import (
    NOTIFICATION_COUNT_CACHE_TTL, notification_count_cache_key, invalidate_notification_counts,
)
from backend.core.exceptions import validation_error_response
from backend.core.permissions import IsAdminRole
from backend.core.utils import parse_bool, parse_limit
from .models import Notification
from .serializers import NotificationSerializer, NotificationCreateSerializer
from .services import create_notification

User = get_user_model()

logger = logging.getLogger('backend.notifications')


def visible_notifications(user):
    """Admins see admin notifications plus their own; everyone else only their own"""
    if user.is_admin_role:
        return Notification.objects.filter(Q(user__isnull=True) | Q(user=user))
    return Notification.objects.filter(user=user)


def unread_count_for(user):
    cache_key = notification_count_cache_key(user.pk, user.is_admin_role)
    count = cache.get(cache_key)
    if count is None:
        count = visible_notifications(user).filter(read=False).count()
        cache.set(cache_key, count, NOTIFICATION_COUNT_CACHE_TTL)
    return count


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def notification_list_create(request):
    """List visible notifications, or (admin) create one"""
    if request.method == 'GET':
        notifications = visible_notifications(request.user)

        notification_type = request.query_params.get('type')
        if notification_type:
            notifications = notifications.filter(type=notification_type)
        read = parse_bool(request.query_params.get('read'))
        if read is not None:
            notifications = notifications.filter(read=read)

        limit = parse_limit(request, default=50)
        return Response({
            'notifications': NotificationSerializer(notifications[:limit], many=True).data,
            'unread_count': unread_count_for(request.user),
        })

    if not request.user.is_admin_role:
        return Response({'error': 'Admin access required.'}, status=status.HTTP_403_FORBIDDEN)

    serializer = NotificationCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    data = serializer.validated_data
    user = None
    if data.get('user_id'):
        user = get_object_or_404(User, pk=data['user_id'])
    notification = create_notification(
        data['type'], data['title'], data['message'], user=user, data=data.get('data'),
    )
    return Response(NotificationSerializer(notification).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def unread_count(request):
    return Response({'count': unread_count_for(request.user)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def poll(request):
    """
    Polling fallback for clients without a socket connection.
    Returns notifications with an id greater than ``since``.
    """
    try:
        since = int(request.query_params.get('since', 0))
    except (TypeError, ValueError):
        return Response({'error': 'since must be a notification id'}, status=status.HTTP_400_BAD_REQUEST)

    notifications = visible_notifications(request.user).filter(id__gt=since).order_by('id')
    notifications = list(notifications[:parse_limit(request, default=50)])
    return Response({
        'notifications': NotificationSerializer(notifications, many=True).data,
        'latest_id': notifications[-1].id if notifications else since,
        'unread_count': unread_count_for(request.user),
        'server_time': timezone.now().isoformat(),
    })


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def mark_read(request, pk):
    notification = get_object_or_404(visible_notifications(request.user), pk=pk)
    if not notification.read:
        notification.read = True
        notification.read_at = timezone.now()
        notification.save(update_fields=['read', 'read_at'])
    return Response(NotificationSerializer(notification).data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def mark_all_read(request):
    updated = visible_notifications(request.user).filter(read=False).update(read=True, read_at=timezone.now())
    # Bulk update bypasses model signals
    invalidate_notification_counts()
    logger.info(f"Marked {updated} notification(s) read for {request.user.email}")
    return Response({'updated': updated})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def notification_delete(request, pk):
    notification = get_object_or_404(visible_notifications(request.user), pk=pk)
    notification.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def notification_stats(request):
    notifications = visible_notifications(request.user)
    now = timezone.now()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

    type_counts = {
        row['type']: row['count']
        for row in notifications.values('type').annotate(count=Count('id')).order_by()
    }
    return Response({
        'total': notifications.count(),
        'unread': notifications.filter(read=False).count(),
        'today': notifications.filter(created_at__gte=start_of_day).count(),
        'this_week': notifications.filter(created_at__gte=now - timedelta(days=7)).count(),
        'this_month': notifications.filter(created_at__gte=now - timedelta(days=30)).count(),
        'type_counts': type_counts,
        'recent': NotificationSerializer(notifications[:5], many=True).data,
    })
