from django.urls import path
from .views import (
    notification_list_create, unread_count, poll, mark_read, mark_all_read,
    notification_delete, notification_stats,
)

urlpatterns = [
    path('notifications/', notification_list_create, name='notification-list-create'),
    path('notifications/unread-count/', unread_count, name='notification-unread-count'),
    path('notifications/poll/', poll, name='notification-poll'),
    path('notifications/mark-all-read/', mark_all_read, name='notification-mark-all-read'),
    path('notifications/stats/overview/', notification_stats, name='notification-stats'),
    path('notifications/<int:pk>/read/', mark_read, name='notification-mark-read'),
    path('notifications/<int:pk>/', notification_delete, name='notification-delete'),
]
