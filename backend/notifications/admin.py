from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['title', 'type', 'user', 'admin_only', 'read', 'created_at']
    list_filter = ['type', 'read', 'admin_only', 'created_at']
    search_fields = ['title', 'message', 'user__email']
    ordering = ['-created_at']
