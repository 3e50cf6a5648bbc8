from rest_framework import serializers
from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'type', 'title', 'message', 'data', 'user', 'admin_only', 'read', 'read_at', 'created_at']
        read_only_fields = ['read_at', 'created_at']


class NotificationCreateSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Notification.TYPE_CHOICES, default='system')
    title = serializers.CharField(max_length=255)
    message = serializers.CharField()
    user_id = serializers.IntegerField(required=False, allow_null=True)
    data = serializers.JSONField(required=False)
