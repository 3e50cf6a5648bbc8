from rest_framework import serializers
from .models import Appointment


class AppointmentSerializer(serializers.ModelSerializer):
    full_name = serializers.ReadOnlyField()

    class Meta:
        model = Appointment
        fields = ['id', 'user', 'first_name', 'last_name', 'full_name', 'email', 'phone', 'service',
                  'preferred_date', 'preferred_time', 'reason', 'status', 'notes', 'created_at', 'updated_at']
        read_only_fields = ['user', 'status', 'notes', 'created_at', 'updated_at']


class AppointmentUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Appointment
        fields = ['status', 'notes', 'preferred_date', 'preferred_time', 'service']
