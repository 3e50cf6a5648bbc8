from django.contrib import admin
from .models import Appointment


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ['id', 'first_name', 'last_name', 'service', 'preferred_date', 'preferred_time', 'status']
    list_filter = ['status', 'service', 'preferred_date']
    search_fields = ['first_name', 'last_name', 'email', 'phone']
