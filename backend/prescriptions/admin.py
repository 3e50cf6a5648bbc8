from django.contrib import admin
from .models import Prescription, RefillRequest, TransferRequest


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ['id', 'medication', 'request_type', 'patient_name', 'status', 'created_at']
    list_filter = ['request_type', 'status', 'created_at']
    search_fields = ['medication', 'patient_name', 'patient_email', 'patient_phone']


@admin.register(RefillRequest)
class RefillRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'medication', 'patient_name', 'urgency', 'status', 'notified', 'requested_date']
    list_filter = ['status', 'urgency', 'requested_date']
    search_fields = ['medication', 'prescription_number', 'patient_name', 'patient_email']


@admin.register(TransferRequest)
class TransferRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'current_pharmacy', 'patient_name', 'status', 'notified', 'requested_date']
    list_filter = ['status', 'requested_date']
    search_fields = ['current_pharmacy', 'prescription_number', 'patient_name', 'patient_email']
