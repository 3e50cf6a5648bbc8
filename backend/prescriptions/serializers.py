from rest_framework import serializers

from backend.core.validators import PRESCRIPTION_CONTENT_TYPES, PRESCRIPTION_EXTENSIONS, validate_upload
from .models import Prescription, RefillRequest, TransferRequest

PATIENT_FIELDS = ['patient_name', 'patient_email', 'patient_phone', 'date_of_birth']


class PrescriptionSerializer(serializers.ModelSerializer):
    file_url = serializers.SerializerMethodField()

    class Meta:
        model = Prescription
        fields = ['id', 'user', 'request_type', 'medication', 'dosage', 'instructions', 'status',
                  *PATIENT_FIELDS, 'pharmacy_name', 'pharmacy_phone', 'file', 'file_url',
                  'created_at', 'updated_at']
        read_only_fields = ['user', 'status', 'created_at', 'updated_at']
        extra_kwargs = {'file': {'write_only': True, 'required': False}}

    def validate_file(self, value):
        if value is None:
            return value
        return validate_upload(value, PRESCRIPTION_EXTENSIONS, PRESCRIPTION_CONTENT_TYPES)

    def get_file_url(self, obj):
        return obj.file.url if obj.file else None


class PrescriptionStatusSerializer(serializers.ModelSerializer):
    class Meta:
        model = Prescription
        fields = ['status', 'instructions']


class RefillRequestSerializer(serializers.ModelSerializer):
    user_email = serializers.EmailField(source='user.email', read_only=True, allow_null=True)

    class Meta:
        model = RefillRequest
        fields = ['id', 'user', 'user_email', 'prescription', 'medication', 'dosage', 'prescription_number',
                  'quantity', 'urgency', 'status', 'notes', 'admin_notes', *PATIENT_FIELDS,
                  'notified', 'requested_date', 'completed_date', 'updated_at']
        read_only_fields = ['user', 'status', 'admin_notes', 'notified', 'requested_date',
                            'completed_date', 'updated_at']


class RefillRequestUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = RefillRequest
        fields = ['status', 'admin_notes', 'notes', 'quantity', 'urgency', 'dosage', 'prescription_number']


class AdminRefillCreateSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    medication_name = serializers.CharField(max_length=255)
    prescription_number = serializers.CharField(max_length=100)
    quantity = serializers.IntegerField(min_value=1)
    dosage = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    urgency = serializers.ChoiceField(choices=RefillRequest.URGENCY_CHOICES, default='normal')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class MedicationsField(serializers.Field):
    """Accepts a list of names or a comma-separated string; stores a list"""
    default_error_messages = {
        'invalid': 'Provide medications as a list or a comma-separated string.',
        'empty': 'At least one medication is required.',
    }

    def to_internal_value(self, data):
        if isinstance(data, str):
            items = data.split(',')
        elif isinstance(data, (list, tuple)):
            items = data
        else:
            self.fail('invalid')
        medications = [str(item).strip() for item in items if str(item).strip()]
        if not medications:
            self.fail('empty')
        return medications

    def to_representation(self, value):
        return list(value or [])


class TransferRequestSerializer(serializers.ModelSerializer):
    medications = MedicationsField()
    user_email = serializers.EmailField(source='user.email', read_only=True, allow_null=True)

    class Meta:
        model = TransferRequest
        fields = ['id', 'user', 'user_email', 'current_pharmacy', 'current_pharmacy_phone', 'to_pharmacy',
                  'medications', 'prescription_number', 'status', 'notes', 'admin_notes', *PATIENT_FIELDS,
                  'notified', 'requested_date', 'completed_date', 'updated_at']
        read_only_fields = ['user', 'to_pharmacy', 'status', 'admin_notes', 'notified', 'requested_date',
                            'completed_date', 'updated_at']


class TransferRequestUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = TransferRequest
        fields = ['status', 'admin_notes', 'notes', 'to_pharmacy']
