import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import validation_error_response
from backend.core.permissions import IsAdminRole
from backend.core.utils import missing_fields, missing_fields_response, parse_limit
from backend.notifications.services import notify_user, trigger_system_notification
from .models import Prescription
from .serializers import PrescriptionSerializer, PrescriptionStatusSerializer

logger = logging.getLogger('backend.prescriptions')

REFILL_UPLOAD_REQUIRED = ['patient_name', 'patient_phone', 'medication']
TRANSFER_UPLOAD_REQUIRED = ['patient_name', 'patient_phone', 'current_pharmacy', 'medication']


def _submit_prescription(request, request_type=None, **extra):
    serializer = PrescriptionSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    request_type = request_type or serializer.validated_data.get('request_type', 'standard')

    prescription = serializer.save(
        user=request.user if request.user.is_authenticated else None,
        request_type=request_type,
        **extra,
    )
    logger.info(f"Prescription {prescription.pk} submitted ({request_type}, "
                f"file={'yes' if prescription.file else 'no'})")
    trigger_system_notification('new-prescription', {
        'prescription_id': prescription.pk,
        'patient': prescription.patient_name or (request.user.email if request.user.is_authenticated else ''),
        'request_type': request_type,
        'medication': prescription.medication,
    })
    return Response(PrescriptionSerializer(prescription).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def refill_upload(request):
    """Public refill form with an optional prescription image or PDF"""
    missing = missing_fields(request.data, REFILL_UPLOAD_REQUIRED)
    if missing:
        return missing_fields_response(missing)
    return _submit_prescription(request, 'refill')


@api_view(['POST'])
@permission_classes([AllowAny])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def transfer_upload(request):
    """Public transfer form; the current pharmacy is stored as the pharmacy name"""
    missing = missing_fields(request.data, TRANSFER_UPLOAD_REQUIRED)
    if missing:
        return missing_fields_response(missing)
    return _submit_prescription(
        request, 'transfer',
        pharmacy_name=request.data.get('current_pharmacy'),
        pharmacy_phone=request.data.get('current_pharmacy_phone', ''),
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def prescription_list_create(request):
    """List all prescriptions (admin) or submit one as the current user"""
    if request.method == 'GET':
        if not request.user.is_admin_role:
            return Response({'error': 'Admin access required.'}, status=status.HTTP_403_FORBIDDEN)
        prescriptions = Prescription.objects.select_related('user')
        for param in ('status', 'request_type'):
            value = request.query_params.get(param)
            if value:
                prescriptions = prescriptions.filter(**{param: value})
        return Response(PrescriptionSerializer(prescriptions[:parse_limit(request)], many=True).data)

    if missing_fields(request.data, ['medication']):
        return missing_fields_response(['medication'])
    return _submit_prescription(request)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_prescriptions(request):
    prescriptions = Prescription.objects.filter(user=request.user)
    return Response(PrescriptionSerializer(prescriptions, many=True).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def prescription_detail(request, pk):
    prescription = get_object_or_404(Prescription, pk=pk)

    if request.method == 'GET':
        return Response(PrescriptionSerializer(prescription).data)
    elif request.method in ('PUT', 'PATCH'):
        previous_status = prescription.status
        serializer = PrescriptionStatusSerializer(prescription, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        prescription = serializer.save()
        if prescription.status != previous_status:
            notify_user(prescription.user, 'prescription', 'Prescription updated',
                        f"Your prescription for {prescription.medication} is now {prescription.status}.",
                        data={'prescription_id': prescription.pk, 'status': prescription.status})
        return Response(PrescriptionSerializer(prescription).data)
    else:  # DELETE
        if prescription.file:
            prescription.file.delete(save=False)
        prescription.delete()
        logger.info(f"Prescription {pk} deleted by {request.user.email}")
        return Response(status=status.HTTP_204_NO_CONTENT)
