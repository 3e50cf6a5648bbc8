"""
Refill and transfer requests: public submission, admin triage and stats
"""
import logging

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from backend.core.exceptions import validation_error_response
from backend.core.models import SiteSettings
from backend.core.permissions import IsAdminRole
from backend.core.utils import missing_fields, missing_fields_response, parse_limit
from backend.notifications.services import notify_user, trigger_system_notification
from .models import RefillRequest, TransferRequest
from .serializers import (
    RefillRequestSerializer, RefillRequestUpdateSerializer, AdminRefillCreateSerializer,
    TransferRequestSerializer, TransferRequestUpdateSerializer,
)

User = get_user_model()

logger = logging.getLogger('backend.prescriptions')


def _apply_status_change(request_obj, previous_status, label, description):
    """Stamp completion and tell the owner when an admin moves a request on"""
    if request_obj.status == previous_status:
        return
    update_fields = ['notified', 'updated_at']
    if request_obj.status == 'completed' and request_obj.completed_date is None:
        request_obj.completed_date = timezone.now()
        update_fields.append('completed_date')

    notify_user(
        request_obj.user, label, f"{label.capitalize()} request updated",
        f"Your {label} request for {description} is now {request_obj.get_status_display().lower()}.",
        data={f"{label}_request_id": request_obj.pk, 'status': request_obj.status},
    )
    request_obj.notified = True
    request_obj.save(update_fields=update_fields)
    logger.info(f"{label.capitalize()} request {request_obj.pk} {previous_status} -> {request_obj.status}")


def _filtered(queryset, request, params):
    for param in params:
        value = request.query_params.get(param)
        if value:
            queryset = queryset.filter(**{param: value})
    return queryset


# Refill requests
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def refill_request_list_create(request):
    """Submit a refill request (public) or list them (admin)"""
    if request.method == 'GET':
        if not IsAdminRole().has_permission(request, None):
            return Response({'error': 'Admin access required.'},
                            status=status.HTTP_401_UNAUTHORIZED if not request.user.is_authenticated
                            else status.HTTP_403_FORBIDDEN)
        refills = _filtered(RefillRequest.objects.select_related('user'), request, ['status', 'urgency'])
        refills = refills.order_by('-requested_date')[:parse_limit(request)]
        return Response(RefillRequestSerializer(refills, many=True).data)

    missing = missing_fields(request.data, ['medication', 'dosage'])
    if missing:
        return missing_fields_response(missing)

    serializer = RefillRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    refill = serializer.save(user=request.user if request.user.is_authenticated else None)
    trigger_system_notification('new-refill-request', {
        'refill_request_id': refill.pk,
        'medication': refill.medication,
        'urgency': refill.urgency,
    })
    return Response(RefillRequestSerializer(refill).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def refill_request_detail(request, pk):
    refill = get_object_or_404(RefillRequest.objects.select_related('user'), pk=pk)

    if request.method == 'GET':
        return Response(RefillRequestSerializer(refill).data)
    elif request.method in ('PUT', 'PATCH'):
        previous_status = refill.status
        serializer = RefillRequestUpdateSerializer(refill, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        refill = serializer.save()
        _apply_status_change(refill, previous_status, 'refill', refill.medication)
        return Response(RefillRequestSerializer(refill).data)
    else:  # DELETE
        refill.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def refill_request_stats(request):
    refills = RefillRequest.objects.all()
    return Response({
        'total': refills.count(),
        'pending': refills.filter(status='pending').count(),
        'approved': refills.filter(status='approved').count(),
        'completed': refills.filter(status='completed').count(),
        'urgent': refills.filter(urgency='urgent').exclude(status__in=['completed', 'rejected']).count(),
        'recent': RefillRequestSerializer(refills.order_by('-requested_date')[:5], many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def admin_refill_create(request):
    """Refill raised by staff on behalf of a patient account"""
    serializer = AdminRefillCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    data = serializer.validated_data
    user = get_object_or_404(User, pk=data['user_id'])
    refill = RefillRequest.objects.create(
        user=user,
        medication=data['medication_name'],
        prescription_number=data['prescription_number'],
        quantity=data['quantity'],
        dosage=data['dosage'],
        urgency=data['urgency'],
        notes=data['notes'],
        patient_name=user.name,
        patient_email=user.email,
        patient_phone=user.phone or '',
    )
    notify_user(user, 'refill', 'Refill request created',
                f"A refill request for {refill.medication} was created for you.",
                data={'refill_request_id': refill.pk})
    refill.notified = True
    refill.save(update_fields=['notified'])
    logger.info(f"Refill request {refill.pk} created for user {user.pk} by {request.user.email}")
    return Response(RefillRequestSerializer(refill).data, status=status.HTTP_201_CREATED)


# Transfer requests
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def transfer_request_list_create(request):
    """Submit a transfer request (public) or list them (admin)"""
    if request.method == 'GET':
        if not IsAdminRole().has_permission(request, None):
            return Response({'error': 'Admin access required.'},
                            status=status.HTTP_401_UNAUTHORIZED if not request.user.is_authenticated
                            else status.HTTP_403_FORBIDDEN)
        transfers = _filtered(TransferRequest.objects.select_related('user'), request, ['status'])
        transfers = transfers.order_by('-requested_date')[:parse_limit(request)]
        return Response(TransferRequestSerializer(transfers, many=True).data)

    serializer = TransferRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    transfer = serializer.save(
        user=request.user if request.user.is_authenticated else None,
        to_pharmacy=SiteSettings.load().site_name,
    )
    trigger_system_notification('new-transfer-request', {
        'transfer_request_id': transfer.pk,
        'pharmacy': transfer.current_pharmacy,
        'medications': transfer.medications,
    })
    return Response(TransferRequestSerializer(transfer).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def transfer_request_detail(request, pk):
    transfer = get_object_or_404(TransferRequest.objects.select_related('user'), pk=pk)

    if request.method == 'GET':
        return Response(TransferRequestSerializer(transfer).data)
    elif request.method in ('PUT', 'PATCH'):
        previous_status = transfer.status
        serializer = TransferRequestUpdateSerializer(transfer, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        transfer = serializer.save()
        _apply_status_change(transfer, previous_status, 'transfer', ', '.join(transfer.medications))
        return Response(TransferRequestSerializer(transfer).data)
    else:  # DELETE
        transfer.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def transfer_request_stats(request):
    transfers = TransferRequest.objects.all()
    return Response({
        'total': transfers.count(),
        'pending': transfers.filter(status='pending').count(),
        'in_progress': transfers.filter(status='in_progress').count(),
        'completed': transfers.filter(status='completed').count(),
        'recent': TransferRequestSerializer(transfers.order_by('-requested_date')[:5], many=True).data,
    })
