import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import validation_error_response
from backend.core.permissions import IsAdminRole
from backend.core.utils import missing_fields, missing_fields_response, parse_limit
from backend.notifications.services import notify_user, trigger_system_notification
from .models import Appointment
from .serializers import AppointmentSerializer, AppointmentUpdateSerializer

logger = logging.getLogger('backend.appointments')

REQUIRED_FIELDS = ['first_name', 'last_name', 'phone', 'email', 'service', 'preferred_date', 'preferred_time']


def _create_appointment(request, user=None):
    missing = missing_fields(request.data, REQUIRED_FIELDS)
    if missing:
        return missing_fields_response(missing)

    serializer = AppointmentSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    appointment = serializer.save(user=user)
    logger.info(f"Appointment {appointment.pk} requested for {appointment.preferred_date}")
    trigger_system_notification('new-appointment', {
        'appointment_id': appointment.pk,
        'name': appointment.full_name,
        'service': appointment.service,
        'date': appointment.preferred_date.isoformat(),
        'time': appointment.preferred_time,
    })
    return Response(AppointmentSerializer(appointment).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def request_appointment(request):
    """Public booking form"""
    return _create_appointment(request, request.user if request.user.is_authenticated else None)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointment_list_create(request):
    """List appointments (admin) or book one for the current user"""
    if request.method == 'GET':
        if not request.user.is_admin_role:
            return Response({'error': 'Admin access required.'}, status=status.HTTP_403_FORBIDDEN)
        appointments = Appointment.objects.select_related('user')
        status_filter = request.query_params.get('status')
        if status_filter:
            appointments = appointments.filter(status=status_filter.upper())
        return Response(AppointmentSerializer(appointments[:parse_limit(request)], many=True).data)

    return _create_appointment(request, request.user)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_appointments(request):
    appointments = Appointment.objects.filter(user=request.user)
    return Response(AppointmentSerializer(appointments, many=True).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def appointment_detail(request, pk):
    appointment = get_object_or_404(Appointment.objects.select_related('user'), pk=pk)

    if request.method == 'GET':
        return Response(AppointmentSerializer(appointment).data)
    elif request.method in ('PUT', 'PATCH'):
        previous_status = appointment.status
        serializer = AppointmentUpdateSerializer(appointment, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        appointment = serializer.save()
        if appointment.status != previous_status:
            logger.info(f"Appointment {pk} {previous_status} -> {appointment.status}")
            notify_user(
                appointment.user, 'appointment', 'Appointment updated',
                f"Your {appointment.service} appointment on {appointment.preferred_date} "
                f"is now {appointment.get_status_display().lower()}.",
                data={'appointment_id': appointment.pk, 'status': appointment.status},
            )
        return Response(AppointmentSerializer(appointment).data)
    else:  # DELETE
        appointment.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
