import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from backend.core.exceptions import validation_error_response
from backend.core.permissions import IsAdminRole
from backend.core.throttling import ContactRateThrottle
from backend.core.utils import notify_admin_by_email, parse_limit
from backend.notifications.services import trigger_system_notification
from .models import ContactForm
from .serializers import ContactFormSerializer, ContactStatusSerializer

logger = logging.getLogger('backend.contact')


def _email_admin(contact):
    notify_admin_by_email(
        f"New contact message: {contact.subject or 'No subject'}",
        f"From: {contact.name} <{contact.email}>\n"
        f"Phone: {contact.phone or '-'}\n\n"
        f"{contact.message}\n",
    )


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
@throttle_classes([ContactRateThrottle])
def contact_list_create(request):
    """Submit the public contact form, or list submissions (admin)"""
    if request.method == 'GET':
        if not IsAdminRole().has_permission(request, None):
            return Response({'error': 'Admin access required.'},
                            status=status.HTTP_401_UNAUTHORIZED if not request.user.is_authenticated
                            else status.HTTP_403_FORBIDDEN)
        contacts = ContactForm.objects.all()
        status_filter = request.query_params.get('status')
        if status_filter:
            contacts = contacts.filter(status=status_filter)
        return Response(ContactFormSerializer(contacts[:parse_limit(request)], many=True).data)

    serializer = ContactFormSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    contact = serializer.save()
    logger.info(f"Contact form {contact.pk} received from {contact.email}")
    _email_admin(contact)
    trigger_system_notification('new-contact', {
        'contact_id': contact.pk,
        'name': contact.name,
        'email': contact.email,
        'subject': contact.subject or 'No subject',
    })
    return Response(ContactFormSerializer(contact).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def contact_detail(request, pk):
    contact = get_object_or_404(ContactForm, pk=pk)

    if request.method == 'GET':
        return Response(ContactFormSerializer(contact).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ContactStatusSerializer(contact, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        serializer.save()
        return Response(ContactFormSerializer(contact).data)
    else:  # DELETE
        contact.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
