"""
Test suite for Appointments module
"""
from datetime import date, timedelta

from django.test import TestCase
from rest_framework import status

from backend.appointments.models import Appointment
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.notifications.models import Notification


def booking(**overrides):
    data = {
        'first_name': 'Jane',
        'last_name': 'Patient',
        'email': 'jane@test.com',
        'phone': '555-0100',
        'service': 'Flu Shot',
        'preferred_date': (date.today() + timedelta(days=2)).isoformat(),
        'preferred_time': '09:30 AM',
        'reason': 'Seasonal vaccination',
    }
    data.update(overrides)
    return data


class AppointmentRequestTests(TestCase):
    """Public booking form"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_guest_books_appointment(self):
        response = self.client.post('/api/appointments/request/', booking(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], Appointment.STATUS_PENDING)
        self.assertEqual(response.data['full_name'], 'Jane Patient')
        self.assertIsNone(response.data['user'])

        notification = Notification.objects.get(type='appointment')
        self.assertIn('Jane Patient requested Flu Shot', notification.message)
        self.assertEqual(notification.data['time'], '09:30 AM')

    def test_missing_fields_are_listed(self):
        data = booking()
        del data['phone']
        data['service'] = '  '
        response = self.client.post('/api/appointments/request/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['missing'], ['phone', 'service'])

    def test_invalid_date(self):
        response = self.client.post('/api/appointments/request/', booking(preferred_date='next tuesday'),
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('preferred_date', response.data['details'])

    def test_logged_in_booking_is_linked(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.post('/api/appointments/', booking(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user'], user.id)

        response = self.client.get('/api/appointments/my/')
        self.assertEqual(len(response.data), 1)


class AppointmentAdminTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()

    def test_customer_cannot_list(self):
        self.client.authenticate_user(self.user)
        self.assertEqual(self.client.get('/api/appointments/').status_code, status.HTTP_403_FORBIDDEN)

    def test_list_filters_status_case_insensitively(self):
        TestDataFactory.create_appointment(status=Appointment.STATUS_CONFIRMED)
        TestDataFactory.create_appointment()
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/appointments/?status=confirmed')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_confirming_notifies_patient(self):
        appointment = TestDataFactory.create_appointment(user=self.user)
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/appointments/{appointment.id}/', {
            'status': Appointment.STATUS_CONFIRMED, 'notes': 'Bring ID',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], 'Bring ID')
        notification = Notification.objects.get(user=self.user, type='appointment')
        self.assertIn('confirmed', notification.message)

    def test_notes_only_update_does_not_notify(self):
        appointment = TestDataFactory.create_appointment(user=self.user)
        self.client.authenticate_user(self.admin)
        self.client.patch(f'/api/appointments/{appointment.id}/', {'notes': 'Called back'}, format='json')
        self.assertFalse(Notification.objects.filter(user=self.user).exists())

    def test_delete(self):
        appointment = TestDataFactory.create_appointment()
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/appointments/{appointment.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Appointment.objects.exists())
