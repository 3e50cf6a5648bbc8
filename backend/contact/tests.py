"""
Test suite for Contact module
"""
from unittest.mock import patch

from django.core import mail
from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework import status

from backend.contact.models import ContactForm
from backend.core.throttling import ContactRateThrottle
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.notifications.models import Notification


@override_settings(ADMIN_NOTIFICATION_EMAIL='front-desk@pharmacy.test')
class ContactFormTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def test_submit_contact_form(self):
        response = self.client.post('/api/contact/', {
            'name': 'Jane Patient',
            'email': 'jane@test.com',
            'message': 'Are you open on Sunday?',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'new')

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['front-desk@pharmacy.test'])
        self.assertEqual(mail.outbox[0].subject, 'New contact message: No subject')

        notification = Notification.objects.get(type='contact')
        self.assertEqual(notification.data['subject'], 'No subject')

    def test_blank_message_rejected(self):
        response = self.client.post('/api/contact/', {
            'name': 'Jane Patient', 'email': 'jane@test.com', 'message': '   ',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('message', response.data['details'])
        self.assertFalse(ContactForm.objects.exists())

    def test_invalid_email_rejected(self):
        response = self.client.post('/api/contact/', {
            'name': 'Jane Patient', 'email': 'not-an-email', 'message': 'Hello',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch.object(ContactRateThrottle, 'rate', '2/hour', create=True)
    def test_submissions_are_throttled(self):
        data = {'name': 'Jane Patient', 'email': 'jane@test.com', 'message': 'Hello'}
        for _ in range(2):
            self.assertEqual(self.client.post('/api/contact/', data, format='json').status_code,
                             status.HTTP_201_CREATED)
        response = self.client.post('/api/contact/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertIn('retry_after', response.data)

    def test_list_requires_admin(self):
        self.assertEqual(self.client.get('/api/contact/').status_code, status.HTTP_401_UNAUTHORIZED)
        self.client.authenticate_user(TestDataFactory.create_user())
        self.assertEqual(self.client.get('/api/contact/').status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_lists_and_marks_responded(self):
        contact = TestDataFactory.create_contact()
        TestDataFactory.create_contact(status='read')
        self.client.authenticate_user(TestDataFactory.create_admin())

        response = self.client.get('/api/contact/?status=new')
        self.assertEqual([c['id'] for c in response.data], [contact.id])

        response = self.client.patch(f'/api/contact/{contact.id}/', {'status': 'responded'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'responded')
