"""
Test suite for Prescriptions module
Tests: prescription uploads, refill and transfer requests, admin triage, stats
"""
import shutil
import tempfile

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status

from backend.core.models import SiteSettings
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.notifications.models import Notification
from backend.prescriptions.models import Prescription, RefillRequest, TransferRequest

MEDIA_ROOT = tempfile.mkdtemp()


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class PrescriptionUploadTests(TestCase):
    """Public refill and transfer forms with file uploads"""

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_refill_upload_with_pdf(self):
        upload = SimpleUploadedFile('script.pdf', b'%PDF-1.4 test', content_type='application/pdf')
        response = self.client.post('/api/prescriptions/refill/', {
            'patient_name': 'Jane Patient',
            'patient_phone': '555-0100',
            'medication': 'Atorvastatin',
            'file': upload,
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['request_type'], 'refill')
        self.assertIsNotNone(response.data['file_url'])

        prescription = Prescription.objects.get(pk=response.data['id'])
        self.assertIsNone(prescription.user)
        self.assertTrue(Notification.objects.filter(type='prescription', admin_only=True).exists())

    def test_refill_upload_without_file(self):
        response = self.client.post('/api/prescriptions/refill/', {
            'patient_name': 'Jane Patient',
            'patient_phone': '555-0100',
            'medication': 'Atorvastatin',
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['file_url'])

    def test_refill_upload_missing_fields(self):
        response = self.client.post('/api/prescriptions/refill/', {'medication': 'Atorvastatin'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['missing'], ['patient_name', 'patient_phone'])

    def test_rejects_unsupported_file_type(self):
        upload = SimpleUploadedFile('script.exe', b'MZ', content_type='application/octet-stream')
        response = self.client.post('/api/prescriptions/refill/', {
            'patient_name': 'Jane Patient',
            'patient_phone': '555-0100',
            'medication': 'Atorvastatin',
            'file': upload,
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('file', response.data['details'])

    def test_transfer_upload_records_pharmacy(self):
        response = self.client.post('/api/prescriptions/transfer/', {
            'patient_name': 'Jane Patient',
            'patient_phone': '555-0100',
            'current_pharmacy': 'Corner Drugs',
            'current_pharmacy_phone': '555-0200',
            'medication': 'Metformin',
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['request_type'], 'transfer')
        self.assertEqual(response.data['pharmacy_name'], 'Corner Drugs')
        self.assertEqual(response.data['pharmacy_phone'], '555-0200')


class PrescriptionAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()

    def test_user_submits_prescription(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/prescriptions/', {'medication': 'Insulin', 'dosage': '10 units'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user'], self.user.id)
        self.assertEqual(response.data['request_type'], 'standard')

    def test_medication_required(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/prescriptions/', {'dosage': '10 units'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_is_admin_only(self):
        self.client.authenticate_user(self.user)
        self.assertEqual(self.client.get('/api/prescriptions/').status_code, status.HTTP_403_FORBIDDEN)

        TestDataFactory.create_prescription(request_type='refill')
        TestDataFactory.create_prescription()
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/prescriptions/?request_type=refill')
        self.assertEqual(len(response.data), 1)

    def test_my_prescriptions(self):
        TestDataFactory.create_prescription(user=self.user)
        TestDataFactory.create_prescription()
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/prescriptions/my/')
        self.assertEqual(len(response.data), 1)

    def test_status_change_notifies_owner(self):
        prescription = TestDataFactory.create_prescription(user=self.user)
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/prescriptions/{prescription.id}/', {'status': 'approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Notification.objects.filter(user=self.user, type='prescription').exists())

    def test_status_change_for_guest_prescription(self):
        """Guest submissions have nobody to notify"""
        prescription = TestDataFactory.create_prescription()
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/prescriptions/{prescription.id}/', {'status': 'rejected'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Notification.objects.filter(type='prescription', user__isnull=False).exists())


class RefillRequestTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()

    def test_public_refill_request(self):
        response = self.client.post('/api/refill-requests/', {
            'medication': 'Lisinopril', 'dosage': '10mg', 'urgency': 'urgent', 'patient_name': 'Jane',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        notification = Notification.objects.get(type='refill')
        self.assertIn('urgent', notification.message)

    def test_refill_requires_medication_and_dosage(self):
        response = self.client.post('/api/refill-requests/', {'medication': 'Lisinopril'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['missing'], ['dosage'])

    def test_list_requires_admin(self):
        self.assertEqual(self.client.get('/api/refill-requests/').status_code, status.HTTP_401_UNAUTHORIZED)
        self.client.authenticate_user(self.user)
        self.assertEqual(self.client.get('/api/refill-requests/').status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_filters_by_urgency(self):
        TestDataFactory.create_refill_request(urgency='urgent')
        TestDataFactory.create_refill_request()
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/refill-requests/?urgency=urgent')
        self.assertEqual(len(response.data), 1)

    def test_completing_refill_stamps_date_and_notifies(self):
        refill = TestDataFactory.create_refill_request(user=self.user)
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/refill-requests/{refill.id}/', {
            'status': 'completed', 'admin_notes': 'Ready for pickup',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        refill.refresh_from_db()
        self.assertIsNotNone(refill.completed_date)
        self.assertTrue(refill.notified)
        self.assertTrue(Notification.objects.filter(user=self.user, type='refill').exists())

    def test_stats(self):
        TestDataFactory.create_refill_request(urgency='urgent')
        TestDataFactory.create_refill_request(status='approved')
        TestDataFactory.create_refill_request(urgency='urgent', status='completed')
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/refill-requests/stats/overview/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(response.data['pending'], 1)
        self.assertEqual(response.data['approved'], 1)
        self.assertEqual(response.data['completed'], 1)
        self.assertEqual(response.data['urgent'], 1)
        self.assertEqual(len(response.data['recent']), 3)

    def test_admin_creates_refill_for_patient(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/refill-requests/admin/create/', {
            'user_id': self.user.id,
            'medication_name': 'Levothyroxine',
            'prescription_number': 'RX-1001',
            'quantity': 90,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        refill = RefillRequest.objects.get(pk=response.data['id'])
        self.assertEqual(refill.user, self.user)
        self.assertEqual(refill.patient_email, self.user.email)
        self.assertTrue(refill.notified)

    def test_admin_create_unknown_user(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/refill-requests/admin/create/', {
            'user_id': 999999, 'medication_name': 'X', 'prescription_number': 'RX', 'quantity': 1,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TransferRequestTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()

    def test_public_transfer_with_comma_separated_medications(self):
        settings_row = SiteSettings.load()
        settings_row.site_name = 'Main Street Pharmacy'
        settings_row.save()

        response = self.client.post('/api/transfer-requests/', {
            'current_pharmacy': 'Corner Drugs',
            'medications': 'Metformin, Lisinopril ,',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['medications'], ['Metformin', 'Lisinopril'])
        self.assertEqual(response.data['to_pharmacy'], 'Main Street Pharmacy')
        self.assertTrue(Notification.objects.filter(type='transfer').exists())

    def test_transfer_requires_medications(self):
        response = self.client.post('/api/transfer-requests/', {
            'current_pharmacy': 'Corner Drugs', 'medications': [],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('medications', response.data['details'])

    def test_logged_in_transfer_is_linked(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/transfer-requests/', {
            'current_pharmacy': 'Corner Drugs', 'medications': ['Metformin'],
        }, format='json')
        self.assertEqual(TransferRequest.objects.get(pk=response.data['id']).user, self.user)

    def test_admin_update_and_stats(self):
        transfer = TestDataFactory.create_transfer_request(user=self.user)
        TestDataFactory.create_transfer_request()
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/transfer-requests/{transfer.id}/', {'status': 'in_progress'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Notification.objects.filter(user=self.user, type='transfer').exists())

        response = self.client.get('/api/transfer-requests/stats/overview/')
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['pending'], 1)
        self.assertEqual(response.data['in_progress'], 1)

    def test_admin_deletes_transfer(self):
        transfer = TestDataFactory.create_transfer_request()
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/transfer-requests/{transfer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
