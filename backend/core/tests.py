"""
Test suite for core module
Tests: registration, login, admin sessions and lockout, users, site settings, health
"""
from datetime import timedelta
from io import StringIO

from django.contrib.auth.tokens import default_token_generator
from django.core import mail
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode
from rest_framework import status

from backend.core.models import AdminSession, LoginAttempt, SiteSettings, User
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import is_masked, mask_secret, missing_fields, missing_fields_response


class AuthAPITests(TestCase):
    """Test customer registration and login"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def test_register(self):
        """Registration creates an active customer and returns tokens"""
        data = {'email': 'new.patient@test.com', 'password': 'Str0ng!Passw0rd', 'name': 'New Patient'}
        response = self.client.post('/api/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('token', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], User.ROLE_CUSTOMER)
        user = User.objects.get(email='new.patient@test.com')
        self.assertTrue(user.is_active)
        self.assertTrue(user.check_password('Str0ng!Passw0rd'))

    def test_register_duplicate_email(self):
        """Registering an existing email fails with a single error"""
        TestDataFactory.create_user(email='taken@test.com')
        data = {'email': 'TAKEN@test.com', 'password': 'Str0ng!Passw0rd', 'name': 'Someone'}
        response = self.client.post('/api/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'User already exists')

    def test_register_requires_name(self):
        data = {'email': 'noname@test.com', 'password': 'Str0ng!Passw0rd'}
        response = self.client.post('/api/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data['details'])

    def test_login(self):
        """Login with email and password"""
        user = TestDataFactory.create_user(email='login@test.com', password='Str0ng!Passw0rd')
        response = self.client.post('/api/auth/login/', {'email': 'login@test.com', 'password': 'Str0ng!Passw0rd'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['id'], user.id)
        user.refresh_from_db()
        self.assertIsNotNone(user.last_login)

    def test_login_invalid_credentials(self):
        TestDataFactory.create_user(email='login@test.com', password='Str0ng!Passw0rd')
        response = self.client.post('/api/auth/login/', {'email': 'login@test.com', 'password': 'wrong'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'Invalid credentials')

    def test_login_inactive_user(self):
        TestDataFactory.create_user(email='inactive@test.com', password='Str0ng!Passw0rd', is_active=False)
        response = self.client.post('/api/auth/login/', {'email': 'inactive@test.com', 'password': 'Str0ng!Passw0rd'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token(self):
        TestDataFactory.create_user(email='login@test.com', password='Str0ng!Passw0rd')
        login = self.client.post('/api/auth/login/', {'email': 'login@test.com', 'password': 'Str0ng!Passw0rd'},
                                 format='json')
        response = self.client.post('/api/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_invalid_token(self):
        response = self.client.post('/api/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], user.email)


class AdminAuthTests(TestCase):
    """Test admin login, lockout and session revocation"""

    password = 'Adm1n!Secure#Pass'

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin(email='admin@test.com', password=self.password)

    def _login(self, password=None):
        return self.client.post('/api/admin/login/', {'email': 'admin@test.com', 'password': password or self.password},
                                format='json')

    def test_admin_login_creates_session(self):
        response = self._login()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('expires_at', response.data)
        self.assertEqual(AdminSession.objects.filter(user=self.admin).count(), 1)
        self.assertTrue(LoginAttempt.objects.filter(email='admin@test.com', success=True).exists())

    def test_admin_login_rejects_customer(self):
        TestDataFactory.create_user(email='customer@test.com', password=self.password)
        response = self.client.post('/api/admin/login/', {'email': 'customer@test.com', 'password': self.password},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_admin_login_missing_fields(self):
        response = self.client.post('/api/admin/login/', {'email': 'admin@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(ADMIN_LOCKOUT_ATTEMPTS=3)
    def test_admin_lockout_after_failures(self):
        """Repeated failures lock the account even for the right password"""
        for _ in range(3):
            self.assertEqual(self._login('wrong').status_code, status.HTTP_401_UNAUTHORIZED)
        response = self._login()
        self.assertEqual(response.status_code, status.HTTP_423_LOCKED)
        self.assertGreater(response.data['retry_after'], 0)

    def test_lockout_ends_when_oldest_counted_failure_expires(self):
        for _ in range(5):
            self._login('wrong')
        oldest = LoginAttempt.objects.filter(success=False).order_by('created_at').first()
        LoginAttempt.objects.filter(pk=oldest.pk).update(created_at=timezone.now() - timedelta(minutes=14))

        response = self._login()
        self.assertEqual(response.status_code, status.HTTP_423_LOCKED)
        self.assertIn(response.data['retry_after'], (59, 60))

        LoginAttempt.objects.filter(pk=oldest.pk).update(created_at=timezone.now() - timedelta(minutes=16))
        self.assertEqual(self._login().status_code, status.HTTP_200_OK)

    @override_settings(ADMIN_LOCKOUT_ATTEMPTS=3)
    def test_old_failures_do_not_lock(self):
        for _ in range(3):
            self._login('wrong')
        LoginAttempt.objects.update(created_at=timezone.now() - timedelta(hours=1))
        self.assertEqual(self._login().status_code, status.HTTP_200_OK)

    def test_validate_session(self):
        token = self._login().data['token']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = self.client.get('/api/admin/validate-session/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['valid'])

    def test_logout_revokes_session(self):
        """A logged-out admin token is rejected even before it expires"""
        token = self._login().data['token']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        self.assertEqual(self.client.post('/api/admin/logout/').status_code, status.HTTP_200_OK)
        self.assertIsNotNone(AdminSession.objects.get(user=self.admin).revoked_at)

        response = self.client.get('/api/admin/profile/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_change_password_revokes_other_sessions(self):
        first = self._login().data['token']
        second = self._login().data['token']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {second}')
        response = self.client.post('/api/admin/change-password/', {
            'current_password': self.password,
            'new_password': 'N3w!Much#Longer$Pass',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/admin/profile/').status_code, status.HTTP_200_OK)

        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {first}')
        self.assertEqual(self.client.get('/api/admin/profile/').status_code, status.HTTP_401_UNAUTHORIZED)

    def test_revoked_session_cannot_be_refreshed(self):
        first = self._login().data
        second = self._login().data
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {second['token']}")
        self.client.post('/api/admin/change-password/', {
            'current_password': self.password,
            'new_password': 'N3w!Much#Longer$Pass',
        }, format='json')
        self.client.credentials()

        response = self.client.post('/api/auth/refresh/', {'refresh': first['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        response = self.client.post('/api/auth/refresh/', {'refresh': second['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        self.assertEqual(self.client.get('/api/admin/validate-session/').status_code, status.HTTP_200_OK)

    def test_refreshed_token_stays_bound_to_session(self):
        login = self._login().data
        refreshed = self.client.post('/api/auth/refresh/', {'refresh': login['refresh']}, format='json').data

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {refreshed['access']}")
        self.assertEqual(self.client.post('/api/admin/logout/').status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/admin/validate-session/').status_code,
                         status.HTTP_401_UNAUTHORIZED)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login['token']}")
        self.assertEqual(self.client.get('/api/admin/profile/').status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_after_logout_is_rejected(self):
        login = self._login().data
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login['token']}")
        self.client.post('/api/admin/logout/')
        self.client.credentials()

        response = self.client.post('/api/auth/refresh/', {'refresh': login['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_change_password_rejects_weak_password(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/admin/change-password/', {
            'current_password': self.password,
            'new_password': 'password123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('details', response.data)

    def test_change_password_wrong_current(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/admin/change-password/', {
            'current_password': 'nope',
            'new_password': 'N3w!Much#Longer$Pass',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_profile_requires_admin(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        self.assertEqual(self.client.get('/api/admin/profile/').status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_health(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/admin/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['checks']['database'], 'ok')
        self.assertEqual(response.data['checks']['notifications'], 'disabled')


class AdminPasswordResetTests(TestCase):
    """Test admin password reset by email"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin(email='admin@test.com')

    def test_reset_request_sends_email(self):
        response = self.client.post('/api/auth/admin-reset-request/', {'email': 'admin@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('reset-password?uid=', mail.outbox[0].body)

    def test_reset_request_unknown_email(self):
        """Unknown accounts get the same answer and no email"""
        response = self.client.post('/api/auth/admin-reset-request/', {'email': 'ghost@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 0)

    def test_reset_with_valid_token(self):
        uid = urlsafe_base64_encode(force_bytes(self.admin.pk))
        token = default_token_generator.make_token(self.admin)
        response = self.client.post('/api/auth/admin-reset/', {
            'uid': uid, 'token': token, 'password': 'Fresh!Admin#Pass99',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.check_password('Fresh!Admin#Pass99'))

    def test_reset_invalidates_existing_refresh_tokens(self):
        login = self.client.post('/api/auth/login/', {
            'email': 'admin@test.com', 'password': 'Adm1n!Secure#Pass',
        }, format='json').data
        uid = urlsafe_base64_encode(force_bytes(self.admin.pk))
        token = default_token_generator.make_token(self.admin)
        self.client.post('/api/auth/admin-reset/', {
            'uid': uid, 'token': token, 'password': 'Fresh!Admin#Pass99',
        }, format='json')

        response = self.client.post('/api/auth/refresh/', {'refresh': login['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_reset_with_invalid_token(self):
        uid = urlsafe_base64_encode(force_bytes(self.admin.pk))
        response = self.client.post('/api/auth/admin-reset/', {
            'uid': uid, 'token': 'bad-token', 'password': 'Fresh!Admin#Pass99',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AdminInitTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    @override_settings(ADMIN_EMAIL='boss@test.com', ADMIN_PASSWORD='Adm1n!Secure#Pass')
    def test_admin_init_creates_first_admin(self):
        response = self.client.post('/api/admin/init/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(User.objects.filter(email='boss@test.com', role=User.ROLE_ADMIN).exists())

        response = self.client.post('/api/admin/init/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    @override_settings(ADMIN_EMAIL='', ADMIN_PASSWORD='')
    def test_admin_init_not_configured(self):
        response = self.client.post('/api/admin/init/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class UserAPITests(TestCase):
    """Test user profile and admin user management"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(name='Pat')
        self.admin = TestDataFactory.create_admin()

    def test_update_own_profile(self):
        self.client.authenticate_user(self.user)
        response = self.client.put('/api/users/me/', {'name': 'Patricia', 'phone': '555-1234'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Patricia')

    def test_user_cannot_change_own_role(self):
        self.client.authenticate_user(self.user)
        self.client.put(f'/api/users/{self.user.id}/', {'role': User.ROLE_ADMIN}, format='json')
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, User.ROLE_CUSTOMER)

    def test_user_cannot_view_other_user(self):
        other = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        response = self.client.get(f'/api/users/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_lists_users(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/users/?role=customer')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_customer_cannot_list_users(self):
        self.client.authenticate_user(self.user)
        self.assertEqual(self.client.get('/api/users/').status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_deletes_user(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/users/{self.user.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(id=self.user.id).exists())

    def test_admin_cannot_delete_self(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SiteSettingsTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def test_public_read(self):
        response = self.client.get('/api/settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('site_name', response.data)

    def test_update_requires_admin(self):
        response = self.client.put('/api/settings/', {'site_name': 'Nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.put('/api/settings/', {'site_name': 'Nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_update_invalidates_cached_settings(self):
        self.client.get('/api/settings/')
        self.client.authenticate_user(TestDataFactory.create_admin())
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.put('/api/settings/', {'site_name': 'Corner Pharmacy'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(SiteSettings.load().site_name, 'Corner Pharmacy')

        self.client.logout()
        self.assertEqual(self.client.get('/api/settings/').data['site_name'], 'Corner Pharmacy')


class HealthTests(TestCase):

    def test_health(self):
        response = self.client.get('/api/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'healthy')
        self.assertEqual(response.data['checks']['database'], 'ok')

    def test_status(self):
        response = self.client.get('/api/status/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'ok')


class UtilsTests(TestCase):

    def test_mask_secret(self):
        self.assertEqual(mask_secret('ck_abcdef123456'), '***3456')
        self.assertEqual(mask_secret(''), '')
        self.assertTrue(is_masked('***3456'))
        self.assertFalse(is_masked('ck_abcdef123456'))

    def test_missing_fields(self):
        data = {'name': 'Ann', 'phone': '   ', 'email': None}
        missing = missing_fields(data, ['name', 'phone', 'email', 'dob'])
        self.assertEqual(missing, ['phone', 'email', 'dob'])

        response = missing_fields_response(missing)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['missing'], missing)
        self.assertIn('phone, email, dob', response.data['error'])


class ManagementCommandTests(TestCase):

    def test_ensure_admin_user_promotes_existing(self):
        user = TestDataFactory.create_user(email='promote@test.com')
        call_command('ensure_admin_user', email='promote@test.com', stdout=StringIO())
        user.refresh_from_db()
        self.assertEqual(user.role, User.ROLE_ADMIN)
        self.assertTrue(user.is_staff)

    def test_cleanup_expired(self):
        LoginAttempt.objects.create(email='old@test.com')
        LoginAttempt.objects.update(created_at=timezone.now() - timedelta(days=60))
        LoginAttempt.objects.create(email='new@test.com')
        call_command('cleanup_expired', stdout=StringIO())
        self.assertEqual(list(LoginAttempt.objects.values_list('email', flat=True)), ['new@test.com'])
