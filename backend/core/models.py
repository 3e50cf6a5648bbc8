from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager as DjangoUserManager
from django.db import models
from django.utils import timezone


class UserManager(DjangoUserManager):
    """Users log in with their email; the username mirrors it unless given"""

    def create_user(self, username=None, email=None, password=None, **extra_fields):
        return super().create_user(username or email, email, password, **extra_fields)

    def create_superuser(self, username=None, email=None, password=None, **extra_fields):
        extra_fields.setdefault('role', User.ROLE_ADMIN)
        return super().create_superuser(username or email, email, password, **extra_fields)


class User(AbstractUser):
    """Extended user model with pharmacy roles"""
    ROLE_CUSTOMER = 'CUSTOMER'
    ROLE_ADMIN = 'ADMIN'
    ROLE_CHOICES = [
        (ROLE_CUSTOMER, 'Customer'),
        (ROLE_ADMIN, 'Admin'),
    ]

    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CUSTOMER)
    email_verified = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    objects = UserManager()

    class Meta:
        db_table = 'users'

    def __str__(self):
        return self.email

    @property
    def is_admin_role(self):
        return self.role == self.ROLE_ADMIN


class LoginAttempt(models.Model):
    """Admin login attempts, used for lockout"""
    email = models.EmailField()
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)
    success = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'login_attempts'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email', 'created_at'], name='idx_login_attempt_email'),
        ]

    def __str__(self):
        return f"{self.email} ({'ok' if self.success else 'failed'})"


class AdminSession(models.Model):
    """Server-side admin login session, keyed by the jti of the login refresh token"""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='admin_sessions')
    jti = models.CharField(max_length=255, unique=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)
    expires_at = models.DateTimeField()
    last_activity = models.DateTimeField(default=timezone.now)
    revoked_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'admin_sessions'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user} - {self.jti}"

    @property
    def is_active(self):
        return self.revoked_at is None and self.expires_at > timezone.now()

    def revoke(self):
        if self.revoked_at is None:
            self.revoked_at = timezone.now()
            self.save(update_fields=['revoked_at'])


class SiteSettings(models.Model):
    """Single-row storefront settings"""
    site_name = models.CharField(max_length=255, default='My Meds Pharmacy')
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=50, blank=True)
    address = models.TextField(blank=True)
    business_hours = models.TextField(blank=True)
    facebook = models.URLField(blank=True)
    instagram = models.URLField(blank=True)
    twitter = models.URLField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'site_settings'
        verbose_name_plural = 'site settings'

    def __str__(self):
        return self.site_name

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=1, defaults={'site_name': settings.PHARMACY_NAME})
        return obj


class IntegrationSettings(models.Model):
    """Single-row credentials and sync state for an external integration"""
    SYNC_IDLE = 'idle'
    SYNC_RUNNING = 'syncing'
    SYNC_SUCCESS = 'success'
    SYNC_ERROR = 'error'
    SYNC_STATUS_CHOICES = [
        (SYNC_IDLE, 'Idle'),
        (SYNC_RUNNING, 'Syncing'),
        (SYNC_SUCCESS, 'Success'),
        (SYNC_ERROR, 'Error'),
    ]
    # Fields masked on read and kept when a masked value is written back
    SECRET_FIELDS = ()

    enabled = models.BooleanField(default=False)
    webhook_secret = models.CharField(max_length=255, blank=True)
    sync_status = models.CharField(max_length=20, choices=SYNC_STATUS_CHOICES, default=SYNC_IDLE)
    last_sync = models.DateTimeField(null=True, blank=True)
    last_error = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj

    def mark_sync(self, status, error=''):
        self.sync_status = status
        self.last_error = error
        update_fields = ['sync_status', 'last_error', 'updated_at']
        if status == self.SYNC_SUCCESS:
            self.last_sync = timezone.now()
            update_fields.append('last_sync')
        self.save(update_fields=update_fields)

    def sync_status_payload(self):
        return {
            'enabled': self.enabled,
            'last_sync': self.last_sync,
            'status': self.sync_status,
            'last_error': self.last_error or None,
        }
