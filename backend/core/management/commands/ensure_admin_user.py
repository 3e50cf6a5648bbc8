"""
Create or repair the admin account configured by ADMIN_EMAIL / ADMIN_PASSWORD.

Usage:
    python manage.py ensure_admin_user
    python manage.py ensure_admin_user --reset-password
"""
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from backend.core.models import User
from backend.core.security import revoke_user_sessions


class Command(BaseCommand):
    help = 'Ensure the configured admin user exists with the ADMIN role'

    def add_arguments(self, parser):
        parser.add_argument('--email', default=None, help='Admin email (defaults to ADMIN_EMAIL)')
        parser.add_argument(
            '--reset-password',
            action='store_true',
            help='Reset the password to ADMIN_PASSWORD and revoke open admin sessions',
        )

    def handle(self, *args, **options):
        email = (options['email'] or settings.ADMIN_EMAIL or '').strip().lower()
        password = settings.ADMIN_PASSWORD
        if not email:
            raise CommandError('ADMIN_EMAIL is not configured')

        with transaction.atomic():
            user = User.objects.filter(email__iexact=email).first()
            if user is None:
                if not password:
                    raise CommandError('ADMIN_PASSWORD is required to create the admin user')
                user = User.objects.create_user(
                    email=email,
                    password=password,
                    name='Administrator',
                    role=User.ROLE_ADMIN,
                    is_staff=True,
                )
                self.stdout.write(self.style.SUCCESS(f"Created admin user {user.email}"))
                return

            changed = []
            if user.role != User.ROLE_ADMIN:
                user.role = User.ROLE_ADMIN
                changed.append('role')
            if not user.is_active:
                user.is_active = True
                changed.append('is_active')
            if not user.is_staff:
                user.is_staff = True
                changed.append('is_staff')
            if options['reset_password']:
                if not password:
                    raise CommandError('ADMIN_PASSWORD is required to reset the password')
                user.set_password(password)
                changed.append('password')
            if changed:
                user.save(update_fields=changed)
            if options['reset_password']:
                revoked = revoke_user_sessions(user)
                self.stdout.write(f"Revoked {revoked} admin session(s)")

        if changed:
            self.stdout.write(self.style.SUCCESS(f"Updated admin user {user.email}: {', '.join(changed)}"))
        else:
            self.stdout.write(f"Admin user {user.email} already configured")
