"""
Delete expired guest carts, old login attempts and dead admin sessions.

Usage:
    python manage.py cleanup_expired
    python manage.py cleanup_expired --days 60 --dry-run
"""
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db.models import Q
from django.utils import timezone

from backend.cart.models import Cart
from backend.core.models import AdminSession, LoginAttempt


class Command(BaseCommand):
    help = 'Remove expired guest carts, login attempts and admin sessions'

    def add_arguments(self, parser):
        parser.add_argument('--days', type=int, default=30,
                            help='Keep login attempts and revoked sessions younger than this many days')
        parser.add_argument('--dry-run', action='store_true', help='Only report what would be deleted')

    def handle(self, *args, **options):
        now = timezone.now()
        cutoff = now - timedelta(days=options['days'])

        querysets = {
            'guest carts': Cart.objects.filter(user__isnull=True, expires_at__lte=now),
            'login attempts': LoginAttempt.objects.filter(created_at__lt=cutoff),
            'admin sessions': AdminSession.objects.filter(Q(expires_at__lte=now) | Q(revoked_at__lt=cutoff)),
        }

        for label, queryset in querysets.items():
            if options['dry_run']:
                self.stdout.write(f"Would delete {queryset.count()} {label}")
            else:
                deleted, _ = queryset.delete()
                self.stdout.write(self.style.SUCCESS(f"Deleted {deleted} {label} (including related rows)"))
