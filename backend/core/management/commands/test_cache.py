"""
Django management command to test cache configuration.

Usage:
    python manage.py test_cache
"""
from django.core.management.base import BaseCommand
from django.core.cache import cache
from django.conf import settings

from backend.core.cache_utils import (
    cache_products_list, get_cached_products_list, invalidate_products_cache,
)
from backend.notifications.broadcast import broker_status


class Command(BaseCommand):
    help = 'Test cache configuration and verify it is working'

    def handle(self, *args, **options):
        self.stdout.write("=" * 60)
        self.stdout.write(self.style.SUCCESS("Cache Configuration Test"))
        self.stdout.write("=" * 60)

        self.stdout.write(f"\n1. Cache Backend: {settings.CACHES['default']['BACKEND']}")
        self.stdout.write(f"2. Cache Location: {settings.CACHES['default'].get('LOCATION', 'N/A')}")
        self.stdout.write(f"3. Notification broker: {broker_status()}")

        self.stdout.write("\n4. Testing Cache Operations:")
        self.stdout.write("-" * 60)

        try:
            cache.set('test_key', 'test_value', 60)
            self.stdout.write(self.style.SUCCESS("Cache SET: Success"))

            value = cache.get('test_key')
            if value == 'test_value':
                self.stdout.write(self.style.SUCCESS("Cache GET: Success (value matches)"))
            else:
                self.stdout.write(self.style.ERROR(f"Cache GET: Failed (got: {value})"))

            cache.delete('test_key')
            if cache.get('test_key') is None:
                self.stdout.write(self.style.SUCCESS("Cache DELETE: Success"))
            else:
                self.stdout.write(self.style.ERROR("Cache DELETE: Failed"))

            self.stdout.write("\n5. Testing Product List Cache:")
            self.stdout.write("-" * 60)

            filters = {'search': '__cache_check__'}
            _, cache_key = get_cached_products_list(filters)
            cache_products_list(cache_key, {'count': 0, 'results': []})
            cached, _ = get_cached_products_list(filters)
            if cached is not None:
                self.stdout.write(self.style.SUCCESS(f"Product list cached under {cache_key}"))

            invalidate_products_cache()
            cached, _ = get_cached_products_list(filters)
            if cached is None:
                self.stdout.write(self.style.SUCCESS("Pattern invalidation: Success"))
            else:
                self.stdout.write(self.style.ERROR("Pattern invalidation: Failed"))

            self.stdout.write("\n" + "=" * 60)
            self.stdout.write(self.style.SUCCESS("ALL TESTS PASSED - Cache is working!"))
            self.stdout.write("=" * 60)

        except Exception as e:
            self.stdout.write("\n" + "=" * 60)
            self.stdout.write(self.style.ERROR(f"ERROR: {str(e)}"))
            self.stdout.write("=" * 60)
            self.stdout.write(self.style.WARNING("\nTroubleshooting:"))
            self.stdout.write("   1. Check REDIS_URL in .env file")
            self.stdout.write("   2. Verify django-redis is installed: pip install django-redis")
            self.stdout.write("   3. Test Redis connection from your server")
            raise
