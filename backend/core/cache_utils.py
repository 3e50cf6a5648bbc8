"""
Caching utilities for hot read paths
Uses Redis (django-redis) in production, local memory in development
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
PRODUCTS_LIST_CACHE_TTL = 120  # 2 minutes
DASHBOARD_KPI_CACHE_TTL = 300  # 5 minutes
SETTINGS_CACHE_TTL = 600  # 10 minutes
BLOG_CACHE_TTL = 300  # 5 minutes
NOTIFICATION_COUNT_CACHE_TTL = 30

PRODUCTS_LIST_PREFIX = "products_list"
DASHBOARD_PREFIX = "dashboard_kpis"
SETTINGS_PREFIX = "site_settings"
BLOG_PREFIX = "blog_posts"
NOTIFICATION_COUNT_PREFIX = "notification_count"


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    # Convert args and kwargs to a stable string representation
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=600, key_prefix="site_settings")
        def get_site_settings_payload():
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern
    Uses Redis SCAN; backends without key scanning are cleared entirely
    """
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")
    except NotImplementedError:
        cache.clear()
        logger.debug(f"Cache backend cannot scan keys, cleared cache for pattern: {pattern}")
        return
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")
        return

    try:
        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def get_cached_products_list(filters_dict):
    """
    Get cached products list with filters
    Returns tuple: (cached_data, cache_key)
    """
    cache_key = make_cache_key(PRODUCTS_LIST_PREFIX, **filters_dict)
    return cache.get(cache_key), cache_key


def cache_products_list(cache_key, data, ttl=PRODUCTS_LIST_CACHE_TTL):
    """Cache products list data"""
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached products list: {cache_key}")


def get_cached_dashboard_kpis(report, *args):
    """Get cached dashboard KPIs"""
    cache_key = make_cache_key(DASHBOARD_PREFIX, report, *args)
    return cache.get(cache_key), cache_key


def cache_dashboard_kpis(cache_key, data, ttl=DASHBOARD_KPI_CACHE_TTL):
    """Cache dashboard KPIs data"""
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached dashboard KPIs: {cache_key}")


def get_cached_blog_posts(filters_dict):
    cache_key = make_cache_key(BLOG_PREFIX, **filters_dict)
    return cache.get(cache_key), cache_key


def cache_blog_posts(cache_key, data, ttl=BLOG_CACHE_TTL):
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached blog posts: {cache_key}")


def notification_count_cache_key(user_id, is_admin):
    return f"{NOTIFICATION_COUNT_PREFIX}:{user_id}:{int(bool(is_admin))}"


def invalidate_products_cache():
    """Invalidate all products-related cache"""
    invalidate_cache_pattern(PRODUCTS_LIST_PREFIX)
    logger.info("Invalidated products cache")


def invalidate_dashboard_cache():
    """Invalidate dashboard KPIs cache"""
    invalidate_cache_pattern(DASHBOARD_PREFIX)
    logger.info("Invalidated dashboard cache")


def invalidate_settings_cache():
    invalidate_cache_pattern(SETTINGS_PREFIX)
    logger.info("Invalidated site settings cache")


def invalidate_blog_cache():
    """Invalidate cached public blog listings"""
    invalidate_cache_pattern(BLOG_PREFIX)
    logger.info("Invalidated blog cache")


def invalidate_notification_counts():
    invalidate_cache_pattern(NOTIFICATION_COUNT_PREFIX)
