"""
Mapping WordPress REST posts onto local BlogPost rows
"""
import logging
from datetime import timezone as dt_timezone

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.utils.html import strip_tags

from backend.core.cache_signals import suspend_cache_signals
from backend.core.cache_utils import invalidate_blog_cache
from backend.core.integrations import IntegrationError
from .client import WordPressClient
from .models import BlogPost

logger = logging.getLogger('backend.wordpress')


def _rendered(value):
    if isinstance(value, dict):
        return value.get('rendered', '') or ''
    return value or ''


def _published_at(post):
    if post.get('date_gmt'):
        value = parse_datetime(post['date_gmt'])
        if value is not None and timezone.is_naive(value):
            value = timezone.make_aware(value, dt_timezone.utc)
        return value
    value = parse_datetime(post.get('date') or '')
    if value is not None and timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def post_fields(post):
    """Local field values for a WordPress post payload"""
    embedded = post.get('_embedded') or {}
    authors = embedded.get('author') or []
    media = embedded.get('wp:featuredmedia') or []
    return {
        'title': strip_tags(_rendered(post.get('title'))) or f"Post {post.get('id')}",
        'content': _rendered(post.get('content')),
        'excerpt': strip_tags(_rendered(post.get('excerpt'))).strip(),
        'author': authors[0].get('name', '') if authors else '',
        'status': BlogPost.STATUS_PUBLISH if post.get('status') == 'publish' else BlogPost.STATUS_DRAFT,
        'featured_image_url': media[0].get('source_url', '') if media else '',
        'published_at': _published_at(post),
        'source': BlogPost.SOURCE_WORDPRESS,
    }


def upsert_post(post):
    """Create or update the local copy of a WordPress post; returns (post, created)"""
    wordpress_id = int(post['id'])
    fields = post_fields(post)
    existing = BlogPost.objects.filter(wordpress_id=wordpress_id).first()
    fields['slug'] = BlogPost.unique_slug(post.get('slug') or fields['title'],
                                          exclude_pk=existing.pk if existing else None)
    return BlogPost.objects.update_or_create(wordpress_id=wordpress_id, defaults=fields)


def sync_posts(wp_settings):
    """
    Pull every published post and upsert it locally.
    Sync state is recorded on the settings row; IntegrationError propagates
    after being recorded.
    """
    client = WordPressClient.from_settings(wp_settings)
    wp_settings.mark_sync(wp_settings.SYNC_RUNNING)
    created = updated = 0
    try:
        with suspend_cache_signals(), transaction.atomic():
            for post in client.published_posts():
                _, was_created = upsert_post(post)
                if was_created:
                    created += 1
                else:
                    updated += 1
    except IntegrationError as e:
        wp_settings.mark_sync(wp_settings.SYNC_ERROR, e.message)
        raise

    invalidate_blog_cache()
    wp_settings.mark_sync(wp_settings.SYNC_SUCCESS)
    logger.info(f"WordPress sync finished: {created} created, {updated} updated")
    return {'synced': created + updated, 'created': created, 'updated': updated}
