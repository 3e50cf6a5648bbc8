import json
import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from backend.core.cache_utils import cache_blog_posts, get_cached_blog_posts
from backend.core.exceptions import validation_error_response
from backend.core.integrations import IntegrationError, verify_shared_secret
from backend.core.permissions import IsAdminRole, IsAdminRoleOrReadOnly
from backend.core.utils import parse_limit, parse_offset
from .client import WordPressClient
from .models import BlogPost, WordPressSettings
from .serializers import BlogPostSerializer, WordPressPostSerializer, WordPressSettingsSerializer
from .services import sync_posts, upsert_post

logger = logging.getLogger('backend.wordpress')

WEBHOOK_HEADER = 'HTTP_X_WP_WEBHOOK_SECRET'


def _not_enabled(wp_settings):
    if not wp_settings.enabled:
        return Response({'error': 'WordPress integration is not enabled'}, status=status.HTTP_400_BAD_REQUEST)
    if not WordPressClient.from_settings(wp_settings).configured:
        return Response({'error': 'WordPress integration is not configured'}, status=status.HTTP_400_BAD_REQUEST)
    return None


def _upstream_error(message, error):
    return Response({'error': message, 'details': error.message}, status=status.HTTP_502_BAD_GATEWAY)


@api_view(['GET', 'PUT'])
@permission_classes([IsAdminRole])
def wordpress_settings(request):
    wp_settings = WordPressSettings.load()
    if request.method == 'GET':
        return Response(WordPressSettingsSerializer(wp_settings).data)

    serializer = WordPressSettingsSerializer(wp_settings, data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    serializer.save()
    logger.info(f"WordPress settings updated by {request.user.email} (enabled={wp_settings.enabled})")
    return Response(WordPressSettingsSerializer(wp_settings).data)


@api_view(['POST'])
@permission_classes([IsAdminRole])
def test_connection(request):
    wp_settings = WordPressSettings.load()
    error = _not_enabled(wp_settings)
    if error:
        return error
    try:
        site_info = WordPressClient.from_settings(wp_settings).site_info()
    except IntegrationError as e:
        return _upstream_error('Connection test failed', e)
    return Response({'success': True, 'message': 'Connection test successful', 'site_info': site_info})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def sync_posts_view(request):
    wp_settings = WordPressSettings.load()
    error = _not_enabled(wp_settings)
    if error:
        return error
    try:
        result = sync_posts(wp_settings)
    except IntegrationError as e:
        return _upstream_error('Failed to sync posts', e)
    return Response({'success': True, **result})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def sync_status(request):
    return Response(WordPressSettings.load().sync_status_payload())


@api_view(['POST'])
@permission_classes([IsAdminRole])
def create_wordpress_post(request):
    """Publish a post to WordPress and keep a local copy"""
    serializer = WordPressPostSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    wp_settings = WordPressSettings.load()
    error = _not_enabled(wp_settings)
    if error:
        return error
    try:
        remote = WordPressClient.from_settings(wp_settings).create_post(**serializer.validated_data)
    except IntegrationError as e:
        return _upstream_error('Failed to create post', e)

    post, _ = upsert_post(remote)
    logger.info(f"WordPress post {post.wordpress_id} created by {request.user.email}")
    return Response(BlogPostSerializer(post).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def wordpress_webhook(request):
    """Post change pushed by WordPress, authenticated by a shared secret header"""
    wp_settings = WordPressSettings.load()
    if not verify_shared_secret(request.META.get(WEBHOOK_HEADER, ''), wp_settings.webhook_secret):
        logger.warning('Rejected WordPress webhook with invalid secret')
        return Response({'error': 'Invalid webhook secret'}, status=status.HTTP_401_UNAUTHORIZED)

    try:
        body = json.loads(request.body.decode('utf-8') or '{}')
    except (ValueError, UnicodeDecodeError):
        return Response({'error': 'Invalid payload'}, status=status.HTTP_400_BAD_REQUEST)

    if not isinstance(body, dict) or not isinstance(body.get('post') or {}, dict):
        return Response({'error': 'Invalid payload'}, status=status.HTTP_400_BAD_REQUEST)

    action = body.get('action')
    post = body.get('post') or {}
    if not post.get('id'):
        return Response({'error': 'Post id is required'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        post_id = int(post['id'])
    except (TypeError, ValueError):
        return Response({'error': 'Invalid post id'}, status=status.HTTP_400_BAD_REQUEST)

    if action in ('post_updated', 'post_published'):
        blog_post, created = upsert_post(post)
        logger.info(f"WordPress webhook {action}: post {blog_post.wordpress_id} "
                    f"{'created' if created else 'updated'}")
    elif action == 'post_deleted':
        deleted, _ = BlogPost.objects.filter(wordpress_id=post_id).delete()
        logger.info(f"WordPress webhook post_deleted: post {post_id} ({deleted} removed)")
    else:
        return Response({'error': f"Unsupported action: {action}"}, status=status.HTTP_400_BAD_REQUEST)
    return Response({'success': True})


# Blog posts
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRoleOrReadOnly])
def blog_list_create(request):
    """Published posts (public, cached) or create a local post (admin)"""
    if request.method == 'GET':
        limit, offset = parse_limit(request), parse_offset(request)
        cached_data, cache_key = get_cached_blog_posts({'limit': limit, 'offset': offset})
        if cached_data is not None:
            return Response(cached_data)

        posts = BlogPost.objects.filter(status=BlogPost.STATUS_PUBLISH)
        data = {
            'count': posts.count(),
            'results': BlogPostSerializer(posts[offset:offset + limit], many=True).data,
        }
        cache_blog_posts(cache_key, data)
        return Response(data)

    serializer = BlogPostSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    data = serializer.validated_data
    post = serializer.save(
        slug=data.get('slug') or BlogPost.unique_slug(data['title']),
        author=data.get('author') or request.user.name,
        published_at=data.get('published_at') or (timezone.now() if data.get('status') == BlogPost.STATUS_PUBLISH
                                                 else None),
    )
    return Response(BlogPostSerializer(post).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def blog_by_slug(request, slug):
    post = get_object_or_404(BlogPost, slug=slug, status=BlogPost.STATUS_PUBLISH)
    return Response(BlogPostSerializer(post).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRoleOrReadOnly])
def blog_detail(request, pk):
    if request.method == 'GET':
        posts = BlogPost.objects.all()
        if not IsAdminRole().has_permission(request, None):
            posts = posts.filter(status=BlogPost.STATUS_PUBLISH)
        return Response(BlogPostSerializer(get_object_or_404(posts, pk=pk)).data)

    post = get_object_or_404(BlogPost, pk=pk)
    if post.source != BlogPost.SOURCE_LOCAL:
        return Response({'error': 'Synced WordPress posts are edited in WordPress'},
                        status=status.HTTP_400_BAD_REQUEST)

    if request.method in ('PUT', 'PATCH'):
        serializer = BlogPostSerializer(post, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        post = serializer.save()
        if post.status == BlogPost.STATUS_PUBLISH and post.published_at is None:
            post.published_at = timezone.now()
            post.save(update_fields=['published_at'])
        return Response(BlogPostSerializer(post).data)
    else:  # DELETE
        post.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
