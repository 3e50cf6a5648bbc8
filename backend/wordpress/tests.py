"""
Test suite for WordPress module
Tests: settings masking, connection test, post sync, webhook, local blog posts
"""
import json
from unittest.mock import MagicMock, patch

import requests
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.wordpress.models import BlogPost, WordPressSettings
from backend.wordpress.services import post_fields, upsert_post


def wp_response(body, status_code=200, total_pages=1):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.headers = {'X-WP-TotalPages': str(total_pages)}
    return response


def wp_post(post_id, title='Flu Season Tips', slug='flu-season-tips', status='publish'):
    return {
        'id': post_id,
        'slug': slug,
        'status': status,
        'date_gmt': '2024-10-01T12:00:00',
        'title': {'rendered': title},
        'content': {'rendered': '<p>Get your shot early.</p>'},
        'excerpt': {'rendered': '<p>Get your shot early.</p>\n'},
        '_embedded': {
            'author': [{'name': 'Dr. Rivera'}],
            'wp:featuredmedia': [{'source_url': 'https://blog.example.com/flu.jpg'}],
        },
    }


def configure_wordpress(enabled=True, webhook_secret='wp-hook-secret'):
    wp_settings = WordPressSettings.load()
    wp_settings.enabled = enabled
    wp_settings.site_url = 'https://blog.example.com'
    wp_settings.username = 'editor'
    wp_settings.application_password = 'abcd efgh ijkl mnop'
    wp_settings.webhook_secret = webhook_secret
    wp_settings.save()
    return wp_settings


class PostMappingTests(TestCase):

    def test_post_fields(self):
        fields = post_fields(wp_post(11))
        self.assertEqual(fields['title'], 'Flu Season Tips')
        self.assertEqual(fields['excerpt'], 'Get your shot early.')
        self.assertEqual(fields['author'], 'Dr. Rivera')
        self.assertEqual(fields['featured_image_url'], 'https://blog.example.com/flu.jpg')
        self.assertEqual(fields['status'], BlogPost.STATUS_PUBLISH)
        self.assertEqual(fields['published_at'].year, 2024)

    def test_upsert_is_idempotent(self):
        post, created = upsert_post(wp_post(11))
        self.assertTrue(created)
        again, created = upsert_post(wp_post(11, title='Flu Season Tips (Updated)'))
        self.assertFalse(created)
        self.assertEqual(again.pk, post.pk)
        self.assertEqual(again.slug, 'flu-season-tips')
        self.assertEqual(BlogPost.objects.count(), 1)

    def test_slug_collision_with_local_post(self):
        TestDataFactory.create_blog_post(title='Flu Season Tips')
        post, _ = upsert_post(wp_post(12))
        self.assertEqual(post.slug, 'flu-season-tips-2')


class WordPressSettingsTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())

    def test_secrets_are_masked(self):
        configure_wordpress()
        response = self.client.get('/api/wordpress/settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['application_password'], '***mnop')
        self.assertEqual(response.data['webhook_secret'], '***cret')
        self.assertEqual(response.data['site_url'], 'https://blog.example.com')

    def test_masked_value_keeps_stored_secret(self):
        configure_wordpress()
        response = self.client.put('/api/wordpress/settings/', {
            'application_password': '***mnop', 'site_url': 'https://news.example.com',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        wp_settings = WordPressSettings.load()
        self.assertEqual(wp_settings.application_password, 'abcd efgh ijkl mnop')
        self.assertEqual(wp_settings.site_url, 'https://news.example.com')

    def test_settings_require_admin(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        self.assertEqual(self.client.get('/api/wordpress/settings/').status_code, status.HTTP_403_FORBIDDEN)


class WordPressSyncTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())

    def test_not_enabled(self):
        configure_wordpress(enabled=False)
        response = self.client.post('/api/wordpress/sync-posts/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch('backend.core.integrations.requests.request')
    def test_connection(self, mock_request):
        configure_wordpress()
        mock_request.return_value = wp_response({'name': 'Pharmacy Blog', 'description': 'News',
                                                 'url': 'https://blog.example.com'})
        response = self.client.post('/api/wordpress/test-connection/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['site_info']['name'], 'Pharmacy Blog')
        self.assertEqual(mock_request.call_args[0], ('GET', 'https://blog.example.com/wp-json'))
        self.assertEqual(mock_request.call_args[1]['auth'], ('editor', 'abcd efgh ijkl mnop'))

    @patch('backend.core.integrations.requests.request')
    def test_connection_failure(self, mock_request):
        configure_wordpress()
        mock_request.side_effect = requests.exceptions.Timeout('timed out')
        response = self.client.post('/api/wordpress/test-connection/')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    @patch('backend.core.integrations.requests.request')
    def test_sync_posts_follows_pages(self, mock_request):
        configure_wordpress()
        first_page = [wp_post(i, title=f'Post {i}', slug=f'post-{i}') for i in range(1, 101)]
        mock_request.side_effect = [
            wp_response(first_page, total_pages=2),
            wp_response([wp_post(101, title='Post 101', slug='post-101')], total_pages=2),
        ]
        response = self.client.post('/api/wordpress/sync-posts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['synced'], 101)
        self.assertEqual(response.data['created'], 101)
        self.assertEqual(mock_request.call_args_list[1][1]['params']['page'], 2)

        payload = self.client.get('/api/wordpress/sync-status/').data
        self.assertEqual(payload['status'], WordPressSettings.SYNC_SUCCESS)
        self.assertIsNotNone(payload['last_sync'])

    @patch('backend.core.integrations.requests.request')
    def test_sync_error_is_recorded(self, mock_request):
        configure_wordpress()
        mock_request.return_value = wp_response({'message': 'Sorry, you are not allowed'}, status_code=401)
        response = self.client.post('/api/wordpress/sync-posts/')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        wp_settings = WordPressSettings.load()
        self.assertEqual(wp_settings.sync_status, WordPressSettings.SYNC_ERROR)
        self.assertEqual(wp_settings.last_error, 'Sorry, you are not allowed')

    @patch('backend.core.integrations.requests.request')
    def test_sync_refreshes_cached_blog_list(self, mock_request):
        configure_wordpress()
        self.client.get('/api/blogs/')
        mock_request.return_value = wp_response([wp_post(5)])
        self.client.post('/api/wordpress/sync-posts/')
        self.assertEqual(self.client.get('/api/blogs/').data['count'], 1)

    @patch('backend.core.integrations.requests.request')
    def test_create_wordpress_post(self, mock_request):
        configure_wordpress()
        mock_request.return_value = wp_response(wp_post(77, title='New Hours', slug='new-hours', status='draft'))
        response = self.client.post('/api/wordpress/posts/', {'title': 'New Hours', 'content': 'Open late'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['wordpress_id'], 77)
        self.assertEqual(mock_request.call_args[1]['json']['status'], 'draft')


class WordPressWebhookTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        configure_wordpress()

    def _post(self, body, secret='wp-hook-secret'):
        return self.client.post('/api/wordpress/webhook/', json.dumps(body), content_type='application/json',
                                HTTP_X_WP_WEBHOOK_SECRET=secret)

    def test_post_published(self):
        response = self._post({'action': 'post_published', 'post': wp_post(31)})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(BlogPost.objects.filter(wordpress_id=31, source=BlogPost.SOURCE_WORDPRESS).exists())

    def test_post_deleted(self):
        upsert_post(wp_post(31))
        self._post({'action': 'post_deleted', 'post': {'id': 31}})
        self.assertFalse(BlogPost.objects.filter(wordpress_id=31).exists())

    def test_wrong_secret(self):
        response = self._post({'action': 'post_published', 'post': wp_post(31)}, secret='guess')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(BlogPost.objects.exists())

    def test_missing_post_id(self):
        response = self._post({'action': 'post_updated', 'post': {}})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_action(self):
        response = self._post({'action': 'post_exploded', 'post': {'id': 1}})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_object_payload(self):
        self.assertEqual(self._post([1, 2]).status_code, status.HTTP_400_BAD_REQUEST)
        response = self._post({'action': 'post_updated', 'post': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_numeric_post_id(self):
        response = self._post({'action': 'post_updated', 'post': {'id': 'abc', 'title': 'x'}})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(BlogPost.objects.exists())


class BlogPostTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin(name='Pharmacist Kim')

    def test_public_list_shows_published_only(self):
        TestDataFactory.create_blog_post(title='Allergy Season')
        TestDataFactory.create_blog_post(title='Unfinished Draft', status=BlogPost.STATUS_DRAFT)
        response = self.client.get('/api/blogs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['title'], 'Allergy Season')

    def test_by_slug(self):
        TestDataFactory.create_blog_post(title='Allergy Season')
        TestDataFactory.create_blog_post(title='Hidden Draft', status=BlogPost.STATUS_DRAFT)
        self.assertEqual(self.client.get('/api/blogs/allergy-season/').status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/blogs/hidden-draft/').status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_creates_post_with_generated_slug(self):
        TestDataFactory.create_blog_post(title='Vaccine Clinic')
        self.client.authenticate_user(self.admin)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post('/api/blogs/', {
                'title': 'Vaccine Clinic', 'content': 'Saturday 9-1', 'status': 'publish',
            }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'vaccine-clinic-2')
        self.assertEqual(response.data['author'], 'Pharmacist Kim')
        self.assertIsNotNone(response.data['published_at'])
        self.assertEqual(response.data['source'], BlogPost.SOURCE_LOCAL)

    def test_duplicate_slug_rejected(self):
        TestDataFactory.create_blog_post(title='Vaccine Clinic')
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/blogs/', {'title': 'Other', 'slug': 'vaccine-clinic'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('slug', response.data['details'])

    def test_customer_cannot_create_post(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/blogs/', {'title': 'Spam'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_publishing_draft_sets_published_at(self):
        post = TestDataFactory.create_blog_post(title='Draft', status=BlogPost.STATUS_DRAFT)
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/blogs/{post.id}/', {'status': 'publish'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['published_at'])

    def test_synced_posts_are_read_only(self):
        post, _ = upsert_post(wp_post(40))
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/blogs/{post.id}/', {'title': 'Edited'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
