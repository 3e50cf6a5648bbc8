"""
Test suite for Newsletter module
"""
from django.core import mail
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.newsletter.models import NewsletterSubscription


class NewsletterSubscriptionTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def test_subscribe_sends_welcome(self):
        response = self.client.post('/api/newsletter/subscribe/', {'email': 'Reader@Test.com', 'source': 'footer'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['already_subscribed'])

        subscription = NewsletterSubscription.objects.get()
        self.assertEqual(subscription.email, 'reader@test.com')
        self.assertEqual(subscription.source, 'footer')
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['reader@test.com'])

    def test_subscribe_twice(self):
        self.client.post('/api/newsletter/subscribe/', {'email': 'reader@test.com'}, format='json')
        response = self.client.post('/api/newsletter/subscribe/', {'email': 'reader@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['already_subscribed'])
        self.assertEqual(NewsletterSubscription.objects.count(), 1)
        self.assertEqual(len(mail.outbox), 1)

    def test_resubscribe_reactivates(self):
        NewsletterSubscription.objects.create(email='reader@test.com', is_active=False)
        response = self.client.post('/api/newsletter/subscribe/', {'email': 'reader@test.com', 'consent': False},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        subscription = NewsletterSubscription.objects.get()
        self.assertTrue(subscription.is_active)
        self.assertFalse(subscription.marketing_consent)

    def test_invalid_email(self):
        response = self.client.post('/api/newsletter/subscribe/', {'email': 'not-an-email'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data['details'])

    def test_unsubscribe(self):
        NewsletterSubscription.objects.create(email='reader@test.com')
        response = self.client.post('/api/newsletter/unsubscribe/', {'email': 'READER@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(NewsletterSubscription.objects.get().is_active)

    def test_unsubscribe_unknown_email(self):
        response = self.client.post('/api/newsletter/unsubscribe/', {'email': 'ghost@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class NewsletterAdminTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        NewsletterSubscription.objects.create(email='one@test.com')
        NewsletterSubscription.objects.create(email='two@test.com')
        NewsletterSubscription.objects.create(email='gone@test.com', is_active=False)

    def test_stats(self):
        response = self.client.get('/api/newsletter/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_subscribers'], 2)
        self.assertEqual(response.data['unsubscribed'], 1)
        self.assertEqual(len(response.data['recent_subscriptions']), 2)

    def test_list_filters_active(self):
        response = self.client.get('/api/newsletter/subscribers/?active=false')
        self.assertEqual([s['email'] for s in response.data['results']], ['gone@test.com'])

    def test_requires_admin(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        self.assertEqual(self.client.get('/api/newsletter/stats/').status_code, status.HTTP_403_FORBIDDEN)
