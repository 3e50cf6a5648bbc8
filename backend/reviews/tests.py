"""
Test suite for Reviews module
Tests: submission, purchase verification, moderation and product ratings
"""
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.notifications.models import Notification
from backend.orders.models import Order
from backend.reviews.models import Review


def review_data(product, **overrides):
    data = {
        'product': product.id,
        'rating': 4,
        'title': 'Works well',
        'comment': 'Cleared my allergies within a day.',
        'customer_name': 'Sam Buyer',
        'customer_email': 'sam@test.com',
    }
    data.update(overrides)
    return data


class ReviewSubmissionTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.product = TestDataFactory.create_product(name='Cetirizine 10mg')

    def test_submit_review_is_pending(self):
        response = self.client.post('/api/reviews/', review_data(self.product), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['review']['status'], Review.STATUS_PENDING)
        self.assertNotIn('customer_email', response.data['review'])
        self.assertFalse(response.data['review']['verified'])
        self.assertTrue(Notification.objects.filter(type='review').exists())

    def test_duplicate_review_rejected(self):
        self.client.post('/api/reviews/', review_data(self.product), format='json')
        response = self.client.post('/api/reviews/', review_data(self.product, customer_email='SAM@test.com'),
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'You have already reviewed this product')

    def test_rating_out_of_range(self):
        response = self.client.post('/api/reviews/', review_data(self.product, rating=6), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('rating', response.data['details'])

    def test_short_comment_rejected(self):
        response = self.client.post('/api/reviews/', review_data(self.product, comment='Meh'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('comment', response.data['details'])

    def test_inactive_product_rejected(self):
        hidden = TestDataFactory.create_product(is_active=False)
        response = self.client.post('/api/reviews/', review_data(hidden), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_paid_order_marks_review_verified(self):
        user = TestDataFactory.create_user(email='sam@test.com')
        TestDataFactory.create_order(user=user, products=[(self.product, 1)], status=Order.STATUS_COMPLETED)
        self.client.authenticate_user(user)
        response = self.client.post('/api/reviews/', review_data(self.product), format='json')
        self.assertTrue(response.data['review']['verified'])
        self.assertEqual(Review.objects.get().user, user)

    def test_cancelled_order_does_not_verify(self):
        TestDataFactory.create_order(products=[(self.product, 1)], status=Order.STATUS_CANCELLED)
        response = self.client.post('/api/reviews/', review_data(self.product, customer_email='guest@test.com'),
                                    format='json')
        self.assertFalse(response.data['review']['verified'])


class ReviewModerationTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.product = TestDataFactory.create_product(name='Cetirizine 10mg')
        self.first = Review.objects.create(product=self.product, rating=5, title='Great stuff',
                                           comment='Works every single time.', customer_name='Ann',
                                           customer_email='ann@test.com')
        self.second = Review.objects.create(product=self.product, rating=2, title='Not for me',
                                            comment='Made me drowsy all day.', customer_name='Bo',
                                            customer_email='bo@test.com')

    def _approve(self, review):
        return self.client.patch(f'/api/reviews/{review.id}/', {'status': 'approved'}, format='json')

    def test_approval_updates_product_rating(self):
        response = self._approve(self.first)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['reviewed_at'])
        self._approve(self.second)

        self.product.refresh_from_db()
        self.assertEqual(self.product.average_rating, Decimal('3.50'))
        self.assertEqual(self.product.review_count, 2)

    def test_rejecting_approved_review_drops_it_from_rating(self):
        self._approve(self.first)
        self._approve(self.second)
        self.client.patch(f'/api/reviews/{self.second.id}/', {'status': 'rejected', 'admin_notes': 'Off topic'},
                          format='json')
        self.product.refresh_from_db()
        self.assertEqual(self.product.average_rating, Decimal('5.00'))
        self.assertEqual(self.product.review_count, 1)

    def test_delete_updates_rating(self):
        self._approve(self.first)
        response = self.client.delete(f'/api/reviews/{self.first.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.product.refresh_from_db()
        self.assertEqual(self.product.review_count, 0)
        self.assertEqual(self.product.average_rating, Decimal('0.00'))

    def test_invalid_status(self):
        response = self.client.patch(f'/api/reviews/{self.first.id}/', {'status': 'published'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_moderation_cannot_edit_review_text(self):
        self.client.patch(f'/api/reviews/{self.first.id}/', {'rating': 1, 'status': 'approved'}, format='json')
        self.first.refresh_from_db()
        self.assertEqual(self.first.rating, 5)

    def test_admin_list_filters_status(self):
        self._approve(self.first)
        response = self.client.get('/api/reviews/admin/?status=pending')
        self.assertEqual([r['id'] for r in response.data['results']], [self.second.id])
        self.assertEqual(response.data['results'][0]['customer_email'], 'bo@test.com')

    def test_public_list_shows_approved_only(self):
        self._approve(self.first)
        self.client.logout()
        response = self.client.get(f'/api/products/{self.product.id}/reviews/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['title'], 'Great stuff')
        self.assertEqual(Decimal(str(response.data['average_rating'])), Decimal('5.00'))

    def test_moderation_requires_admin(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self._approve(self.first)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
