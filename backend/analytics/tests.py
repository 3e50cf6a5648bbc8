"""
Test suite for Analytics module
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.orders.models import Order


class DashboardTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.aspirin = TestDataFactory.create_product(name='Aspirin', price=Decimal('5.00'))
        self.ibuprofen = TestDataFactory.create_product(name='Ibuprofen', price=Decimal('7.25'))

    def test_requires_admin(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/analytics/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_totals_exclude_cancelled_and_failed_revenue(self):
        TestDataFactory.create_order(products=[(self.aspirin, 2)])
        TestDataFactory.create_order(products=[(self.ibuprofen, 1)], status=Order.STATUS_COMPLETED)
        TestDataFactory.create_order(products=[(self.aspirin, 10)], status=Order.STATUS_CANCELLED)
        TestDataFactory.create_order(products=[(self.ibuprofen, 4)], status=Order.STATUS_FAILED)
        TestDataFactory.create_prescription()
        TestDataFactory.create_contact()

        response = self.client.get('/api/analytics/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        totals = response.data['totals']
        self.assertEqual(totals['orders'], 4)
        self.assertEqual(Decimal(totals['revenue']), Decimal('17.25'))
        self.assertEqual(totals['pending_prescriptions'], 1)
        self.assertEqual(totals['new_contacts'], 1)
        self.assertEqual(totals['products'], 2)
        self.assertEqual(len(response.data['recent_orders']), 4)

    def test_top_products(self):
        TestDataFactory.create_order(products=[(self.aspirin, 3), (self.ibuprofen, 1)])
        TestDataFactory.create_order(products=[(self.ibuprofen, 20)], status=Order.STATUS_CANCELLED)
        response = self.client.get('/api/analytics/dashboard/')
        top = response.data['top_products']
        self.assertEqual([row['product_name'] for row in top], ['Aspirin', 'Ibuprofen'])
        self.assertEqual(top[0]['quantity'], 3)
        self.assertEqual(Decimal(top[0]['revenue']), Decimal('15.00'))

    def test_low_stock_count(self):
        TestDataFactory.create_product(name='Insulin', stock=2)
        response = self.client.get('/api/analytics/dashboard/')
        self.assertEqual(response.data['totals']['low_stock_products'], 1)

    def test_response_is_cached_until_orders_change(self):
        first = self.client.get('/api/analytics/dashboard/')
        self.assertEqual(first['X-Cache'], 'MISS')
        self.assertIn('max-age=60', first['Cache-Control'])
        self.assertEqual(self.client.get('/api/analytics/dashboard/')['X-Cache'], 'HIT')

        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_order(products=[(self.aspirin, 1)])
        response = self.client.get('/api/analytics/dashboard/')
        self.assertEqual(response['X-Cache'], 'MISS')
        self.assertEqual(response.data['totals']['orders'], 1)

    def test_period_is_clamped(self):
        response = self.client.get('/api/analytics/dashboard/?period=5000')
        self.assertEqual(response.data['period_days'], 365)
        response = self.client.get('/api/analytics/dashboard/?period=abc')
        self.assertEqual(response.data['period_days'], 30)

    def test_old_orders_fall_outside_period(self):
        order = TestDataFactory.create_order(products=[(self.aspirin, 1)])
        Order.objects.filter(pk=order.pk).update(created_at=timezone.now() - timedelta(days=10))
        response = self.client.get('/api/analytics/dashboard/?period=7')
        self.assertEqual(response.data['totals']['orders'], 0)


class SalesReportTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.product = TestDataFactory.create_product(price=Decimal('10.00'))

    def test_summary_and_breakdown(self):
        TestDataFactory.create_order(products=[(self.product, 1)])
        TestDataFactory.create_order(products=[(self.product, 2)], status=Order.STATUS_COMPLETED)
        TestDataFactory.create_order(products=[(self.product, 5)], status=Order.STATUS_CANCELLED)

        response = self.client.get('/api/analytics/sales/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        summary = response.data['summary']
        self.assertEqual(summary['total_orders'], 3)
        self.assertEqual(Decimal(summary['revenue']), Decimal('30.00'))
        self.assertEqual(summary['avg_order_value'], '15.00')

        by_status = {row['status']: row['count'] for row in response.data['by_status']}
        self.assertEqual(by_status, {'cancelled': 1, 'completed': 1, 'pending': 1})

    def test_empty_range(self):
        response = self.client.get('/api/analytics/sales/?date_from=2020-01-01&date_to=2020-01-31')
        self.assertEqual(response.data['summary']['total_orders'], 0)
        self.assertEqual(response.data['summary']['avg_order_value'], '0.00')
        self.assertEqual(response.data['period'], {'from': '2020-01-01', 'to': '2020-01-31'})

    def test_range_is_inclusive(self):
        order = TestDataFactory.create_order(products=[(self.product, 1)])
        today = timezone.now().date().isoformat()
        response = self.client.get(f'/api/analytics/sales/?date_from={today}&date_to={today}')
        self.assertEqual(response.data['summary']['total_orders'], 1)

        Order.objects.filter(pk=order.pk).update(created_at=timezone.now() - timedelta(days=3))
        cache.clear()
        response = self.client.get(f'/api/analytics/sales/?date_from={today}&date_to={today}')
        self.assertEqual(response.data['summary']['total_orders'], 0)

    def test_bad_date_format(self):
        response = self.client.get('/api/analytics/sales/?date_from=01/02/2024')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_from_after_to(self):
        response = self.client.get('/api/analytics/sales/?date_from=2024-03-01&date_to=2024-02-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
