"""
Test suite for Orders module
Tests: order placement, guest checkout, admin management, totals and notifications
"""
from decimal import Decimal

from django.core import mail
from django.test import TestCase, override_settings
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.notifications.models import Notification
from backend.orders.models import Order
from backend.orders.services import OrderError, create_order


class CreateOrderServiceTests(TestCase):
    """Test the shared order creation service"""

    def setUp(self):
        self.user = TestDataFactory.create_user(name='Pat Patient')
        self.product = TestDataFactory.create_product(name='Ibuprofen', price=Decimal('6.00'))

    def test_total_computed_from_items(self):
        order = create_order([
            {'product_id': self.product.id, 'quantity': 2, 'price': Decimal('6.00')},
            {'product_id': self.product.id, 'quantity': 1, 'price': Decimal('1.50')},
        ], user=self.user)
        self.assertEqual(order.total, Decimal('13.50'))
        self.assertEqual(order.items.count(), 2)
        self.assertEqual(order.customer_email, self.user.email)
        self.assertEqual(order.status, Order.STATUS_PENDING)

    def test_unknown_product(self):
        with self.assertRaises(OrderError):
            create_order([{'product_id': 999999, 'quantity': 1, 'price': Decimal('1.00')}], user=self.user)
        self.assertFalse(Order.objects.exists())

    def test_admin_notified_of_new_order(self):
        order = create_order([{'product_id': self.product.id, 'quantity': 1, 'price': Decimal('6.00')}],
                             user=self.user)
        notification = Notification.objects.get(type='order')
        self.assertTrue(notification.admin_only)
        self.assertIsNone(notification.user)
        self.assertEqual(notification.data['order_id'], order.pk)
        self.assertEqual(notification.data['total'], '6.00')
        self.assertIn('Pat Patient', notification.message)


class OrderAPITests(TestCase):
    """Test order endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.product = TestDataFactory.create_product(price=Decimal('4.25'))

    def test_create_order(self):
        self.client.authenticate_user(self.user)
        data = {
            'items': [{'product_id': self.product.id, 'quantity': 2, 'price': '4.25'}],
            'shipping_address': '1 Main St',
        }
        response = self.client.post('/api/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total'], '8.50')
        self.assertEqual(response.data['user'], self.user.id)
        self.assertEqual(len(response.data['items']), 1)

    def test_create_order_requires_items(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/orders/', {'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data['details'])

    def test_create_order_unknown_product(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/orders/', {
            'items': [{'product_id': 424242, 'quantity': 1, 'price': '1.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('424242', response.data['error'])

    def test_create_order_requires_authentication(self):
        response = self.client.post('/api/orders/', {
            'items': [{'product_id': self.product.id, 'quantity': 1, 'price': '4.25'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_customer_cannot_list_all_orders(self):
        self.client.authenticate_user(self.user)
        self.assertEqual(self.client.get('/api/orders/').status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_lists_orders_by_status(self):
        TestDataFactory.create_order(user=self.user, products=[(self.product, 1)])
        TestDataFactory.create_order(user=self.user, products=[(self.product, 1)], status=Order.STATUS_COMPLETED)
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/orders/?status=completed')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_my_orders(self):
        TestDataFactory.create_order(user=self.user, products=[(self.product, 1)])
        TestDataFactory.create_order(user=TestDataFactory.create_user(), products=[(self.product, 1)])
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/orders/my/')
        self.assertEqual(len(response.data), 1)

    def test_status_update_notifies_customer(self):
        order = TestDataFactory.create_order(user=self.user, products=[(self.product, 1)])
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/orders/{order.id}/', {'status': 'processing'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        notification = Notification.objects.get(user=self.user, type='order')
        self.assertEqual(notification.data['status'], 'processing')

    def test_invalid_status_rejected(self):
        order = TestDataFactory.create_order(user=self.user)
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/orders/{order.id}/', {'status': 'shipped-to-moon'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_add_item_recomputes_total(self):
        order = TestDataFactory.create_order(user=self.user, products=[(self.product, 2)])
        self.client.authenticate_user(self.admin)
        response = self.client.post(f'/api/orders/{order.id}/items/', {
            'product_id': self.product.id, 'quantity': 1, 'price': '1.50',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['order_total'], '10.00')

    def test_admin_deletes_order(self):
        order = TestDataFactory.create_order(user=self.user)
        self.client.authenticate_user(self.admin)
        self.assertEqual(self.client.delete(f'/api/orders/{order.id}/').status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Order.objects.filter(pk=order.pk).exists())


@override_settings(ADMIN_NOTIFICATION_EMAIL='orders@pharmacy.test')
class PublicOrderTests(TestCase):
    """Guest checkout"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.product = TestDataFactory.create_product(name='Cough Drops', price=Decimal('2.00'))

    def test_guest_order(self):
        response = self.client.post('/api/orders/public/', {
            'items': [{'product_id': self.product.id, 'quantity': 3, 'price': '2.00'}],
            'customer_info': {'name': 'Walk In', 'email': 'walkin@test.com', 'phone': '555-0199'},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['user'])
        self.assertEqual(response.data['customer_email'], 'walkin@test.com')
        self.assertEqual(response.data['total'], '6.00')

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['orders@pharmacy.test'])
        self.assertIn('Cough Drops x 3', mail.outbox[0].body)

    def test_guest_order_requires_customer_info(self):
        response = self.client.post('/api/orders/public/', {
            'items': [{'product_id': self.product.id, 'quantity': 1, 'price': '2.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('customer_info', response.data['details'])
