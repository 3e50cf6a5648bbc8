"""
Test suite for Cart module
Tests: guest and user carts, stock checks, line updates, expiry
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.cart.models import Cart, CartItem
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class GuestCartTests(TestCase):
    """Carts addressed by cart_id"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.product = TestDataFactory.create_product(price=Decimal('5.00'), stock=10)

    def test_get_creates_guest_cart(self):
        response = self.client.get('/api/cart/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['user'])
        self.assertTrue(Cart.objects.filter(pk=response.data['id']).exists())

    def test_add_item_to_guest_cart(self):
        cart_id = self.client.get('/api/cart/').data['id']
        response = self.client.post('/api/cart/items/', {
            'cart_id': cart_id, 'product_id': self.product.id, 'quantity': 2,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['id'], cart_id)
        self.assertEqual(response.data['summary']['subtotal'], '10.00')

    def test_adding_same_product_merges_lines(self):
        cart_id = self.client.get('/api/cart/').data['id']
        for _ in range(2):
            self.client.post('/api/cart/items/', {'cart_id': cart_id, 'product_id': self.product.id, 'quantity': 3},
                             format='json')
        item = CartItem.objects.get(cart_id=cart_id)
        self.assertEqual(item.quantity, 6)

    def test_insufficient_stock(self):
        response = self.client.post('/api/cart/items/', {'product_id': self.product.id, 'quantity': 11},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['available'], 10)

    def test_inactive_product_cannot_be_added(self):
        product = TestDataFactory.create_product(is_active=False)
        response = self.client.post('/api/cart/items/', {'product_id': product.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_and_remove_item(self):
        cart_id = self.client.post('/api/cart/items/', {'product_id': self.product.id}, format='json').data['id']
        item = CartItem.objects.get(cart_id=cart_id)

        response = self.client.put(f'/api/cart/items/{item.id}/?cart_id={cart_id}', {'quantity': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['total_items'], 4)

        response = self.client.delete(f'/api/cart/items/{item.id}/?cart_id={cart_id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'], [])

    def test_update_over_stock_rejected(self):
        cart_id = self.client.post('/api/cart/items/', {'product_id': self.product.id}, format='json').data['id']
        item = CartItem.objects.get(cart_id=cart_id)
        response = self.client.put(f'/api/cart/items/{item.id}/?cart_id={cart_id}', {'quantity': 50}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_cart_item_not_found(self):
        cart_id = self.client.post('/api/cart/items/', {'product_id': self.product.id}, format='json').data['id']
        item = CartItem.objects.get(cart_id=cart_id)
        other_cart = Cart.objects.create()
        response = self.client.delete(f'/api/cart/items/{item.id}/?cart_id={other_cart.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_expired_guest_cart_is_replaced(self):
        cart = Cart.objects.create(expires_at=timezone.now() - timedelta(minutes=1))
        response = self.client.get(f'/api/cart/?cart_id={cart.id}')
        self.assertNotEqual(response.data['id'], str(cart.id))
        self.assertFalse(Cart.objects.filter(pk=cart.pk).exists())

    def test_clear_cart(self):
        cart_id = self.client.post('/api/cart/items/', {'product_id': self.product.id}, format='json').data['id']
        response = self.client.delete(f'/api/cart/?cart_id={cart_id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(CartItem.objects.filter(cart_id=cart_id).exists())

    def test_summary_without_cart(self):
        response = self.client.get('/api/cart/summary/')
        self.assertEqual(response.data, {'item_count': 0, 'total_items': 0, 'subtotal': '0.00'})


class UserCartTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(price=Decimal('2.50'))

    def test_user_gets_single_cart(self):
        first = self.client.get('/api/cart/').data['id']
        second = self.client.get('/api/cart/').data['id']
        self.assertEqual(first, second)
        self.assertEqual(Cart.objects.filter(user=self.user).count(), 1)

    def test_cart_ignores_foreign_cart_id(self):
        guest_cart = Cart.objects.create()
        response = self.client.get(f'/api/cart/?cart_id={guest_cart.id}')
        self.assertNotEqual(response.data['id'], str(guest_cart.id))
        self.assertEqual(response.data['user'], self.user.id)

    def test_summary(self):
        self.client.post('/api/cart/items/', {'product_id': self.product.id, 'quantity': 2}, format='json')
        response = self.client.get('/api/cart/summary/')
        self.assertEqual(response.data['total_items'], 2)
        self.assertEqual(response.data['subtotal'], '5.00')
