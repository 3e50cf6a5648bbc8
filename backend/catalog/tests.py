"""
Test suite for Catalog module
Tests: product listing and filters, admin writes, list caching, categories, low stock alerts
"""
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from backend.catalog.models import Category, Product, StockAdjustment
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.notifications.models import Notification


class ProductListTests(TestCase):
    """Test the public product listing"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.category = TestDataFactory.create_category(name='Vitamins')
        self.vitamin = TestDataFactory.create_product(name='Vitamin C 500mg', price=Decimal('12.50'),
                                                      category=self.category)
        self.bandage = TestDataFactory.create_product(name='Bandage Roll', price=Decimal('3.00'), stock=0)
        self.hidden = TestDataFactory.create_product(name='Discontinued Syrup', is_active=False)

    def test_list_hides_inactive_products(self):
        response = self.client.get('/api/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        names = [p['name'] for p in response.data['results']]
        self.assertIn('Vitamin C 500mg', names)
        self.assertNotIn('Discontinued Syrup', names)
        self.assertEqual(response.data['count'], 2)

    def test_admin_sees_inactive_products(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get('/api/products/')
        self.assertEqual(response.data['count'], 3)

    def test_search_matches_every_word(self):
        response = self.client.get('/api/products/?search=vitamin 500')
        self.assertEqual([p['id'] for p in response.data['results']], [self.vitamin.id])

        response = self.client.get('/api/products/?search=vitamin syrup')
        self.assertEqual(response.data['count'], 0)

    def test_filters(self):
        response = self.client.get(f'/api/products/?category={self.category.id}')
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/products/?in_stock=true')
        self.assertEqual([p['id'] for p in response.data['results']], [self.vitamin.id])

        response = self.client.get('/api/products/?max_price=5')
        self.assertEqual([p['id'] for p in response.data['results']], [self.bandage.id])

    def test_pagination(self):
        response = self.client.get('/api/products/?limit=1&offset=1')
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['limit'], 1)
        self.assertEqual(response.data['offset'], 1)

    def test_list_is_cached_until_product_changes(self):
        """A catalog write invalidates the cached listing"""
        self.client.get('/api/products/')
        Product.objects.filter(pk=self.vitamin.pk).update(name='Renamed Quietly')
        response = self.client.get('/api/products/')
        self.assertIn('Vitamin C 500mg', [p['name'] for p in response.data['results']])

        with self.captureOnCommitCallbacks(execute=True):
            self.bandage.price = Decimal('4.00')
            self.bandage.save()
        response = self.client.get('/api/products/')
        self.assertIn('Renamed Quietly', [p['name'] for p in response.data['results']])


class ProductAdminTests(TestCase):
    """Test product writes"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()

    def test_customer_cannot_create_product(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/products/', {'name': 'Aspirin', 'price': '4.99'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_cannot_create_product(self):
        response = self.client.post('/api/products/', {'name': 'Aspirin', 'price': '4.99'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_admin_creates_product(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/products/', {'name': 'Aspirin', 'price': '4.99', 'stock': 20},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Product.objects.get(name='Aspirin').stock, 20)

    def test_negative_price_rejected(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/products/', {'name': 'Aspirin', 'price': '-1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('price', response.data['details'])

    def test_update_and_delete_product(self):
        product = TestDataFactory.create_product()
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/products/{product.id}/', {'stock': 7}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stock'], 7)

        response = self.client.delete(f'/api/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=product.pk).exists())

    def test_inactive_product_detail_is_404_for_public(self):
        product = TestDataFactory.create_product(is_active=False)
        response = self.client.get(f'/api/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_variants(self):
        product = TestDataFactory.create_product()
        self.client.authenticate_user(self.admin)
        response = self.client.post(f'/api/products/{product.id}/variants/',
                                    {'name': 'Strength', 'value': '250mg', 'price': '5.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        self.client.logout()
        response = self.client.get(f'/api/products/{product.id}/variants/')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['value'], '250mg')


class CategoryTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())

    def test_list_includes_product_count(self):
        category = TestDataFactory.create_category()
        TestDataFactory.create_product(category=category)
        response = self.client.get('/api/categories/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['product_count'], 1)

    def test_cannot_delete_category_with_products(self):
        category = TestDataFactory.create_category()
        TestDataFactory.create_product(category=category)
        response = self.client.delete(f'/api/categories/{category.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Category.objects.filter(pk=category.pk).exists())

    def test_delete_empty_category(self):
        category = TestDataFactory.create_category()
        response = self.client.delete(f'/api/categories/{category.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class LowStockAlertTests(TestCase):
    """Low stock notifications fire once when the threshold is crossed"""

    def setUp(self):
        cache.clear()
        self.product = TestDataFactory.create_product(stock=10, low_stock_threshold=5)

    def _low_stock_alerts(self):
        return Notification.objects.filter(type='inventory', data__product_id=self.product.pk)

    def test_alert_when_crossing_threshold(self):
        self.product.stock = 4
        self.product.save()
        self.assertEqual(self._low_stock_alerts().count(), 1)
        self.assertTrue(self._low_stock_alerts().first().admin_only)

    def test_no_repeat_alert_below_threshold(self):
        self.product.stock = 4
        self.product.save()
        self.product.stock = 2
        self.product.save()
        self.assertEqual(self._low_stock_alerts().count(), 1)

    def test_no_alert_above_threshold(self):
        self.product.stock = 6
        self.product.save()
        self.assertFalse(self._low_stock_alerts().exists())


class StockAdjustmentTests(TestCase):
    """Manual stock movements and the low stock report"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.product = TestDataFactory.create_product(name='Saline Spray', stock=10, low_stock_threshold=5)

    def test_stock_in(self):
        response = self.client.post('/api/inventory/adjustments/', {
            'product': self.product.id, 'adjustment_type': 'in', 'quantity': 15, 'reason': 'received',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual((response.data['previous_stock'], response.data['new_stock']), (10, 25))
        self.assertEqual(response.data['created_by'], self.admin.id)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 25)

    def test_stock_out_cannot_go_negative(self):
        response = self.client.post('/api/inventory/adjustments/', {
            'product': self.product.id, 'adjustment_type': 'out', 'quantity': 11, 'reason': 'damaged',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertFalse(StockAdjustment.objects.exists())

    def test_stock_out_raises_low_stock_alert(self):
        self.client.post('/api/inventory/adjustments/', {
            'product': self.product.id, 'adjustment_type': 'out', 'quantity': 7, 'reason': 'expired',
        }, format='json')
        self.assertTrue(Notification.objects.filter(type='inventory', data__product_id=self.product.pk).exists())

    def test_quantity_must_be_positive(self):
        response = self.client.post('/api/inventory/adjustments/', {
            'product': self.product.id, 'adjustment_type': 'in', 'quantity': 0,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('quantity', response.data['details'])

    def test_set_stock_records_difference(self):
        response = self.client.put(f'/api/inventory/products/{self.product.id}/stock/', {
            'stock': 4, 'notes': 'Shelf count',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['product']['stock'], 4)
        adjustment = response.data['adjustment']
        self.assertEqual((adjustment['adjustment_type'], adjustment['quantity']), ('out', 6))
        self.assertEqual(adjustment['reason'], 'correction')

    def test_set_same_stock_records_nothing(self):
        response = self.client.put(f'/api/inventory/products/{self.product.id}/stock/', {'stock': 10},
                                   format='json')
        self.assertIsNone(response.data['adjustment'])
        self.assertFalse(StockAdjustment.objects.exists())

    def test_history_filters_by_product(self):
        other = TestDataFactory.create_product(stock=3)
        for product in (self.product, other):
            self.client.post('/api/inventory/adjustments/', {
                'product': product.id, 'adjustment_type': 'in', 'quantity': 1,
            }, format='json')
        response = self.client.get(f'/api/inventory/adjustments/?product={other.id}')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['product'], other.id)

    def test_adjustment_refreshes_cached_listing(self):
        self.client.logout()
        self.client.get('/api/products/')
        self.client.authenticate_user(self.admin)
        with self.captureOnCommitCallbacks(execute=True):
            self.client.put(f'/api/inventory/products/{self.product.id}/stock/', {'stock': 40}, format='json')
        self.client.logout()
        response = self.client.get('/api/products/')
        self.assertEqual(response.data['results'][0]['stock'], 40)

    def test_low_stock_report(self):
        TestDataFactory.create_product(name='Gauze', stock=1, low_stock_threshold=5)
        TestDataFactory.create_product(name='Retired', stock=0, is_active=False)
        response = self.client.get('/api/inventory/alerts/')
        self.assertEqual([p['name'] for p in response.data['results']], ['Gauze'])

    def test_customers_cannot_adjust_stock(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/inventory/adjustments/', {
            'product': self.product.id, 'adjustment_type': 'in', 'quantity': 1,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
