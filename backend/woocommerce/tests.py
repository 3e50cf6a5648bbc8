"""
Test suite for WooCommerce module
Tests: product import, signed webhooks, order status mapping, store checkout
"""
import json
from decimal import Decimal
from unittest.mock import MagicMock, patch

from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework import status

from backend.catalog.models import Product
from backend.core.integrations import hmac_base64
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.orders.models import Order
from backend.woocommerce.models import WooCommerceSettings
from backend.woocommerce.services import apply_order_status, product_fields

WEBHOOK_SECRET = 'wc-hook-secret'


def wc_response(body, status_code=200, total_pages=1):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.headers = {'X-WP-TotalPages': str(total_pages)}
    return response


def wc_product(product_id, name='Vitamin D3 1000 IU', price='12.50', stock=40, status='publish'):
    return {
        'id': product_id,
        'name': name,
        'description': '<p>Supports bone health.</p>',
        'price': price,
        'regular_price': price,
        'stock_quantity': stock,
        'status': status,
        'categories': [{'id': 3, 'name': 'Vitamins'}],
        'images': [{'src': 'https://store.example.com/d3.jpg'}],
    }


def configure_store(enabled=True):
    wc_settings = WooCommerceSettings.load()
    wc_settings.enabled = enabled
    wc_settings.store_url = 'https://store.example.com'
    wc_settings.consumer_key = 'ck_1234567890'
    wc_settings.consumer_secret = 'cs_abcdefghij'
    wc_settings.webhook_secret = WEBHOOK_SECRET
    wc_settings.save()
    return wc_settings


class ProductMappingTests(TestCase):

    def test_product_fields(self):
        fields = product_fields(wc_product(9))
        self.assertEqual(fields['name'], 'Vitamin D3 1000 IU')
        self.assertEqual(fields['description'], 'Supports bone health.')
        self.assertEqual(fields['price'], Decimal('12.50'))
        self.assertEqual(fields['category'].name, 'Vitamins')
        self.assertEqual(fields['image_url'], 'https://store.example.com/d3.jpg')
        self.assertTrue(fields['is_active'])

    def test_bad_price_and_negative_stock(self):
        fields = product_fields(wc_product(9, price='call us', stock=-3))
        self.assertEqual(fields['price'], Decimal('0.00'))
        self.assertEqual(fields['stock'], 0)

    def test_draft_product_is_inactive(self):
        self.assertFalse(product_fields(wc_product(9, status='draft'))['is_active'])


class OrderStatusMappingTests(TestCase):

    def test_maps_store_statuses(self):
        order = TestDataFactory.create_order()
        self.assertEqual(apply_order_status([order], 'processing'), 1)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PROCESSING)

        apply_order_status([order], 'refunded')
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_CANCELLED)

    def test_unchanged_status_is_not_counted(self):
        order = TestDataFactory.create_order()
        self.assertEqual(apply_order_status([order], 'on-hold'), 0)

    def test_unknown_status_is_ignored(self):
        order = TestDataFactory.create_order()
        self.assertEqual(apply_order_status([order], 'checkout-draft'), 0)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PENDING)


class WooCommerceAdminTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())

    def test_settings_masked(self):
        configure_store()
        response = self.client.get('/api/woocommerce/settings/')
        self.assertEqual(response.data['consumer_key'], '***7890')
        self.assertEqual(response.data['consumer_secret'], '***ghij')

    def test_sync_requires_enabled_integration(self):
        configure_store(enabled=False)
        response = self.client.post('/api/woocommerce/sync-products/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch('backend.core.integrations.requests.request')
    def test_connection(self, mock_request):
        configure_store()
        mock_request.return_value = wc_response({
            'environment': {'site_url': 'https://store.example.com', 'version': '8.2.1'},
            'settings': {'currency': 'USD'},
        })
        response = self.client.post('/api/woocommerce/test-connection/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['store_info']['currency'], 'USD')
        self.assertEqual(mock_request.call_args[0][1], 'https://store.example.com/wp-json/wc/v3/system_status')

    @patch('backend.core.integrations.requests.request')
    def test_sync_products(self, mock_request):
        configure_store()
        Product.objects.create(name='Old name', price=Decimal('1.00'), woocommerce_id=1)
        mock_request.return_value = wc_response([wc_product(1), wc_product(2, name='Zinc 50mg')])

        response = self.client.post('/api/woocommerce/sync-products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 1)
        self.assertEqual(response.data['updated'], 1)
        self.assertEqual(Product.objects.get(woocommerce_id=1).name, 'Vitamin D3 1000 IU')
        self.assertEqual(self.client.get('/api/woocommerce/sync-status/').data['status'],
                         WooCommerceSettings.SYNC_SUCCESS)

    @patch('backend.core.integrations.requests.request')
    def test_sync_failure_rolls_back(self, mock_request):
        configure_store()
        mock_request.side_effect = [
            wc_response([wc_product(i) for i in range(1, 101)], total_pages=2),
            wc_response({'message': 'Internal error'}, status_code=500),
        ]
        response = self.client.post('/api/woocommerce/sync-products/')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['details'], 'Internal error')
        self.assertFalse(Product.objects.exists())
        self.assertEqual(WooCommerceSettings.load().sync_status, WooCommerceSettings.SYNC_ERROR)


class WooCommerceWebhookTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        configure_store()

    def _post(self, topic, body, secret=WEBHOOK_SECRET, url='/api/woocommerce/webhook/'):
        payload = json.dumps(body).encode('utf-8')
        return self.client.post(url, payload, content_type='application/json',
                                HTTP_X_WC_WEBHOOK_TOPIC=topic,
                                HTTP_X_WC_WEBHOOK_SIGNATURE=hmac_base64(secret, payload))

    def test_product_created(self):
        response = self._post('product.created', wc_product(21))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Product.objects.filter(woocommerce_id=21, is_active=True).exists())

    def test_product_deleted_deactivates(self):
        Product.objects.create(name='Zinc', price=Decimal('4.00'), woocommerce_id=21)
        self._post('product.deleted', {'id': 21})
        self.assertFalse(Product.objects.get(woocommerce_id=21).is_active)

    def test_product_deleted_drops_from_cached_listing(self):
        cache.clear()
        Product.objects.create(name='Zinc', price=Decimal('4.00'), woocommerce_id=21)
        listed = self.client.get('/api/products/')
        self.assertIn('Zinc', [p['name'] for p in listed.data['results']])

        with self.captureOnCommitCallbacks(execute=True):
            self._post('product.deleted', {'id': 21})
        response = self.client.get('/api/products/')
        self.assertNotIn('Zinc', [p['name'] for p in response.data['results']])

    def test_order_updated(self):
        order = TestDataFactory.create_order(woocommerce_order_id=500)
        self._post('order.updated', {'id': 500, 'status': 'completed'})
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_COMPLETED)

    def test_invalid_signature(self):
        response = self._post('product.created', wc_product(21), secret='wrong')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(Product.objects.exists())

    def test_ping_without_id_is_acknowledged(self):
        response = self._post('', {'webhook_id': 4})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_non_object_payload(self):
        response = self._post('product.created', [wc_product(21)])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self._post('', 'order_key', url='/api/woocommerce-payments/webhook/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_numeric_id(self):
        response = self._post('product.created', {**wc_product(21), 'id': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Product.objects.exists())

    def test_payment_webhook_matches_order_key(self):
        order = TestDataFactory.create_order(payment_intent_id='wc_order_abc123', woocommerce_order_id=501)
        response = self._post('', {'order_key': 'wc_order_abc123', 'status': 'processing'},
                              url='/api/woocommerce-payments/webhook/')
        self.assertEqual(response.data['updated'], 1)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PROCESSING)

    def test_payment_webhook_falls_back_to_store_id(self):
        order = TestDataFactory.create_order(woocommerce_order_id=502)
        self._post('', {'order_id': 502, 'status': 'failed'}, url='/api/woocommerce-payments/webhook/')
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_FAILED)

    def test_payment_webhook_requires_reference(self):
        response = self._post('', {'status': 'failed'}, url='/api/woocommerce-payments/webhook/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


@override_settings(WOOCOMMERCE_STORE_URL='', WOOCOMMERCE_CONSUMER_KEY='', WOOCOMMERCE_CONSUMER_SECRET='')
class StoreCheckoutTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(name='Jane Patient')
        self.product = TestDataFactory.create_product(name='Vitamin D3', price=Decimal('12.50'))
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def checkout(self, **overrides):
        data = {
            'items': [{'product_id': self.product.id, 'quantity': 2, 'price': '12.50'}],
            'customer_info': {
                'first_name': 'Jane', 'last_name': 'Patient', 'email': 'jane@test.com', 'phone': '555-0100',
                'address': {'address1': '12 Elm St', 'city': 'Springfield', 'state': 'IL', 'postcode': '62701'},
            },
            'total_amount': '25.00',
        }
        data.update(overrides)
        return data

    def test_not_configured(self):
        response = self.client.post('/api/woocommerce-payments/create-order/', self.checkout(), format='json')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    @patch('backend.core.integrations.requests.request')
    def test_create_store_order(self, mock_request):
        configure_store()
        mock_request.return_value = wc_response({
            'id': 9001, 'order_key': 'wc_order_xyz', 'status': 'pending',
            'payment_url': 'https://store.example.com/checkout/order-pay/9001',
        }, status_code=201)

        response = self.client.post('/api/woocommerce-payments/create-order/', self.checkout(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['woocommerce_order']['id'], 9001)

        order = Order.objects.get(woocommerce_order_id=9001)
        self.assertEqual(order.user, self.user)
        self.assertEqual(order.total, Decimal('25.00'))
        self.assertEqual(order.payment_intent_id, 'wc_order_xyz')
        self.assertEqual(order.shipping_address, '12 Elm St Springfield IL 62701 US')

        sent = mock_request.call_args[1]['json']
        self.assertEqual(sent['line_items'], [{'quantity': 2, 'total': '25.00', 'name': 'Vitamin D3'}])
        self.assertEqual(sent['billing']['email'], 'jane@test.com')

    @patch('backend.core.integrations.requests.request')
    def test_unknown_product(self, mock_request):
        configure_store()
        data = self.checkout(items=[{'product_id': 99999, 'quantity': 1, 'price': '1.00'}])
        response = self.client.post('/api/woocommerce-payments/create-order/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        mock_request.assert_not_called()

    @patch('backend.core.integrations.requests.request')
    def test_store_rejects_order(self, mock_request):
        configure_store()
        mock_request.return_value = wc_response({'message': 'Invalid billing email'}, status_code=400)
        response = self.client.post('/api/woocommerce-payments/create-order/', self.checkout(), format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertFalse(Order.objects.exists())

    @patch('backend.core.integrations.requests.request')
    def test_order_status_refreshes_local_order(self, mock_request):
        configure_store()
        order = TestDataFactory.create_order(user=self.user, woocommerce_order_id=9002)
        mock_request.return_value = wc_response({'id': 9002, 'status': 'completed', 'total': '25.00'})
        response = self.client.get(f'/api/woocommerce-payments/order/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order']['status'], Order.STATUS_COMPLETED)

    def test_order_status_of_other_user(self):
        configure_store()
        order = TestDataFactory.create_order(user=TestDataFactory.create_user(), woocommerce_order_id=9003)
        response = self.client.get(f'/api/woocommerce-payments/order/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    @patch('backend.core.integrations.requests.request')
    def test_payment_methods_lists_enabled_gateways(self, mock_request):
        configure_store()
        mock_request.return_value = wc_response([
            {'id': 'stripe', 'title': 'Card', 'description': '', 'enabled': True},
            {'id': 'cod', 'title': 'Cash on delivery', 'description': '', 'enabled': False},
        ])
        response = self.client.get('/api/woocommerce-payments/payment-methods/')
        self.assertEqual([m['id'] for m in response.data['payment_methods']], ['stripe'])

    @patch('backend.core.integrations.requests.request')
    def test_cancel_order(self, mock_request):
        configure_store()
        order = TestDataFactory.create_order(user=self.user, woocommerce_order_id=9004)
        mock_request.return_value = wc_response({'id': 9004, 'status': 'cancelled'})
        response = self.client.post(f'/api/woocommerce-payments/cancel-order/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(mock_request.call_args[1]['json'], {'status': 'cancelled'})
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_CANCELLED)

    @patch('backend.core.integrations.requests.request')
    def test_cancel_refused_after_fulfilment(self, mock_request):
        configure_store()
        order = TestDataFactory.create_order(user=self.user, woocommerce_order_id=9005,
                                             status=Order.STATUS_COMPLETED)
        response = self.client.post(f'/api/woocommerce-payments/cancel-order/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        mock_request.assert_not_called()
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_COMPLETED)
