"""
Test suite for Payments module
Tests: payment intents, subscriptions, webhook signatures and event handling
"""
import hashlib
import hmac
import json
import time
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

import stripe
from django.test import TestCase, override_settings
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.notifications.models import Notification
from backend.orders.models import Order
from backend.payments.models import Subscription
from backend.payments.stripe_client import SignatureVerificationError, StripeClient, construct_webhook_event
from backend.payments.views import to_cents

WEBHOOK_SECRET = 'whsec_test_secret'


def sign_payload(payload, secret, timestamp=None):
    """Stripe-Signature header for ``payload``"""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signature = hmac.new(secret.encode('utf-8'), f"{timestamp}.".encode('utf-8') + payload,
                         hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


class StripeClientTests(TestCase):

    def test_to_cents_rounds_half_up(self):
        self.assertEqual(to_cents(Decimal('10.005')), 1001)
        self.assertEqual(to_cents(Decimal('19.99')), 1999)

    @override_settings(STRIPE_API_BASE='https://stripe.internal.test/')
    @patch('backend.payments.stripe_client.stripe.StripeClient')
    def test_sdk_built_from_settings(self, mock_sdk):
        client = StripeClient(secret_key='sk_test_abc')
        client.sdk.payment_intents.create.return_value = {'id': 'pi_1'}
        client.create_payment_intent(500)
        client.create_payment_intent(700)

        mock_sdk.assert_called_once()
        args, kwargs = mock_sdk.call_args
        self.assertEqual(args, ('sk_test_abc',))
        self.assertEqual(kwargs['base_addresses'], {'api': 'https://stripe.internal.test'})

    def test_webhook_event_decoded(self):
        payload = b'{"id": "evt_1", "type": "charge.refunded"}'
        event = construct_webhook_event(payload, sign_payload(payload, WEBHOOK_SECRET), WEBHOOK_SECRET)
        self.assertEqual(event, {'id': 'evt_1', 'type': 'charge.refunded'})

    def test_webhook_signature_mismatch(self):
        header = sign_payload(b'{"id": "evt_1"}', WEBHOOK_SECRET)
        with self.assertRaises(SignatureVerificationError):
            construct_webhook_event(b'{"id": "evt_2"}', header, WEBHOOK_SECRET)

    def test_webhook_stale_signature(self):
        payload = b'{}'
        header = sign_payload(payload, WEBHOOK_SECRET, timestamp=int(time.time()) - 3600)
        with self.assertRaises(SignatureVerificationError):
            construct_webhook_event(payload, header, WEBHOOK_SECRET, tolerance=300)

    def test_webhook_missing_header(self):
        with self.assertRaises(SignatureVerificationError):
            construct_webhook_event(b'{}', '', WEBHOOK_SECRET)


@override_settings(STRIPE_SECRET_KEY='sk_test_123')
class PaymentIntentTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.order = TestDataFactory.create_order(user=self.user)

    @override_settings(STRIPE_SECRET_KEY='')
    def test_disabled_without_secret_key(self):
        response = self.client.post('/api/payments/create-payment-intent/', {'amount': '10.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['code'], 'PAYMENT_SERVICE_DISABLED')

    @patch('backend.payments.stripe_client.stripe.StripeClient')
    def test_create_payment_intent_for_order(self, mock_sdk):
        create = mock_sdk.return_value.payment_intents.create
        create.return_value = {'id': 'pi_123', 'client_secret': 'pi_123_secret'}
        response = self.client.post('/api/payments/create-payment-intent/', {
            'amount': '24.99', 'currency': 'USD', 'order_id': self.order.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'client_secret': 'pi_123_secret', 'payment_intent_id': 'pi_123'})

        self.assertEqual(mock_sdk.call_args[0], ('sk_test_123',))
        params = create.call_args[1]['params']
        self.assertEqual(params['amount'], 2499)
        self.assertEqual(params['currency'], 'usd')
        self.assertEqual(params['metadata'], {'order_id': self.order.id})

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_intent_id, 'pi_123')
        self.assertEqual(self.order.payment_method, 'stripe')

    def test_amount_must_be_positive(self):
        response = self.client.post('/api/payments/create-payment-intent/', {'amount': '0'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('amount', response.data['details'])

    @patch('backend.payments.stripe_client.stripe.StripeClient')
    def test_provider_rejection(self, mock_sdk):
        mock_sdk.return_value.payment_intents.create.side_effect = stripe.InvalidRequestError(
            'Invalid currency', 'currency', http_status=400)
        response = self.client.post('/api/payments/create-payment-intent/', {'amount': '5.00', 'currency': 'zzz'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['details'], 'Invalid currency')

    @patch('backend.payments.stripe_client.stripe.StripeClient')
    def test_provider_unreachable(self, mock_sdk):
        mock_sdk.return_value.payment_intents.create.side_effect = stripe.APIConnectionError('no route')
        response = self.client.post('/api/payments/create-payment-intent/', {'amount': '5.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['details'], 'Payment provider unreachable')


@override_settings(STRIPE_SECRET_KEY='sk_test_123')
class SubscriptionTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    @patch('backend.payments.stripe_client.stripe.StripeClient')
    def test_create_subscription(self, mock_sdk):
        sdk = mock_sdk.return_value
        sdk.customers.list.return_value = SimpleNamespace(data=[])
        sdk.customers.create.return_value = {'id': 'cus_1'}
        sdk.subscriptions.create.return_value = {
            'id': 'sub_1',
            'status': 'incomplete',
            'current_period_end': 1767225600,
            'latest_invoice': {'payment_intent': {'client_secret': 'pi_sub_secret'}},
        }
        response = self.client.post('/api/payments/create-subscription/', {'price_id': 'price_monthly'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['client_secret'], 'pi_sub_secret')
        self.assertEqual(sdk.subscriptions.create.call_args[1]['params']['items'], [{'price': 'price_monthly'}])

        subscription = Subscription.objects.get(provider_subscription_id='sub_1')
        self.assertEqual(subscription.user, self.user)
        self.assertEqual(subscription.provider_customer_id, 'cus_1')
        self.assertIsNotNone(subscription.current_period_end)

    @patch('backend.payments.stripe_client.stripe.StripeClient')
    def test_existing_customer_is_reused(self, mock_sdk):
        sdk = mock_sdk.return_value
        sdk.customers.list.return_value = SimpleNamespace(data=[{'id': 'cus_existing'}])
        sdk.subscriptions.create.return_value = {'id': 'sub_2', 'status': 'active'}
        self.client.post('/api/payments/create-subscription/', {'price_id': 'price_monthly'}, format='json')
        sdk.customers.create.assert_not_called()
        self.assertEqual(Subscription.objects.get().provider_customer_id, 'cus_existing')

    @patch('backend.payments.stripe_client.stripe.StripeClient')
    def test_cancel_own_subscription(self, mock_sdk):
        Subscription.objects.create(user=self.user, provider_customer_id='cus_1',
                                    provider_subscription_id='sub_1', status='active')
        update = mock_sdk.return_value.subscriptions.update
        update.return_value = {'id': 'sub_1', 'status': 'active'}
        response = self.client.post('/api/payments/cancel-subscription/', {'subscription_id': 'sub_1'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['cancel_at_period_end'])
        update.assert_called_once_with('sub_1', params={'cancel_at_period_end': True})

    def test_cannot_cancel_other_users_subscription(self):
        Subscription.objects.create(user=TestDataFactory.create_user(), provider_customer_id='cus_2',
                                    provider_subscription_id='sub_other', status='active')
        response = self.client.post('/api/payments/cancel-subscription/', {'subscription_id': 'sub_other'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_own_subscriptions(self):
        Subscription.objects.create(user=self.user, provider_customer_id='cus_1',
                                    provider_subscription_id='sub_1', status='active')
        Subscription.objects.create(user=TestDataFactory.create_user(), provider_customer_id='cus_2',
                                    provider_subscription_id='sub_2', status='active')
        response = self.client.get('/api/payments/subscriptions/')
        self.assertEqual([s['provider_subscription_id'] for s in response.data], ['sub_1'])
        self.assertTrue(response.data[0]['is_active'])

    def test_subscription_requires_authentication(self):
        self.client.logout()
        response = self.client.post('/api/payments/create-subscription/', {'price_id': 'p'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


@override_settings(STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET)
class StripeWebhookTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.order = TestDataFactory.create_order(user=TestDataFactory.create_user(), payment_intent_id='pi_paid')

    def _post(self, event, secret=WEBHOOK_SECRET):
        payload = json.dumps(event).encode('utf-8')
        return self.client.post('/api/payments/webhook/', payload, content_type='application/json',
                                HTTP_STRIPE_SIGNATURE=sign_payload(payload, secret))

    def test_payment_succeeded(self):
        response = self._post({
            'id': 'evt_1', 'type': 'payment_intent.succeeded',
            'data': {'object': {'id': 'pi_paid', 'amount_received': 2499}},
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'received': True})
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PROCESSING)
        notification = Notification.objects.get(type='payment')
        self.assertIn('24.99', notification.message)

    def test_payment_succeeded_matches_order_metadata(self):
        order = TestDataFactory.create_order()
        self._post({
            'id': 'evt_2', 'type': 'payment_intent.succeeded',
            'data': {'object': {'id': 'pi_new', 'amount': 500, 'metadata': {'order_id': str(order.id)}}},
        })
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PROCESSING)
        self.assertEqual(order.payment_intent_id, 'pi_new')

    def test_payment_failed(self):
        self._post({
            'id': 'evt_3', 'type': 'payment_intent.payment_failed',
            'data': {'object': {'id': 'pi_paid', 'last_payment_error': {'message': 'Card declined'}}},
        })
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_FAILED)
        self.assertIn('Card declined', Notification.objects.get(type='payment').message)

    def test_subscription_deleted(self):
        subscription = Subscription.objects.create(user=self.order.user, provider_customer_id='cus_1',
                                                   provider_subscription_id='sub_1', status='active')
        self._post({
            'id': 'evt_4', 'type': 'customer.subscription.deleted',
            'data': {'object': {'id': 'sub_1', 'status': 'canceled'}},
        })
        subscription.refresh_from_db()
        self.assertEqual(subscription.status, 'canceled')
        self.assertFalse(subscription.is_active)

    def test_unknown_event_acknowledged(self):
        response = self._post({'id': 'evt_5', 'type': 'charge.refunded', 'data': {'object': {}}})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_bad_signature_rejected(self):
        response = self._post({
            'id': 'evt_6', 'type': 'payment_intent.succeeded', 'data': {'object': {'id': 'pi_paid'}},
        }, secret='whsec_wrong')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PENDING)

    def test_non_object_event_rejected(self):
        payload = b'["payment_intent.succeeded"]'
        response = self.client.post('/api/payments/webhook/', payload, content_type='application/json',
                                    HTTP_STRIPE_SIGNATURE=sign_payload(payload, WEBHOOK_SECRET))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_signature_rejected(self):
        response = self.client.post('/api/payments/webhook/', b'{}', content_type='application/json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(STRIPE_WEBHOOK_SECRET='')
    def test_webhook_disabled_without_secret(self):
        response = self.client.post('/api/payments/webhook/', b'{}', content_type='application/json')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
