"""
Stripe access through the official SDK.
Provider failures surface as PaymentProviderError so views deal with a
single exception type.
"""
import json
import logging
from typing import Any, Dict

import stripe
from django.conf import settings

logger = logging.getLogger('backend.payments')

SignatureVerificationError = stripe.SignatureVerificationError


class PaymentProviderError(Exception):
    """The provider rejected a request or could not be reached"""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StripeClient:
    def __init__(self, secret_key=None, api_base=None, timeout=None):
        self.secret_key = secret_key if secret_key is not None else settings.STRIPE_SECRET_KEY
        self.api_base = (api_base or settings.STRIPE_API_BASE).rstrip('/')
        self.timeout = timeout or settings.INTEGRATION_TIMEOUT
        self._sdk = None

    @property
    def configured(self) -> bool:
        return bool(self.secret_key)

    @property
    def sdk(self):
        if self._sdk is None:
            self._sdk = stripe.StripeClient(
                self.secret_key,
                base_addresses={'api': self.api_base},
                http_client=stripe.RequestsClient(timeout=self.timeout),
            )
        return self._sdk

    def _call(self, action: str, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except stripe.APIConnectionError as e:
            logger.error(f"Stripe {action} failed: {str(e)}")
            raise PaymentProviderError('Payment provider unreachable') from e
        except stripe.StripeError as e:
            message = e.user_message or str(e)
            logger.warning(f"Stripe {action} rejected: {message}")
            raise PaymentProviderError(message, e.http_status) from e

    def create_payment_intent(self, amount_cents: int, currency: str = 'usd', metadata=None):
        return self._call('create payment intent', self.sdk.payment_intents.create, params={
            'amount': amount_cents,
            'currency': currency,
            'automatic_payment_methods': {'enabled': True},
            'metadata': metadata or {},
        })

    def get_or_create_customer(self, email: str, name: str = ''):
        existing = self._call('list customers', self.sdk.customers.list, params={'email': email, 'limit': 1})
        if existing.data:
            return existing.data[0]
        return self._call('create customer', self.sdk.customers.create, params={'email': email, 'name': name})

    def create_subscription(self, customer_id: str, price_id: str):
        return self._call('create subscription', self.sdk.subscriptions.create, params={
            'customer': customer_id,
            'items': [{'price': price_id}],
            'payment_behavior': 'default_incomplete',
            'expand': ['latest_invoice.payment_intent'],
        })

    def cancel_subscription_at_period_end(self, subscription_id: str):
        return self._call('cancel subscription', self.sdk.subscriptions.update, subscription_id,
                          params={'cancel_at_period_end': True})


def construct_webhook_event(payload: bytes, header: str, secret: str, tolerance: int = None) -> Dict[str, Any]:
    """
    Verify a ``Stripe-Signature`` header and decode the event.
    Raises SignatureVerificationError for a bad signature and ValueError for
    a body that is not JSON.
    """
    tolerance = settings.STRIPE_WEBHOOK_TOLERANCE if tolerance is None else tolerance
    if not header:
        raise SignatureVerificationError('Missing signature', header)
    body = payload.decode('utf-8')
    stripe.WebhookSignature.verify_header(body, header, secret, tolerance)
    return json.loads(body)
