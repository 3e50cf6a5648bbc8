"""
Shared plumbing for the WordPress and WooCommerce REST integrations
"""
import base64
import hashlib
import hmac
import logging

import requests
from django.conf import settings
from rest_framework import serializers

from .utils import is_masked, mask_secret

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
MAX_PAGES = 50


class IntegrationError(Exception):
    """Upstream request failed or returned an error status"""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RestClient:
    """
    requests-based client for a WordPress-style REST API
    (``<base_url>/<api_path>/<resource>``) using HTTP basic auth.
    """
    api_path = ''
    name = 'integration'

    def __init__(self, base_url, username, password, timeout=None):
        self.base_url = (base_url or '').rstrip('/')
        self.auth = (username or '', password or '')
        self.timeout = timeout or settings.INTEGRATION_TIMEOUT

    @property
    def configured(self):
        return bool(self.base_url and all(self.auth))

    def url(self, path=''):
        return '/'.join(part.strip('/') for part in (self.base_url, self.api_path, path) if part)

    def request(self, method, path, params=None, json=None, absolute=False):
        """Perform a request and return ``(data, response)``"""
        url = path if absolute else self.url(path)
        try:
            response = requests.request(method, url, params=params, json=json, auth=self.auth,
                                        timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"{self.name} {method} {url} failed: {str(e)}")
            raise IntegrationError(f"Could not reach {self.name}: {str(e)}") from e

        try:
            data = response.json()
        except ValueError:
            data = None
        if response.status_code >= 400:
            message = data.get('message') if isinstance(data, dict) else None
            message = message or f"HTTP {response.status_code}"
            logger.warning(f"{self.name} {method} {url} returned {response.status_code}: {message}")
            raise IntegrationError(message, response.status_code)
        return data, response

    def get(self, path, params=None):
        return self.request('GET', path, params=params)[0]

    def post(self, path, payload):
        return self.request('POST', path, json=payload)[0]

    def put(self, path, payload):
        return self.request('PUT', path, json=payload)[0]

    def paginate(self, path, params=None, per_page=DEFAULT_PAGE_SIZE, max_pages=MAX_PAGES):
        """Yield every item of a paged collection, following ``X-WP-TotalPages``"""
        page = 1
        while page <= max_pages:
            query = dict(params or {}, page=page, per_page=per_page)
            data, response = self.request('GET', path, params=query)
            items = data or []
            yield from items
            total_pages = int(response.headers.get('X-WP-TotalPages') or 1)
            if page >= total_pages or len(items) < per_page:
                break
            page += 1


def hmac_base64(secret, payload):
    return base64.b64encode(hmac.new(secret.encode('utf-8'), payload, hashlib.sha256).digest()).decode()


def verify_base64_hmac(payload, signature, secret):
    """Constant-time check of a base64 HMAC-SHA256 signature of the raw body"""
    if not secret or not signature:
        return False
    return hmac.compare_digest(signature.strip(), hmac_base64(secret, payload))


def verify_shared_secret(received, secret):
    if not secret or not received:
        return False
    return hmac.compare_digest(received, secret)


class IntegrationSettingsSerializer(serializers.ModelSerializer):
    """
    Masks the model's SECRET_FIELDS on read. A masked value written back
    leaves the stored secret unchanged.
    """

    def to_representation(self, instance):
        data = super().to_representation(instance)
        for field in instance.SECRET_FIELDS:
            data[field] = mask_secret(getattr(instance, field))
        return data

    def update(self, instance, validated_data):
        for field in instance.SECRET_FIELDS:
            if is_masked(validated_data.get(field)):
                validated_data.pop(field)
        return super().update(instance, validated_data)
