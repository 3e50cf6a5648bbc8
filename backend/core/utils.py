"""Request helpers and outbound email shared by the apps"""
import logging

from django.conf import settings
from django.core.mail import send_mail
from rest_framework import status
from rest_framework.response import Response

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
MASK_PREFIX = '***'


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def get_user_agent(request):
    return (request.META.get('HTTP_USER_AGENT') or '')[:500]


def parse_limit(request, default=DEFAULT_LIMIT, maximum=MAX_LIMIT):
    """Read ``limit`` from the query string, clamped to 1..maximum"""
    try:
        limit = int(request.query_params.get('limit', default))
    except (TypeError, ValueError):
        limit = default
    return max(1, min(limit, maximum))


def parse_offset(request):
    try:
        return max(0, int(request.query_params.get('offset', 0)))
    except (TypeError, ValueError):
        return 0


def parse_bool(value):
    if value is None:
        return None
    return str(value).strip().lower() in ('1', 'true', 'yes')


def missing_fields(data, required):
    """Names in ``required`` that are absent or blank in ``data``"""
    return [field for field in required if not str(data.get(field) or '').strip()]


def missing_fields_response(missing):
    return Response({'error': f"Missing required fields: {', '.join(missing)}", 'missing': missing},
                    status=status.HTTP_400_BAD_REQUEST)


def mask_secret(value):
    """Hide a stored credential, keeping its last 4 characters"""
    if not value:
        return ''
    return f"{MASK_PREFIX}{value[-4:]}"


def is_masked(value):
    return isinstance(value, str) and value.startswith(MASK_PREFIX)


def send_email_safely(subject, message, recipients):
    """
    Send a plain-text email.
    Returns True on success; failures are logged and never raised so the
    request that triggered the email still succeeds.
    """
    recipients = [r for r in (recipients or []) if r]
    if not recipients:
        logger.debug(f"Email '{subject}' skipped: no recipients")
        return False
    try:
        send_mail(subject, message, settings.DEFAULT_FROM_EMAIL, recipients, fail_silently=False)
        logger.info(f"Email '{subject}' sent to {len(recipients)} recipient(s)")
        return True
    except Exception as e:
        logger.warning(f"Failed to send email '{subject}': {str(e)}")
        return False


def notify_admin_by_email(subject, message):
    return send_email_safely(subject, message, [settings.ADMIN_NOTIFICATION_EMAIL])
