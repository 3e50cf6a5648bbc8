"""
JWT authentication that also honours server-side admin session revocation
"""
import logging

from django.utils import timezone
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed

from .models import AdminSession

logger = logging.getLogger('backend.core')

ADMIN_SESSION_CLAIM = 'admin_session'


class SessionJWTAuthentication(JWTAuthentication):
    """
    Bearer-token authentication.

    Tokens issued by the admin login, and tokens refreshed from them, carry
    the ``admin_session`` claim naming an AdminSession row; they are rejected
    once the session is revoked (logout, password change) even if the JWT
    itself is still valid.
    """

    def authenticate(self, request):
        result = super().authenticate(request)
        if result is None:
            return None

        user, validated_token = result
        session_key = validated_token.get(ADMIN_SESSION_CLAIM)
        if session_key:
            session = AdminSession.objects.filter(jti=session_key).first()
            if session is None or not session.is_active:
                logger.info(f"Rejected token for revoked or unknown admin session (user {user.pk})")
                raise AuthenticationFailed('Session has expired or been revoked.', code='session_revoked')
            request.admin_session = session
        return user, validated_token


def touch_session(session):
    """Record activity on an admin session"""
    session.last_activity = timezone.now()
    session.save(update_fields=['last_activity'])
