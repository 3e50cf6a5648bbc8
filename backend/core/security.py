"""
Admin login hardening: attempt tracking, lockout, session issuance
"""
import logging
from datetime import datetime, timedelta, timezone as dt_timezone

from django.conf import settings
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.utils import timezone
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from .authentication import ADMIN_SESSION_CLAIM
from .models import AdminSession, LoginAttempt
from .serializers import PharmacyTokenObtainPairSerializer
from .utils import get_client_ip, get_user_agent

logger = logging.getLogger('backend.core')

WEAK_PASSWORDS = {
    'password', 'password123', 'password1234', 'admin', 'admin123', 'admin1234',
    'administrator', '123456', '12345678', '123456789', '1234567890', 'qwerty',
    'qwerty123', 'letmein', 'welcome', 'welcome123', 'changeme', 'pharmacy',
    'pharmacy123', 'iloveyou', 'secret',
}


def lockout_window():
    return timedelta(minutes=settings.ADMIN_LOCKOUT_MINUTES)


def get_lockout_remaining(email):
    """
    Seconds until ``email`` may try again, 0 when not locked.

    Only failures since the last successful login inside the lockout window
    count towards the limit.
    """
    window_start = timezone.now() - lockout_window()
    attempts = LoginAttempt.objects.filter(email__iexact=email, created_at__gte=window_start)

    last_success = attempts.filter(success=True).order_by('-created_at').first()
    failures = attempts.filter(success=False)
    if last_success:
        failures = failures.filter(created_at__gt=last_success.created_at)

    count = failures.count()
    if count < settings.ADMIN_LOCKOUT_ATTEMPTS:
        return 0

    # Unlocked once enough failures age out that fewer than the limit remain
    releasing = failures.order_by('created_at')[count - settings.ADMIN_LOCKOUT_ATTEMPTS]
    locked_until = releasing.created_at + lockout_window()
    return max(0, int((locked_until - timezone.now()).total_seconds()))


def record_login_attempt(request, email, success):
    LoginAttempt.objects.create(
        email=email,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        success=success,
    )
    if not success:
        logger.warning(f"Failed admin login for {email} from {get_client_ip(request)}")


def create_admin_session(request, user):
    """
    Issue tokens for an admin and persist the session backing them.

    The session key is stored on the refresh token, so every access token
    minted from it (at login or on refresh) carries the same key.
    Returns (refresh_token, access_token, session).
    """
    refresh = PharmacyTokenObtainPairSerializer.get_token(user)
    refresh[ADMIN_SESSION_CLAIM] = refresh['jti']

    session = AdminSession.objects.create(
        user=user,
        jti=refresh['jti'],
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        expires_at=datetime.fromtimestamp(refresh['exp'], tz=dt_timezone.utc),
    )
    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])
    logger.info(f"Admin session started for {user.email}")
    return refresh, refresh.access_token, session


def _session_key(outstanding):
    """Admin session a stored refresh token belongs to, if any"""
    try:
        key = RefreshToken(outstanding.token, verify=False).get(ADMIN_SESSION_CLAIM)
    except TokenError:
        key = None
    # The login token is recorded before the session claim is added
    if key is None and AdminSession.objects.filter(jti=outstanding.jti).exists():
        key = outstanding.jti
    return key


def blacklist_refresh_tokens(user, session=None, keep=None):
    """
    Blacklist the user's outstanding refresh tokens.
    ``session`` limits this to that admin session's tokens; tokens of
    ``keep`` are left usable.
    """
    outstanding = OutstandingToken.objects.filter(
        user=user, blacklistedtoken__isnull=True, expires_at__gt=timezone.now(),
    )
    count = 0
    for token in outstanding:
        key = _session_key(token)
        if session is not None and key != session.jti:
            continue
        if keep is not None and key == keep.jti:
            continue
        BlacklistedToken.objects.get_or_create(token=token)
        count += 1
    return count


def revoke_user_sessions(user, keep=None):
    """
    Revoke every live admin session of ``user`` except ``keep`` and
    blacklist the refresh tokens that could renew them.
    """
    sessions = AdminSession.objects.filter(user=user, revoked_at__isnull=True)
    if keep is not None:
        sessions = sessions.exclude(pk=keep.pk)
    revoked = sessions.update(revoked_at=timezone.now())
    blacklist_refresh_tokens(user, keep=keep)
    return revoked


def validate_admin_password(password, user=None):
    """
    Stricter rules for admin passwords.
    Raises django.core.exceptions.ValidationError with all problems found.
    """
    errors = []
    if len(password) < settings.ADMIN_PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {settings.ADMIN_PASSWORD_MIN_LENGTH} characters long.")
    if password.lower() in WEAK_PASSWORDS:
        errors.append('Password is too common.')
    try:
        validate_password(password, user=user)
    except ValidationError as e:
        errors.extend(e.messages)
    if errors:
        raise ValidationError(list(dict.fromkeys(errors)))
