"""
Admin authentication endpoints: lockout-protected login, session polling,
logout and password management for the dashboard.
"""
import logging
from datetime import datetime, timezone as dt_timezone

from django.conf import settings
from django.contrib.auth import authenticate, get_user_model
from django.core.cache import cache
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import connection
from django.db.models import Count
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .authentication import touch_session
from .exceptions import validation_error_response
from .models import AdminSession
from .permissions import IsAdminRole
from .security import (
    blacklist_refresh_tokens, create_admin_session, get_lockout_remaining, record_login_attempt,
    revoke_user_sessions, validate_admin_password,
)
from .serializers import AdminSessionSerializer, ChangePasswordSerializer, UserSerializer
from .throttling import AuthRateThrottle

User = get_user_model()

logger = logging.getLogger('backend.core')


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def admin_login(request):
    """Admin login with attempt tracking and temporary lockout"""
    email = (request.data.get('email') or '').strip()
    password = request.data.get('password') or ''
    if not email or not password:
        return Response({'error': 'Email and password are required'}, status=status.HTTP_400_BAD_REQUEST)

    retry_after = get_lockout_remaining(email)
    if retry_after:
        logger.warning(f"Admin login blocked for locked account {email}")
        return Response({
            'error': 'Too many failed login attempts. Account temporarily locked.',
            'retry_after': retry_after,
        }, status=status.HTTP_423_LOCKED)

    user = authenticate(request, email=email, password=password)
    if user is None or not user.is_admin_role:
        record_login_attempt(request, email, success=False)
        return Response({'error': 'Invalid credentials'}, status=status.HTTP_401_UNAUTHORIZED)

    record_login_attempt(request, email, success=True)
    refresh, access, session = create_admin_session(request, user)
    return Response({
        'token': str(access),
        'refresh': str(refresh),
        'expires_at': datetime.fromtimestamp(access['exp'], tz=dt_timezone.utc).isoformat(),
        'session_expires_at': session.expires_at.isoformat(),
        'user': UserSerializer(user).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def admin_logout(request):
    """Revoke the current admin session and blacklist its refresh tokens"""
    session = getattr(request, 'admin_session', None)
    if session:
        session.revoke()
        blacklist_refresh_tokens(request.user, session=session)

    refresh = request.data.get('refresh')
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
        except TokenError as e:
            logger.info(f"Logout with unusable refresh token for {request.user.email}: {str(e)}")

    logger.info(f"Admin {request.user.email} logged out")
    return Response({'message': 'Logged out'})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_profile(request):
    session = getattr(request, 'admin_session', None)
    active_sessions = request.user.admin_sessions.filter(revoked_at__isnull=True, expires_at__gt=timezone.now())
    return Response({
        'user': UserSerializer(request.user).data,
        'session': AdminSessionSerializer(session).data if session else None,
        'active_sessions': active_sessions.count(),
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def admin_change_password(request):
    serializer = ChangePasswordSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    user = request.user
    data = serializer.validated_data
    if not user.check_password(data['current_password']):
        return Response({'error': 'Current password is incorrect'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        validate_admin_password(data['new_password'], user=user)
    except DjangoValidationError as e:
        return Response({'error': 'Password does not meet requirements', 'details': e.messages},
                        status=status.HTTP_400_BAD_REQUEST)

    user.set_password(data['new_password'])
    user.save()
    revoked = revoke_user_sessions(user, keep=getattr(request, 'admin_session', None))
    logger.info(f"Admin {user.email} changed password, revoked {revoked} other session(s)")
    return Response({'message': 'Password changed successfully'})


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def validate_session(request):
    """
    Liveness check polled by the admin dashboard.
    Authentication has already rejected revoked sessions; here we record
    activity and report when the token expires.
    """
    session = getattr(request, 'admin_session', None)
    expires_at = None
    if session:
        touch_session(session)
        expires_at = session.expires_at.isoformat()
    elif request.auth is not None:
        expires_at = datetime.fromtimestamp(request.auth['exp'], tz=dt_timezone.utc).isoformat()

    return Response({
        'valid': True,
        'user': UserSerializer(request.user).data,
        'expires_at': expires_at,
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def admin_init(request):
    """Create the first admin from ADMIN_EMAIL / ADMIN_PASSWORD"""
    if User.objects.filter(role=User.ROLE_ADMIN).exists():
        return Response({'error': 'Admin user already exists'}, status=status.HTTP_409_CONFLICT)

    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return Response({'error': 'ADMIN_EMAIL and ADMIN_PASSWORD are not configured'},
                        status=status.HTTP_400_BAD_REQUEST)

    user = User.objects.create_user(
        email=settings.ADMIN_EMAIL,
        password=settings.ADMIN_PASSWORD,
        name='Administrator',
        role=User.ROLE_ADMIN,
        is_staff=True,
    )
    logger.info(f"Initial admin user {user.email} created")
    return Response({'message': 'Admin user created', 'user': UserSerializer(user).data},
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_health(request):
    """Detailed health for the admin dashboard"""
    from backend.notifications.broadcast import broker_status

    checks = {}
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
        checks['database'] = 'ok'
    except Exception as e:
        logger.error(f"Admin health database check failed: {str(e)}")
        checks['database'] = 'error'

    try:
        cache.set('admin_health_check', 'ok', 10)
        checks['cache'] = 'ok' if cache.get('admin_health_check') == 'ok' else 'error'
    except Exception as e:
        logger.warning(f"Admin health cache check failed: {str(e)}")
        checks['cache'] = 'error'

    checks['notifications'] = broker_status()

    role_counts = dict(User.objects.values_list('role').annotate(total=Count('id')))
    return Response({
        'status': 'healthy' if checks['database'] == 'ok' else 'degraded',
        'timestamp': timezone.now().isoformat(),
        'checks': checks,
        'users': role_counts,
        'active_admin_sessions': AdminSession.objects.filter(
            revoked_at__isnull=True, expires_at__gt=timezone.now()
        ).count(),
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def admin_health_public(request):
    return Response({'status': 'ok', 'timestamp': timezone.now().isoformat()})
