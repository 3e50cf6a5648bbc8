import logging
import time

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.core.cache import cache
from django.core.exceptions import ValidationError as DjangoValidationError
from django.contrib.auth.password_validation import validate_password
from django.db import connection
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import AuthenticationFailed

from .cache_utils import SETTINGS_CACHE_TTL, SETTINGS_PREFIX, cached_query
from .exceptions import validation_error_response
from .models import SiteSettings
from .permissions import IsAdminRole, is_owner_or_admin
from .serializers import (
    UserSerializer, UserUpdateSerializer, RegisterSerializer,
    PharmacyTokenObtainPairSerializer, PharmacyTokenRefreshSerializer,
    PasswordResetRequestSerializer, PasswordResetSerializer, SiteSettingsSerializer,
)
from .security import revoke_user_sessions
from .throttling import AuthRateThrottle
from .utils import parse_limit, send_email_safely

User = get_user_model()

logger = logging.getLogger('backend.core')

STARTED_AT = time.monotonic()


def _token_response(user, status_code=status.HTTP_200_OK):
    token = PharmacyTokenObtainPairSerializer.get_token(user)
    return Response({
        'user': UserSerializer(user).data,
        'token': str(token.access_token),
        'refresh': str(token),
    }, status=status_code)


# Auth views
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def register(request):
    """User registration endpoint"""
    email = (request.data.get('email') or '').strip()
    if email and User.objects.filter(email__iexact=email).exists():
        return Response({'error': 'User already exists'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = RegisterSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    user = serializer.save()
    logger.info(f"Registered user {user.email}")
    return _token_response(user, status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def login(request):
    """Exchange email and password for an access/refresh token pair"""
    serializer = PharmacyTokenObtainPairSerializer(data=request.data, context={'request': request})
    try:
        serializer.is_valid(raise_exception=True)
    except AuthenticationFailed:
        return Response({'error': 'Invalid credentials'}, status=status.HTTP_401_UNAUTHORIZED)

    user = serializer.user
    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])
    return Response({
        'token': serializer.validated_data['access'],
        'refresh': serializer.validated_data['refresh'],
        'user': UserSerializer(user).data,
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_token(request):
    """Rotate a refresh token"""
    serializer = PharmacyTokenRefreshSerializer(data={'refresh': request.data.get('refresh', '')})
    serializer.is_valid(raise_exception=True)
    return Response(serializer.validated_data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def auth_me(request):
    return Response(UserSerializer(request.user).data)


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def admin_reset_request(request):
    """
    Email a password reset link to an admin account.
    Always answers 200 so the endpoint does not reveal which accounts exist.
    """
    serializer = PasswordResetRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    email = serializer.validated_data['email']
    user = User.objects.filter(email__iexact=email, role=User.ROLE_ADMIN, is_active=True).first()
    if user:
        uid = urlsafe_base64_encode(force_bytes(user.pk))
        token = default_token_generator.make_token(user)
        link = f"{settings.FRONTEND_URL}/admin/reset-password?uid={uid}&token={token}"
        send_email_safely(
            'Admin password reset',
            f"A password reset was requested for your admin account.\n\n"
            f"Reset it within 30 minutes using this link:\n{link}\n\n"
            f"If you did not request this, ignore this email.",
            [user.email],
        )
        logger.info(f"Admin password reset requested for {user.email}")
    else:
        logger.info(f"Admin password reset requested for unknown email {email}")

    return Response({'message': 'If the account exists, a reset link has been sent.'})


@api_view(['POST'])
@permission_classes([AllowAny])
def admin_reset(request):
    serializer = PasswordResetSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    data = serializer.validated_data
    try:
        user = User.objects.get(pk=force_str(urlsafe_base64_decode(data['uid'])), role=User.ROLE_ADMIN)
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        user = None

    if user is None or not default_token_generator.check_token(user, data['token']):
        return Response({'error': 'Invalid or expired reset token'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        validate_password(data['password'], user=user)
    except DjangoValidationError as e:
        return Response({'error': 'Password does not meet requirements', 'details': e.messages},
                        status=status.HTTP_400_BAD_REQUEST)

    user.set_password(data['password'])
    user.save()
    revoke_user_sessions(user)
    logger.info(f"Admin password reset completed for {user.email}")
    return Response({'message': 'Password has been reset.'})


# User views
@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get or update the current user"""
    if request.method == 'GET':
        return Response(UserSerializer(request.user).data)

    serializer = UserUpdateSerializer(request.user, data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    serializer.save()
    return Response(UserSerializer(request.user).data)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def user_list(request):
    """List users for the admin dashboard"""
    users = User.objects.all().order_by('-created_at')
    search = request.query_params.get('search')
    if search:
        users = users.filter(Q(email__icontains=search) | Q(name__icontains=search))
    role = request.query_params.get('role')
    if role:
        users = users.filter(role=role.upper())

    limit = parse_limit(request)
    return Response({
        'count': users.count(),
        'results': UserSerializer(users[:limit], many=True).data,
    })


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def user_detail(request, pk):
    """Retrieve or update a user (self or admin); delete is admin only"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'DELETE':
        if not request.user.is_admin_role:
            return Response({'error': 'Admin access required.'}, status=status.HTTP_403_FORBIDDEN)
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        user.delete()
        logger.info(f"User {pk} deleted by {request.user.email}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    if not is_owner_or_admin(request.user, user.pk):
        return Response({'error': 'You can only access your own account'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)

    serializer_class = UserSerializer if request.user.is_admin_role else UserUpdateSerializer
    serializer = serializer_class(user, data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    serializer.save()
    return Response(UserSerializer(user).data)


# Site settings views
@cached_query(cache_ttl=SETTINGS_CACHE_TTL, key_prefix=SETTINGS_PREFIX)
def get_site_settings_payload():
    return SiteSettingsSerializer(SiteSettings.load()).data


@api_view(['GET', 'PUT'])
@permission_classes([AllowAny])
def site_settings(request):
    """Storefront settings: public read, admin upsert"""
    if request.method == 'GET':
        return Response(get_site_settings_payload())

    if not IsAdminRole().has_permission(request, None):
        if not request.user or not request.user.is_authenticated:
            return Response({'error': 'Authentication required'}, status=status.HTTP_401_UNAUTHORIZED)
        return Response({'error': 'Admin access required.'}, status=status.HTTP_403_FORBIDDEN)

    serializer = SiteSettingsSerializer(SiteSettings.load(), data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    serializer.save()
    logger.info(f"Site settings updated by {request.user.email}")
    return Response(serializer.data)


# Health views
def _check_database():
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
            cursor.fetchone()
        return 'ok'
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return 'error'


def _check_cache():
    try:
        cache.set('health_check', 'ok', 10)
        return 'ok' if cache.get('health_check') == 'ok' else 'error'
    except Exception as e:
        logger.warning(f"Cache health check failed: {str(e)}")
        return 'error'


@api_view(['GET'])
@permission_classes([AllowAny])
def health(request):
    checks = {
        'database': _check_database(),
        'cache': _check_cache(),
    }
    healthy = checks['database'] == 'ok'
    return Response({
        'status': 'healthy' if healthy else 'degraded',
        'timestamp': timezone.now().isoformat(),
        'uptime': round(time.monotonic() - STARTED_AT, 3),
        'environment': settings.ENVIRONMENT,
        'version': settings.APP_VERSION,
        'checks': checks,
    }, status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE)


@api_view(['GET'])
@permission_classes([AllowAny])
def service_status(request):
    return Response({
        'status': 'ok',
        'service': 'pharmacy-backend',
        'version': settings.APP_VERSION,
        'timestamp': timezone.now().isoformat(),
    })
