from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from django.core.exceptions import ObjectDoesNotExist
from .authentication import ADMIN_SESSION_CLAIM
from .models import User, SiteSettings, AdminSession


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'email', 'name', 'phone', 'role', 'email_verified', 'is_active',
                  'last_login', 'created_at', 'updated_at']
        read_only_fields = ['email_verified', 'last_login', 'created_at', 'updated_at']


class UserUpdateSerializer(serializers.ModelSerializer):
    """Fields a user may change on their own profile"""
    class Meta:
        model = User
        fields = ['name', 'phone', 'email']


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])

    class Meta:
        model = User
        fields = ['email', 'password', 'name', 'phone']
        extra_kwargs = {
            'name': {'required': True, 'allow_blank': False},
            # Duplicates are reported by the view with a single error message
            'email': {'validators': []},
        }

    def create(self, validated_data):
        password = validated_data.pop('password')
        email = User.objects.normalize_email(validated_data.pop('email'))
        return User.objects.create_user(email=email, password=password, is_active=True,
                                        role=User.ROLE_CUSTOMER, **validated_data)


class PharmacyTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Login by email; tokens carry the role so clients can route without a lookup"""

    def validate(self, attrs):
        data = super().validate(attrs)
        # Ensure user is active
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['role'] = user.role
        token['name'] = user.name
        return token


class PharmacyTokenRefreshSerializer(TokenRefreshSerializer):
    """
    Token refresh that handles deleted users gracefully and refuses tokens
    of revoked or expired admin sessions.
    """

    def validate(self, attrs):
        try:
            session_key = RefreshToken(attrs['refresh']).get(ADMIN_SESSION_CLAIM)
        except TokenError:
            raise InvalidToken('Token is invalid or expired.')
        if session_key:
            session = AdminSession.objects.filter(jti=session_key).first()
            if session is None or not session.is_active:
                raise InvalidToken('Session has expired or been revoked.')

        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            # User referenced in token doesn't exist anymore
            raise InvalidToken('Token is invalid. User no longer exists.')


class PasswordResetRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()


class PasswordResetSerializer(serializers.Serializer):
    uid = serializers.CharField()
    token = serializers.CharField()
    password = serializers.CharField(write_only=True)


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)


class AdminSessionSerializer(serializers.ModelSerializer):
    class Meta:
        model = AdminSession
        fields = ['id', 'ip_address', 'user_agent', 'expires_at', 'last_activity', 'created_at']


class SiteSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = SiteSettings
        fields = ['site_name', 'contact_email', 'contact_phone', 'address', 'business_hours',
                  'facebook', 'instagram', 'twitter', 'updated_at']
        read_only_fields = ['updated_at']
