from django.urls import path
from .views import (
    register, login, refresh_token, auth_me, admin_reset_request, admin_reset,
    user_me, user_list, user_detail,
    site_settings,
    health, service_status,
)
from .admin_views import (
    admin_login, admin_logout, admin_profile, admin_change_password,
    validate_session, admin_init, admin_health, admin_health_public,
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/login/', login, name='login'),
    path('auth/refresh/', refresh_token, name='token-refresh'),
    path('auth/me/', auth_me, name='auth-me'),
    path('auth/admin-reset-request/', admin_reset_request, name='admin-reset-request'),
    path('auth/admin-reset/', admin_reset, name='admin-reset'),

    # Admin session endpoints
    path('admin/login/', admin_login, name='admin-login'),
    path('admin/logout/', admin_logout, name='admin-logout'),
    path('admin/profile/', admin_profile, name='admin-profile'),
    path('admin/change-password/', admin_change_password, name='admin-change-password'),
    path('admin/validate-session/', validate_session, name='admin-validate-session'),
    path('admin/init/', admin_init, name='admin-init'),
    path('admin/health/', admin_health, name='admin-health'),
    path('admin/health/public/', admin_health_public, name='admin-health-public'),

    # User endpoints
    path('users/', user_list, name='user-list'),
    path('users/me/', user_me, name='user-me'),
    path('users/<int:pk>/', user_detail, name='user-detail'),

    # Site settings
    path('settings/', site_settings, name='site-settings'),

    # Health
    path('health/', health, name='health'),
    path('status/', service_status, name='status'),
]
