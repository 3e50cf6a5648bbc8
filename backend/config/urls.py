"""
URL configuration for the pharmacy backend.

Every app mounts its routes under ``api/``.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = f"{settings.PHARMACY_NAME} Admin Panel"
admin.site.site_title = f"{settings.PHARMACY_NAME} Admin Portal"
admin.site.index_title = "Pharmacy operations"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('backend.core.urls')),
    path('api/', include('backend.catalog.urls')),
    path('api/', include('backend.cart.urls')),
    path('api/', include('backend.orders.urls')),
    path('api/', include('backend.prescriptions.urls')),
    path('api/', include('backend.appointments.urls')),
    path('api/', include('backend.contact.urls')),
    path('api/', include('backend.newsletter.urls')),
    path('api/', include('backend.reviews.urls')),
    path('api/', include('backend.notifications.urls')),
    path('api/', include('backend.payments.urls')),
    path('api/', include('backend.wordpress.urls')),
    path('api/', include('backend.woocommerce.urls')),
    path('api/', include('backend.analytics.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
