from django.urls import path
from .views import refill_upload, transfer_upload, prescription_list_create, my_prescriptions, prescription_detail
from .request_views import (
    refill_request_list_create, refill_request_detail, refill_request_stats, admin_refill_create,
    transfer_request_list_create, transfer_request_detail, transfer_request_stats,
)

urlpatterns = [
    # Prescriptions
    path('prescriptions/', prescription_list_create, name='prescription-list-create'),
    path('prescriptions/refill/', refill_upload, name='prescription-refill'),
    path('prescriptions/transfer/', transfer_upload, name='prescription-transfer'),
    path('prescriptions/my/', my_prescriptions, name='prescription-my'),
    path('prescriptions/<int:pk>/', prescription_detail, name='prescription-detail'),

    # Refill requests
    path('refill-requests/', refill_request_list_create, name='refill-request-list-create'),
    path('refill-requests/stats/overview/', refill_request_stats, name='refill-request-stats'),
    path('refill-requests/admin/create/', admin_refill_create, name='refill-request-admin-create'),
    path('refill-requests/<int:pk>/', refill_request_detail, name='refill-request-detail'),

    # Transfer requests
    path('transfer-requests/', transfer_request_list_create, name='transfer-request-list-create'),
    path('transfer-requests/stats/overview/', transfer_request_stats, name='transfer-request-stats'),
    path('transfer-requests/<int:pk>/', transfer_request_detail, name='transfer-request-detail'),
]
