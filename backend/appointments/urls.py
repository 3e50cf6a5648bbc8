from django.urls import path
from .views import request_appointment, appointment_list_create, my_appointments, appointment_detail

urlpatterns = [
    path('appointments/', appointment_list_create, name='appointment-list-create'),
    path('appointments/request/', request_appointment, name='appointment-request'),
    path('appointments/my/', my_appointments, name='appointment-my'),
    path('appointments/<int:pk>/', appointment_detail, name='appointment-detail'),
]
