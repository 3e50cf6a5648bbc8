from django.urls import path
from .views import contact_list_create, contact_detail

urlpatterns = [
    path('contact/', contact_list_create, name='contact-list-create'),
    path('contact/<int:pk>/', contact_detail, name='contact-detail'),
]
