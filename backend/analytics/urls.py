from django.urls import path
from .views import dashboard, sales_report

urlpatterns = [
    path('analytics/dashboard/', dashboard, name='analytics-dashboard'),
    path('analytics/sales/', sales_report, name='analytics-sales'),
]
