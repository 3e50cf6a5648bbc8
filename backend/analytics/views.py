import logging
from datetime import datetime, timedelta
from decimal import Decimal

from django.db.models import Count, DecimalField, F, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from backend.appointments.models import Appointment
from backend.catalog.models import Product
from backend.contact.models import ContactForm
from backend.core.cache_utils import cache_dashboard_kpis, get_cached_dashboard_kpis
from backend.core.models import User
from backend.core.permissions import IsAdminRole
from backend.notifications.models import Notification
from backend.orders.models import Order, OrderItem
from backend.orders.serializers import OrderSerializer
from backend.prescriptions.models import Prescription, RefillRequest, TransferRequest

logger = logging.getLogger('backend.analytics')

DEFAULT_PERIOD_DAYS = 30
MAX_PERIOD_DAYS = 365
# Orders in these states never produced revenue
NON_REVENUE_STATUSES = [Order.STATUS_CANCELLED, Order.STATUS_FAILED]


def _revenue_orders(queryset=None):
    return (queryset if queryset is not None else Order.objects.all()).exclude(status__in=NON_REVENUE_STATUSES)


def _parse_period(request):
    try:
        days = int(request.query_params.get('period', DEFAULT_PERIOD_DAYS))
    except (TypeError, ValueError):
        days = DEFAULT_PERIOD_DAYS
    return max(1, min(days, MAX_PERIOD_DAYS))


def _parse_date(value, default):
    if not value:
        return default
    return datetime.strptime(value, '%Y-%m-%d').date()


def _cached_response(data, hit):
    response = Response(data)
    response['X-Cache'] = 'HIT' if hit else 'MISS'
    response['Cache-Control'] = 'private, max-age=60'
    return response


@api_view(['GET'])
@permission_classes([IsAdminRole])
def dashboard(request):
    """Admin dashboard KPIs for the last ``period`` days"""
    days = _parse_period(request)
    cached_data, cache_key = get_cached_dashboard_kpis('dashboard', days)
    if cached_data is not None:
        logger.debug(f"Dashboard KPIs cache HIT (period={days})")
        return _cached_response(cached_data, hit=True)

    since = timezone.now() - timedelta(days=days)
    period_orders = Order.objects.filter(created_at__gte=since)
    revenue = _revenue_orders(period_orders).aggregate(
        total=Sum('total', output_field=DecimalField())
    )['total'] or Decimal('0.00')

    sales_by_day = _revenue_orders(period_orders).annotate(
        date=TruncDate('created_at')
    ).values('date').annotate(
        revenue=Sum('total', output_field=DecimalField()),
        orders=Count('id'),
    ).order_by('date')

    top_products = OrderItem.objects.filter(
        order__in=_revenue_orders(period_orders), product__isnull=False,
    ).values('product_id', 'product_name').annotate(
        quantity=Sum('quantity'),
        revenue=Sum(F('price') * F('quantity'), output_field=DecimalField()),
    ).order_by('-quantity')[:5]

    active_products = Product.objects.filter(is_active=True)
    data = {
        'period_days': days,
        'totals': {
            'orders': period_orders.count(),
            'revenue': str(revenue),
            'customers': User.objects.filter(role=User.ROLE_CUSTOMER).count(),
            'products': active_products.count(),
            'low_stock_products': active_products.filter(stock__lte=F('low_stock_threshold')).count(),
            'pending_prescriptions': Prescription.objects.filter(status='pending').count(),
            'pending_refills': RefillRequest.objects.filter(status='pending').count(),
            'pending_transfers': TransferRequest.objects.filter(status='pending').count(),
            'pending_appointments': Appointment.objects.filter(status=Appointment.STATUS_PENDING).count(),
            'new_contacts': ContactForm.objects.filter(status='new').count(),
            'unread_notifications': Notification.objects.filter(admin_only=True, read=False).count(),
        },
        'recent_orders': OrderSerializer(
            Order.objects.prefetch_related('items').select_related('user')[:5], many=True,
        ).data,
        'top_products': [
            {**row, 'revenue': str(row['revenue'] or Decimal('0.00'))} for row in top_products
        ],
        'sales_by_day': [
            {'date': row['date'].isoformat(), 'revenue': str(row['revenue']), 'orders': row['orders']}
            for row in sales_by_day
        ],
    }
    cache_dashboard_kpis(cache_key, data)
    logger.info(f"Dashboard KPIs calculated (period={days}, user: {request.user.email})")
    return _cached_response(data, hit=False)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def sales_report(request):
    """Revenue and order counts by status between date_from and date_to (inclusive)"""
    today = timezone.now().date()
    try:
        date_from = _parse_date(request.query_params.get('date_from'), today - timedelta(days=DEFAULT_PERIOD_DAYS))
        date_to = _parse_date(request.query_params.get('date_to'), today)
    except ValueError:
        return Response({'error': 'Dates must be in YYYY-MM-DD format'}, status=status.HTTP_400_BAD_REQUEST)
    if date_from > date_to:
        return Response({'error': 'date_from must not be after date_to'}, status=status.HTTP_400_BAD_REQUEST)

    cached_data, cache_key = get_cached_dashboard_kpis('sales', date_from.isoformat(), date_to.isoformat())
    if cached_data is not None:
        return _cached_response(cached_data, hit=True)

    orders = Order.objects.filter(created_at__date__gte=date_from, created_at__date__lte=date_to)
    by_status = orders.values('status').annotate(
        count=Count('id'),
        total=Sum('total', output_field=DecimalField()),
    ).order_by('status')
    revenue = _revenue_orders(orders).aggregate(
        total=Sum('total', output_field=DecimalField())
    )['total'] or Decimal('0.00')
    revenue_count = _revenue_orders(orders).count()

    data = {
        'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
        'summary': {
            'total_orders': orders.count(),
            'revenue': str(revenue),
            'avg_order_value': str((revenue / revenue_count).quantize(Decimal('0.01')) if revenue_count
                                   else Decimal('0.00')),
        },
        'by_status': [
            {'status': row['status'], 'count': row['count'], 'total': str(row['total'] or Decimal('0.00'))}
            for row in by_status
        ],
    }
    cache_dashboard_kpis(cache_key, data)
    return _cached_response(data, hit=False)
