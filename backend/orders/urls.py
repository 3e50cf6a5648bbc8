from django.urls import path
from .views import order_list_create, public_order_create, my_orders, order_detail, order_items

urlpatterns = [
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/public/', public_order_create, name='order-public-create'),
    path('orders/my/', my_orders, name='order-my'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/items/', order_items, name='order-items'),
]
