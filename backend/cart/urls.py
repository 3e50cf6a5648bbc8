from django.urls import path
from .views import cart_detail, add_item, item_detail, cart_summary

urlpatterns = [
    path('cart/', cart_detail, name='cart-detail'),
    path('cart/items/', add_item, name='cart-add-item'),
    path('cart/items/<int:item_id>/', item_detail, name='cart-item-detail'),
    path('cart/summary/', cart_summary, name='cart-summary'),
]
