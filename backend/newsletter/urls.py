from django.urls import path
from .views import subscribe, unsubscribe, subscriber_list, newsletter_stats

urlpatterns = [
    path('newsletter/subscribe/', subscribe, name='newsletter-subscribe'),
    path('newsletter/unsubscribe/', unsubscribe, name='newsletter-unsubscribe'),
    path('newsletter/subscribers/', subscriber_list, name='newsletter-subscriber-list'),
    path('newsletter/stats/', newsletter_stats, name='newsletter-stats'),
]
