from django.urls import path
from .views import (
    wordpress_settings, test_connection, sync_posts_view, sync_status, create_wordpress_post,
    wordpress_webhook, blog_list_create, blog_by_slug, blog_detail,
)

urlpatterns = [
    path('wordpress/settings/', wordpress_settings, name='wordpress-settings'),
    path('wordpress/test-connection/', test_connection, name='wordpress-test-connection'),
    path('wordpress/sync-posts/', sync_posts_view, name='wordpress-sync-posts'),
    path('wordpress/sync-status/', sync_status, name='wordpress-sync-status'),
    path('wordpress/posts/', create_wordpress_post, name='wordpress-posts'),
    path('wordpress/webhook/', wordpress_webhook, name='wordpress-webhook'),

    path('blogs/', blog_list_create, name='blog-list-create'),
    path('blogs/<int:pk>/', blog_detail, name='blog-detail'),
    path('blogs/<slug:slug>/', blog_by_slug, name='blog-by-slug'),
]
