from django.contrib import admin
from .models import BlogPost, WordPressSettings


@admin.register(WordPressSettings)
class WordPressSettingsAdmin(admin.ModelAdmin):
    list_display = ['site_url', 'enabled', 'sync_status', 'last_sync']
    exclude = ['application_password', 'webhook_secret']


@admin.register(BlogPost)
class BlogPostAdmin(admin.ModelAdmin):
    list_display = ['title', 'slug', 'status', 'source', 'author', 'published_at']
    list_filter = ['status', 'source']
    search_fields = ['title', 'slug', 'author']
    prepopulated_fields = {'slug': ('title',)}
