from django.contrib import admin
from .models import NewsletterSubscription


@admin.register(NewsletterSubscription)
class NewsletterSubscriptionAdmin(admin.ModelAdmin):
    list_display = ['email', 'source', 'marketing_consent', 'is_active', 'created_at']
    list_filter = ['is_active', 'source']
    search_fields = ['email']
