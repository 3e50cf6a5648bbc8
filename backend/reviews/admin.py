from django.contrib import admin
from .models import Review


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ['id', 'product', 'rating', 'customer_name', 'verified', 'status', 'created_at']
    list_filter = ['status', 'rating', 'verified']
    search_fields = ['title', 'comment', 'customer_name', 'customer_email', 'product__name']
