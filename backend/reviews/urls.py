from django.urls import path
from .views import review_create, product_reviews, review_admin_list, review_detail

urlpatterns = [
    path('reviews/', review_create, name='review-create'),
    path('reviews/admin/', review_admin_list, name='review-admin-list'),
    path('reviews/<int:pk>/', review_detail, name='review-detail'),
    path('products/<int:pk>/reviews/', product_reviews, name='product-reviews'),
]
