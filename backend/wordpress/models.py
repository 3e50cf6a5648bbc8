from django.db import models
from django.utils.text import slugify

from backend.core.models import IntegrationSettings


class WordPressSettings(IntegrationSettings):
    SECRET_FIELDS = ('username', 'application_password', 'webhook_secret')

    site_url = models.URLField(blank=True)
    username = models.CharField(max_length=255, blank=True)
    application_password = models.CharField(max_length=255, blank=True)

    class Meta:
        db_table = 'wordpress_settings'
        verbose_name_plural = 'WordPress settings'

    def __str__(self):
        return self.site_url or 'WordPress (not configured)'


class BlogPost(models.Model):
    STATUS_DRAFT = 'draft'
    STATUS_PUBLISH = 'publish'
    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_PUBLISH, 'Published'),
    ]
    SOURCE_LOCAL = 'local'
    SOURCE_WORDPRESS = 'wordpress'
    SOURCE_CHOICES = [
        (SOURCE_LOCAL, 'Local'),
        (SOURCE_WORDPRESS, 'WordPress'),
    ]

    wordpress_id = models.PositiveIntegerField(unique=True, null=True, blank=True)
    title = models.CharField(max_length=500)
    slug = models.SlugField(max_length=255, unique=True)
    content = models.TextField(blank=True)
    excerpt = models.TextField(blank=True)
    author = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    featured_image_url = models.URLField(max_length=1000, blank=True)
    published_at = models.DateTimeField(null=True, blank=True)
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default=SOURCE_LOCAL)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'blog_posts'
        ordering = ['-published_at', '-created_at']
        indexes = [
            models.Index(fields=['status', '-published_at'], name='idx_blog_status_published'),
        ]

    def __str__(self):
        return self.title

    @classmethod
    def unique_slug(cls, text, exclude_pk=None):
        base = slugify(text)[:240] or 'post'
        slug, counter = base, 2
        others = cls.objects.exclude(pk=exclude_pk) if exclude_pk else cls.objects.all()
        while others.filter(slug=slug).exists():
            slug = f"{base}-{counter}"
            counter += 1
        return slug
