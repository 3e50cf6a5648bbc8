from rest_framework import serializers

from backend.core.integrations import IntegrationSettingsSerializer
from .models import BlogPost, WordPressSettings


class WordPressSettingsSerializer(IntegrationSettingsSerializer):
    class Meta:
        model = WordPressSettings
        fields = ['enabled', 'site_url', 'username', 'application_password', 'webhook_secret',
                  'sync_status', 'last_sync', 'last_error', 'updated_at']
        read_only_fields = ['sync_status', 'last_sync', 'last_error', 'updated_at']


class BlogPostSerializer(serializers.ModelSerializer):
    slug = serializers.SlugField(max_length=255, required=False)

    class Meta:
        model = BlogPost
        fields = ['id', 'wordpress_id', 'title', 'slug', 'content', 'excerpt', 'author', 'status',
                  'featured_image_url', 'published_at', 'source', 'created_at', 'updated_at']
        read_only_fields = ['wordpress_id', 'source', 'created_at', 'updated_at']

    def validate_slug(self, value):
        others = BlogPost.objects.filter(slug=value)
        if self.instance is not None:
            others = others.exclude(pk=self.instance.pk)
        if others.exists():
            raise serializers.ValidationError('A post with this slug already exists.')
        return value


class WordPressPostSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=500)
    content = serializers.CharField()
    excerpt = serializers.CharField(required=False, allow_blank=True, default='')
    status = serializers.ChoiceField(choices=['draft', 'publish'], default='draft')
