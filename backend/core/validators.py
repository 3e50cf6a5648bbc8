"""
Upload validation shared by product images and prescription files
"""
import os
import uuid

from django.conf import settings
from rest_framework import serializers

IMAGE_EXTENSIONS = ['.jpg', '.jpeg', '.png', '.gif']
IMAGE_CONTENT_TYPES = ['image/jpeg', 'image/jpg', 'image/png', 'image/gif']
PRESCRIPTION_EXTENSIONS = IMAGE_EXTENSIONS + ['.pdf']
PRESCRIPTION_CONTENT_TYPES = IMAGE_CONTENT_TYPES + ['application/pdf']


def validate_upload(upload, allowed_extensions, allowed_content_types, max_bytes=None):
    """
    Check an uploaded file's extension, declared content type and size.
    Raises serializers.ValidationError describing the first problem.
    """
    max_bytes = max_bytes or settings.UPLOAD_MAX_BYTES
    extension = os.path.splitext(upload.name or '')[1].lower()
    if extension not in allowed_extensions:
        raise serializers.ValidationError(
            f"Unsupported file type '{extension or 'none'}'. Allowed: {', '.join(allowed_extensions)}"
        )

    content_type = (getattr(upload, 'content_type', '') or '').lower()
    if content_type and content_type not in allowed_content_types:
        raise serializers.ValidationError(f"Unsupported content type '{content_type}'")

    if upload.size > max_bytes:
        raise serializers.ValidationError(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB")
    return upload


def _unique_name(prefix, filename):
    extension = os.path.splitext(filename)[1].lower()
    return f"{prefix}/{uuid.uuid4().hex}{extension}"


def product_image_upload_path(instance, filename):
    return _unique_name('products', filename)


def prescription_upload_path(instance, filename):
    return _unique_name('prescriptions', filename)
