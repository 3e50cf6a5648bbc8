"""
API error formatting

Every error leaves the API as ``{"error": "..."}``; validation errors also
carry the field errors under ``details``.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import Throttled, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger('backend.core')


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        view_name = view.__class__.__name__ if view else 'unknown view'
        logger.exception(f"Unhandled error in {view_name}: {exc}")
        return Response({'error': 'Internal server error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, ValidationError):
        response.data = {'error': 'Validation failed', 'details': response.data}
    elif isinstance(response.data, dict) and 'detail' in response.data:
        data = {'error': str(response.data['detail'])}
        if 'code' in response.data:
            data['code'] = response.data['code']
        if isinstance(exc, Throttled) and exc.wait:
            data['retry_after'] = int(exc.wait)
        response.data = data
    return response


def validation_error_response(errors):
    """Response for serializer errors returned directly by a view"""
    return Response({'error': 'Validation failed', 'details': errors}, status=status.HTTP_400_BAD_REQUEST)
