import logging

from django.http import Http404
from rest_framework import exceptions
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """
    Render every API error as {"error": message, "kind": code}.

    Field-level validation errors from serializers keep their field map
    under "fields" so clients can show per-field corrections.
    """
    if isinstance(exc, Http404):
        exc = exceptions.NotFound(str(exc) or None)
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError) and isinstance(exc.detail, (dict, list)):
        response.data = {
            'error': 'Invalid request data',
            'kind': 'validation_error',
            'fields': response.data,
        }
    elif isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        response.data = {'error': str(exc.detail), 'kind': 'unauthenticated'}
    elif isinstance(exc, exceptions.APIException):
        codes = exc.get_codes()
        response.data = {
            'error': str(exc.detail),
            'kind': codes if isinstance(codes, str) else exc.default_code,
        }

    if response.status_code >= 500:
        logger.error('API error in %s: %s', context.get('view'), exc)
    return response
