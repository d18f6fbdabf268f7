import logging

from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed

logger = logging.getLogger(__name__)


class IdentityError(AuthenticationFailed):
    """No authenticated user behind a chat operation. Never retried."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Authentication required'
    default_code = 'identity_required'


def api_exception_handler(exc, context):
    """
    Render API errors as ``{"error": ...}`` bodies.

    DRF's own handler builds the response; flat ``detail`` payloads are
    renamed to ``error`` so every failure has the same shape. Field-level
    validation payloads (dicts/lists) are passed through under ``error``.
    """
    # rest_framework.views resolves the authentication classes on import,
    # and those import this module.
    from rest_framework.views import exception_handler

    response = exception_handler(exc, context)
    if response is None:
        return None

    data = response.data
    if isinstance(data, dict) and set(data.keys()) == {'detail'}:
        response.data = {'error': data['detail']}
    else:
        response.data = {'error': data}

    if response.status_code >= 500:
        logger.error(
            "Request failed",
            extra={'view': context.get('view').__class__.__name__, 'error': str(exc)},
        )
    return response
