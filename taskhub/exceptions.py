import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.settings import api_settings
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return None
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else None
    return str(detail)


def api_exception_handler(exc, context):
    """
    Shapes every error response as ``{"error": <message>, ...}``.

    DRF exceptions keep their status code; serializer field errors are kept
    under ``fields``. Anything DRF does not know about is logged and turned
    into a generic 500.
    """
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(
            f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}"
        )
        return Response(
            {'error': 'Internal server error'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    data = response.data
    if isinstance(data, dict) and 'error' in data:
        return response

    if isinstance(data, dict) and set(data) == {'detail'}:
        response.data = {'error': str(data['detail'])}
    elif isinstance(data, dict) and data:
        field, errors = next(iter(data.items()))
        message = _first_message(errors)
        if field != api_settings.NON_FIELD_ERRORS_KEY:
            message = f"{field}: {message}"
        response.data = {'error': message, 'fields': data}
    else:
        response.data = {'error': _first_message(data)}
    return response
