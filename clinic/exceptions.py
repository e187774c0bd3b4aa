"""
Unified error envelope for the API.

Every error leaves the API as
``{"success": false, "error": {"code", "message", "details"?}, "timestamp"}``.
"""
import logging

from django.http import Http404
from django.utils import timezone
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from .mock_client import InvalidCredentials, UnknownEntity

logger = logging.getLogger(__name__)

ERROR_CODES = (
    (exceptions.ValidationError, 'validation_error'),
    (exceptions.ParseError, 'bad_request'),
    (exceptions.NotAuthenticated, 'unauthorized'),
    (exceptions.AuthenticationFailed, 'unauthorized'),
    (exceptions.PermissionDenied, 'forbidden'),
    (exceptions.NotFound, 'not_found'),
    (Http404, 'not_found'),
    (exceptions.MethodNotAllowed, 'method_not_allowed'),
    (exceptions.Throttled, 'rate_limited'),
)

PASSTHROUGH_HEADERS = ('WWW-Authenticate', 'Retry-After', 'Allow')


def error_body(code, message, details=None):
    body = {'success': False, 'error': {'code': code, 'message': message}}
    if details is not None:
        body['error']['details'] = details
    body['timestamp'] = timezone.now().isoformat()
    return body


def api_exception_handler(exc, context):
    if isinstance(exc, UnknownEntity):
        exc = exceptions.NotFound(str(exc))
    elif isinstance(exc, InvalidCredentials):
        exc = exceptions.AuthenticationFailed(str(exc))

    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception('Unhandled error in %s', type(view).__name__ if view else 'view', exc_info=exc)
        return Response(error_body('server_error', 'Internal server error'),
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    code = next((c for cls, c in ERROR_CODES if isinstance(exc, cls)), 'api_error')
    details = None
    if isinstance(exc, exceptions.ValidationError):
        message = 'Validation failed'
        details = resp.data
    elif isinstance(resp.data, dict):
        message = resp.data.get('detail') or resp.data
    else:
        message = str(resp.data)

    out = Response(error_body(code, str(message), details), status=resp.status_code)
    for header in PASSTHROUGH_HEADERS:
        if header in resp:
            out[header] = resp[header]
    return out
