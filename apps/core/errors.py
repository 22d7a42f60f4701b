"""
Translate internal errors into messages that are safe to show to users.

Database errors carry a SQLSTATE code on PostgreSQL (psycopg2 ``pgcode``);
other backends are matched on the exception type and text. The small request
and response helpers shared by the JSON views live here as well.
"""

import json
import logging
from decimal import Decimal

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.db import DatabaseError, DataError, IntegrityError
from django.http import JsonResponse

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')

GENERIC_ERROR_MESSAGE = 'An unexpected error occurred. Please try again.'

DATABASE_ERROR_MESSAGES = {
    '23505': 'This record already exists.',
    '23503': 'Invalid reference: the related record does not exist.',
    '23514': 'Invalid data. Please check the fields and try again.',
    '42501': 'You do not have permission to perform this action.',
    '42P01': 'Resource not found.',
    '22P02': 'Invalid data format.',
}

API_ERROR_MESSAGES = {
    400: 'Invalid request. Please check the data sent.',
    401: 'Your session has expired. Please log in again.',
    403: 'You do not have permission to perform this action.',
    404: 'Resource not found.',
    409: 'This record conflicts with an existing one.',
    422: 'Invalid data. Please check the fields and try again.',
    429: 'Too many requests. Please wait a moment and try again.',
}


def _sqlstate(exc):
    code = getattr(exc, 'pgcode', None)
    if code:
        return code
    cause = exc.__cause__
    return getattr(cause, 'pgcode', None)


def map_database_error(exc):
    code = _sqlstate(exc)
    if code in DATABASE_ERROR_MESSAGES:
        return DATABASE_ERROR_MESSAGES[code]

    text = str(exc).lower()
    if isinstance(exc, IntegrityError):
        if 'unique' in text or 'duplicate' in text:
            return DATABASE_ERROR_MESSAGES['23505']
        if 'foreign key' in text:
            return DATABASE_ERROR_MESSAGES['23503']
        return DATABASE_ERROR_MESSAGES['23514']
    if isinstance(exc, DataError):
        return DATABASE_ERROR_MESSAGES['22P02']

    return 'Database error. Please try again.'


def map_api_error(status_code):
    if status_code in API_ERROR_MESSAGES:
        return API_ERROR_MESSAGES[status_code]
    if status_code >= 500:
        return 'The server is unavailable right now. Please try again later.'
    return GENERIC_ERROR_MESSAGE


def map_generic_error(exc):
    if isinstance(exc, ValidationError):
        return ' '.join(exc.messages)
    if isinstance(exc, PermissionDenied):
        return API_ERROR_MESSAGES[403]
    if isinstance(exc, ObjectDoesNotExist):
        return API_ERROR_MESSAGES[404]
    if isinstance(exc, DatabaseError):
        return map_database_error(exc)
    return GENERIC_ERROR_MESSAGE


def error_response(message, status=400, **extra):
    payload = {'status': 'error', 'message': message}
    payload.update(extra)
    return JsonResponse(payload, status=status)


def exception_response(exc, context=''):
    """Log an unexpected exception and answer with a mapped message"""
    logger.error(f"Unexpected error{' in ' + context if context else ''}: {exc}", exc_info=True)

    if isinstance(exc, IntegrityError):
        return error_response(map_database_error(exc), status=409)
    if isinstance(exc, (ValidationError, DataError)):
        return error_response(map_generic_error(exc), status=400)
    return error_response('Internal server error', status=500)


def parse_json_body(request):
    """Decoded JSON object from the request body, or None when it is not one"""
    try:
        payload = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def money(amount):
    """Decimal amount as a two-place string, whatever the database returned"""
    return str(Decimal(amount or 0).quantize(CENTS))
