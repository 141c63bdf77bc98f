"""Project-wide API error handling.

Domain errors are :class:`~rest_framework.exceptions.APIException` subclasses
that live in the app raising them; this module holds the shared ones and the
DRF exception handler installed in ``REST_FRAMEWORK['EXCEPTION_HANDLER']``.
"""

import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class PersistenceError(APIException):
    """A database read or write failed part-way through a request."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The data store is temporarily unavailable. Please try again.'
    default_code = 'persistence_error'


def api_exception_handler(exc, context):
    """Format every API error as JSON and keep failures scoped to the request.

    - DRF/API exceptions: DRF's default handling.
    - Database errors: reported as :class:`PersistenceError`.
    - Anything else: logged with traceback and answered with a generic 500.
    """

    if isinstance(exc, DatabaseError):
        view = context.get('view')
        logger.error('Database error in %s: %s', view.__class__.__name__ if view else 'unknown view', exc, exc_info=exc)
        exc = PersistenceError()

    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    logger.exception(
        'Unhandled error in %s', view.__class__.__name__ if view else 'unknown view', exc_info=exc
    )
    return Response(
        {'detail': 'An unexpected error occurred.'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
