"""
DRF exception handler for the ride service error taxonomy.

Service errors are rendered as ``{"error": <code>, "message": <text>}`` with
the matching HTTP status; everything else falls through to DRF's default
handler.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from services.ride_management.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    RideServiceError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    InvalidStateError: status.HTTP_400_BAD_REQUEST,
    ValidationError: status.HTTP_400_BAD_REQUEST,
}


def ride_exception_handler(exc, context):
    if isinstance(exc, RideServiceError):
        status_code = next(
            (code for cls, code in STATUS_CODES.items() if isinstance(exc, cls)),
            status.HTTP_400_BAD_REQUEST,
        )
        view = context.get('view')
        logger.info(
            "%s in %s: %s",
            type(exc).__name__, view.__class__.__name__ if view else 'unknown view', exc,
        )
        return Response({'error': exc.code, 'message': str(exc)}, status=status_code)

    return exception_handler(exc, context)
