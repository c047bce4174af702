"""
DRF exception handler for service layer errors.

Services raise plain domain exceptions; this handler turns them into
responses with a stable ``code`` next to the human readable ``error``.
Everything else falls through to DRF's default handler.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.inventory.exceptions import (
    InventoryServiceError,
    ValidationError,
    NotFoundError,
    ConflictError,
    InvalidStateError,
)

logger = logging.getLogger(__name__)


SERVICE_ERROR_STATUS = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST),
)


def api_exception_handler(exc, context):
    """Render service errors as ``{"error", "code"[, "field"]}``."""
    if isinstance(exc, InventoryServiceError):
        status_code = status.HTTP_400_BAD_REQUEST
        for error_class, mapped_status in SERVICE_ERROR_STATUS:
            if isinstance(exc, error_class):
                status_code = mapped_status
                break

        data = {'error': str(exc), 'code': exc.code}
        if exc.field:
            data['field'] = exc.field

        view = context.get('view')
        logger.info(
            "%s rejected with %s: %s",
            view.__class__.__name__ if view else 'request',
            exc.code,
            exc,
        )
        return Response(data, status=status_code)

    return exception_handler(exc, context)
