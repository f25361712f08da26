"""Maps domain errors to HTTP responses.

Installed as DRF's EXCEPTION_HANDLER. Only the error code and its user-safe
message reach the client.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from ticketing.domain.errors import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY: tuple[tuple[type[DomainError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
)


def status_for(exc: DomainError) -> int:
    for category, http_status in STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            return http_status
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def domain_exception_handler(exc, context):
    if not isinstance(exc, DomainError):
        return exception_handler(exc, context)

    http_status = status_for(exc)
    if http_status >= 500:
        logger.error("Unhandled domain error in %s: %s", context.get("view"), exc)
    return Response({"code": exc.code.value, "message": exc.message}, status=http_status)
