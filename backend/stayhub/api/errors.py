"""Translate service-layer exceptions into HTTP errors."""

import logging

from fastapi import HTTPException, status

from stayhub.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    StayHubError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[StayHubError], int]] = [
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (StorageError, status.HTTP_502_BAD_GATEWAY),
]


def http_error(exc: StayHubError) -> HTTPException:
    """Map a domain error to an ``HTTPException`` carrying its message."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            if status_code >= 500:
                logger.error("%s: %s", type(exc).__name__, exc)
            return HTTPException(status_code=status_code, detail=str(exc))
    logger.exception("Unmapped domain error")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error")
