"""Map safety engine errors onto HTTP responses."""

from fastapi import HTTPException, status

from safewatch.core.errors import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    SafeWatchError,
    TransientIOError,
)

_STATUS_BY_ERROR: list[tuple[type[SafeWatchError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (TransientIOError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def http_error(exc: SafeWatchError) -> HTTPException:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
