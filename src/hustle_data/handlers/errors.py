"""Translate domain errors into HTTP errors."""

from fastapi import HTTPException, status

from hustle_data.errors import (
    BackendUnavailableError,
    HustleDataError,
    NotFoundError,
    UnauthenticatedError,
    UnauthorizedError,
    ValidationFailedError,
)

# Most specific first: UnauthenticatedError is an UnauthorizedError
_STATUS_FOR_ERROR: tuple[tuple[type[HustleDataError], int], ...] = (
    (UnauthenticatedError, status.HTTP_401_UNAUTHORIZED),
    (UnauthorizedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationFailedError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (BackendUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def http_error(error: HustleDataError, action: str) -> HTTPException:
    """Build the HTTPException for a domain error.

    Args:
        error: The error raised by the service layer
        action: What was attempted, used as the detail prefix

    Returns:
        HTTPException with the mapped status code (500 if unmapped)
    """
    for error_type, status_code in _STATUS_FOR_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=f"Failed to {action}: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {error}",
    )


def not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")
