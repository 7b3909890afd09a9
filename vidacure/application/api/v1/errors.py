"""Centralized error transformation for API routes.

Maps Vidacure errors (domain and infrastructure) to HTTP responses.
"""

from typing import Any

from fastapi import HTTPException
from fastapi.responses import JSONResponse

from vidacure.domain.shared.error import (
    AuthenticationError,
    AuthenticationFailedError,
    AuthorizationError,
    BrokerAuthError,
    ConfigurationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ProtocolError,
    StorageError,
    VidaError,
)

# Most specific first; the first isinstance match wins
ERROR_STATUS_MAP: list[tuple[type[VidaError], int]] = [
    (ProtocolError, 400),
    (BrokerAuthError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (ConfigurationError, 503),
    (ExternalServiceError, 502),
    (StorageError, 500),
    (AuthenticationFailedError, 500),
]


def status_for(error: VidaError) -> int:
    for error_type, status_code in ERROR_STATUS_MAP:
        if isinstance(error, error_type):
            return status_code
    # Fallback for unknown VidaError subclasses
    return 500


def map_vida_error(error: VidaError) -> HTTPException:
    """Map a Vidacure error to an HTTPException.

    Args:
        error: The Vidacure error to map.

    Returns:
        HTTPException with appropriate status code, JSON body as detail, and
        a ``WWW-Authenticate`` challenge for authentication failures.
    """
    detail: dict[str, Any] = {
        "error": error.message,
        "code": error.code,
        **error.detail,
    }
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(error, AuthenticationError) else None
    return HTTPException(status_code=status_for(error), detail=detail, headers=headers)


def vida_error_response(error: VidaError) -> JSONResponse:
    http_exc = map_vida_error(error)
    return JSONResponse(
        status_code=http_exc.status_code,
        content=http_exc.detail,
        headers=http_exc.headers,
    )
