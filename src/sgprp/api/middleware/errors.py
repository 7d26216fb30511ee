"""Error handling middleware for consistent JSON error responses.

All errors leave the API with the same JSON structure:
- error: Machine-readable error code
- message: Human-readable description
- detail: Optional additional information
- request_id: Correlation ID for debugging

Service-layer exceptions (``sgprp.services.errors``) are mapped to HTTP
statuses here, so services never deal with HTTP.
"""

import logging
from collections.abc import Callable
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from sgprp.api.middleware.request_id import get_request_id
from sgprp.services.errors import (
    AuthenticationError,
    ConflictError,
    InvalidInputError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ServiceError,
)

logger = logging.getLogger(__name__)

# Checked in order, so subclasses must come before their bases
SERVICE_ERROR_STATUS: tuple[tuple[type[ServiceError], int], ...] = (
    (AuthenticationError, 401),
    (PermissionDeniedError, 403),
    (InvalidInputError, 400),
    (ResourceNotFoundError, 404),
    (ConflictError, 409),
)


def status_for(exc: ServiceError) -> int:
    """HTTP status for a service exception (400 when unmapped)."""
    for exc_type, status_code in SERVICE_ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code
    return 400


def build_error_response(
    error: str,
    message: str,
    status_code: int,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build a standardized error response.

    Args:
        error: Machine-readable error code.
        message: Human-readable description.
        status_code: HTTP status code.
        detail: Optional additional details.

    Returns:
        JSONResponse with consistent error structure.
    """
    body: dict[str, Any] = {
        "error": error,
        "message": message,
    }

    request_id = get_request_id()
    if request_id:
        body["request_id"] = request_id

    if detail:
        body["detail"] = detail

    return JSONResponse(status_code=status_code, content=body)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware that catches exceptions and returns consistent JSON errors.

    Handles:
    - ServiceError and subclasses: mapped through SERVICE_ERROR_STATUS
    - HTTPException: FastAPI's built-in HTTP errors
    - ValidationError: Pydantic validation failures outside request parsing
    - Generic exceptions: Unexpected errors (logged, returns 500)
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        try:
            return await call_next(request)
        except ServiceError as exc:
            status_code = status_for(exc)
            if 401 <= status_code <= 403:
                logger.warning(
                    "%s %s denied: %s", request.method, request.url.path, exc.message
                )
            return build_error_response(
                error=exc.error,
                message=exc.message,
                status_code=status_code,
                detail=exc.detail,
            )
        except HTTPException as exc:
            return build_error_response(
                error="http_error",
                message=str(exc.detail),
                status_code=exc.status_code,
            )
        except ValidationError as exc:
            return build_error_response(
                error="validation_error",
                message="Request validation failed",
                status_code=422,
                detail={"errors": exc.errors(include_url=False, include_context=False)},
            )
        except Exception:
            logger.exception(
                "Unexpected error processing request: %s %s",
                request.method,
                request.url.path,
            )
            return build_error_response(
                error="internal_error",
                message="An internal error occurred",
                status_code=500,
            )
