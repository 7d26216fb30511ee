"""SGP-RP API middleware components.

This module provides:
- Request ID tracking for request correlation
- Consistent error response formatting
- Bearer-token session dependencies
"""

from sgprp.api.middleware.auth import (
    AppSettings,
    CivilSession,
    CurrentSession,
    DbSession,
    PolicialSession,
    get_app_settings,
    get_code_sender,
    get_db_session,
    get_session_context,
    require_civil,
    require_policial,
)
from sgprp.api.middleware.errors import ErrorHandlerMiddleware, build_error_response
from sgprp.api.middleware.request_id import RequestIDMiddleware, get_request_id

__all__ = [
    "AppSettings",
    "CivilSession",
    "CurrentSession",
    "DbSession",
    "ErrorHandlerMiddleware",
    "PolicialSession",
    "RequestIDMiddleware",
    "build_error_response",
    "get_app_settings",
    "get_code_sender",
    "get_db_session",
    "get_request_id",
    "get_session_context",
    "require_civil",
    "require_policial",
]
