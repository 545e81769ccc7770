"""
Error handling middleware with security-compliant error sanitization.
Prevents sensitive data leakage while providing useful error information.
"""

import logging
import traceback
from typing import Any, Callable, Optional
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError, OperationalError
from sqlalchemy.orm.exc import StaleDataError
import re

from core.exceptions import HiringError

logger = logging.getLogger(__name__)

# Patterns for sensitive data that should never be logged
SENSITIVE_PATTERNS = [
    re.compile(r'password["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'token["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'api[_-]?key["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'secret["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'authorization["\s:]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'\b\d{3}-\d{2}-\d{4}\b'),  # SSN
    re.compile(r'\b\d{16}\b'),  # Credit card
]


def sanitize_error_message(message: Any) -> str:
    """
    Remove sensitive information from error messages.

    Args:
        message: Original error message

    Returns:
        Sanitized error message
    """
    sanitized = str(message)
    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub('[REDACTED]', sanitized)
    return sanitized


def get_safe_error_details(exc: Exception, include_details: bool = False) -> dict[str, Any]:
    """
    Extract safe error details without exposing sensitive information.

    Args:
        exc: The exception to extract details from
        include_details: Whether to include detailed error information (only in dev)

    Returns:
        Dictionary with safe error details
    """
    details = {
        "type": type(exc).__name__,
        "message": sanitize_error_message(str(exc)),
    }

    if include_details:
        # Only include stack trace in development
        details["traceback"] = traceback.format_exc()

    return details


def format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """
    Format validation errors into a user-friendly structure.

    Args:
        exc: The validation exception

    Returns:
        List of formatted validation errors
    """
    errors = []
    for error in exc.errors():
        error_dict = {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": sanitize_error_message(error["msg"]),
            "type": error["type"],
        }

        # Include input value only if it's a simple type and not sensitive
        if "input" in error:
            input_value = error["input"]
            if isinstance(input_value, (str, int, float, bool)):
                input_str = str(input_value)
                if not any(pattern.search(input_str) for pattern in SENSITIVE_PATTERNS):
                    error_dict["input"] = input_value

        errors.append(error_dict)

    return errors


def build_error_response(
    exc: Exception,
    path: str,
    method: str,
    debug: bool = False,
    request_id: Optional[str] = None,
) -> JSONResponse:
    """
    Translate an exception into the JSON error envelope.

    Args:
        exc: The exception to translate
        path: Request path
        method: Request method
        debug: Whether to include detailed error information
        request_id: Correlation id to echo back

    Returns:
        JSONResponse with ``{"error": {code, message, path, method, details?}}``
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INTERNAL_SERVER_ERROR"
    message = "An unexpected error occurred"
    details = None

    if isinstance(exc, HiringError):
        status_code = exc.status_code
        error_code = exc.code
        message = sanitize_error_message(exc.message)
        details = exc.details
        logger.warning(
            f"{type(exc).__name__}: {method} {path} - "
            f"Status: {status_code}, Message: {message}"
        )

    elif isinstance(exc, StaleDataError):
        status_code = status.HTTP_409_CONFLICT
        error_code = "CONFLICT"
        message = "The resource was modified by another request. Reload and try again."
        logger.warning(f"Stale update rejected: {method} {path}")

    elif isinstance(exc, StarletteHTTPException):
        status_code = exc.status_code
        error_code = "HTTP_EXCEPTION"
        message = sanitize_error_message(exc.detail)
        logger.warning(
            f"HTTP exception: {method} {path} - "
            f"Status: {status_code}, Message: {message}"
        )

    elif isinstance(exc, RequestValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
        error_code = "VALIDATION_ERROR"
        message = "Request validation failed"
        details = format_validation_errors(exc)
        logger.warning(f"Validation error: {method} {path} - Errors: {details}")

    elif isinstance(exc, OperationalError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        error_code = "DATABASE_ERROR"
        message = "Database service temporarily unavailable"
        logger.error(f"Database operational error: {method} {path}", exc_info=True)

    elif isinstance(exc, SQLAlchemyError):
        error_code = "DATABASE_ERROR"
        message = "A database error occurred"
        if debug:
            details = get_safe_error_details(exc, include_details=True)
        logger.error(f"SQLAlchemy error: {method} {path}", exc_info=not debug)

    elif isinstance(exc, TimeoutError):
        status_code = status.HTTP_504_GATEWAY_TIMEOUT
        error_code = "TIMEOUT"
        message = "The request timed out"
        logger.error(f"Timeout error: {method} {path}")

    else:
        if debug:
            details = get_safe_error_details(exc, include_details=True)
        logger.error(
            f"Unhandled exception: {method} {path} - "
            f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
            exc_info=True
        )

    error_response = {
        "error": {
            "code": error_code,
            "message": message,
            "path": path,
            "method": method,
        }
    }

    if details is not None:
        error_response["error"]["details"] = details

    if request_id:
        error_response["error"]["request_id"] = request_id

    return JSONResponse(status_code=status_code, content=error_response)


class ErrorHandlingMiddleware:
    """
    Last-resort error handling for anything the exception handlers missed.

    Features:
    - Sanitizes error messages to prevent sensitive data leakage
    - Provides structured error responses
    - Logs errors with appropriate severity
    """

    def __init__(self, app: Callable, debug: bool = False):
        """
        Initialize error handling middleware.

        Args:
            app: The ASGI application
            debug: Whether to include detailed error information
        """
        self.app = app
        self.debug = debug

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        """
        Process requests with comprehensive error handling.

        Args:
            scope: ASGI scope
            receive: ASGI receive channel
            send: ASGI send channel
        """
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            response = await self._handle_exception(exc, scope)
            await response(scope, receive, send)

    async def _handle_exception(self, exc: Exception, scope: dict) -> Response:
        """
        Handle an exception escaping the application.

        Args:
            exc: The exception to handle
            scope: ASGI scope for context

        Returns:
            JSONResponse with error details
        """
        request_id = None
        if "headers" in scope:
            headers = dict(scope["headers"])
            raw_request_id = headers.get(b"x-request-id")
            if raw_request_id:
                request_id = raw_request_id.decode()

        return build_error_response(
            exc,
            path=scope.get("path", "unknown"),
            method=scope.get("method", "unknown"),
            debug=self.debug,
            request_id=request_id,
        )


def setup_error_handlers(app, debug: bool = False):
    """
    Set up exception handlers for FastAPI application.

    Args:
        app: FastAPI application instance
        debug: Whether to include detailed error information
    """

    async def handle(request: Request, exc: Exception) -> JSONResponse:
        return build_error_response(
            exc,
            path=str(request.url.path),
            method=request.method,
            debug=debug,
            request_id=getattr(request.state, "request_id", None),
        )

    app.add_exception_handler(HiringError, handle)
    app.add_exception_handler(StaleDataError, handle)
    app.add_exception_handler(StarletteHTTPException, handle)
    app.add_exception_handler(RequestValidationError, handle)
    app.add_exception_handler(SQLAlchemyError, handle)
