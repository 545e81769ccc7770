"""
Core middleware package.

This package provides the request pipeline components:
- Error handling with sensitive data sanitization
- Structured logging with PII masking
- Authentication with bearer JWTs
- Authorization with role permissions and resource ownership
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    build_error_response,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredFormatter,
    StructuredLoggingMiddleware,
    setup_logging,
)

from core.middleware.authentication import (
    AuthenticationMiddleware,
    get_current_user,
    AuthenticationError,
)

from core.middleware.authorization import (
    AuthorizationDecision,
    Permission,
    ProtectedResource,
    ROLE_PERMISSIONS,
    authorize,
    ensure_authorized,
    get_caller,
    require_permission,
)

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "build_error_response",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredFormatter",
    "StructuredLoggingMiddleware",
    "setup_logging",
    # Authentication
    "AuthenticationMiddleware",
    "get_current_user",
    "AuthenticationError",
    # Authorization
    "AuthorizationDecision",
    "Permission",
    "ProtectedResource",
    "ROLE_PERMISSIONS",
    "authorize",
    "ensure_authorized",
    "get_caller",
    "require_permission",
]
