"""
Authentication middleware for verifying the caller's identity.

This middleware:
1. Validates bearer JWTs from the Authorization header
2. Turns the token claims into a CallerIdentity
3. Puts the identity on the request scope for route dependencies
4. Lets the public interview entry points through without a token
"""

import logging
import re
from typing import Callable, Optional
from datetime import datetime, timezone
import jwt
from fastapi import Request, status
from fastapi.responses import JSONResponse

from core.security import CallerIdentity, verify_jwt_token

logger = logging.getLogger(__name__)

# Public endpoints that don't require authentication
PUBLIC_ENDPOINTS = [
    "/",
    "/health",
    "/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
]

# Candidate-facing entry points: the interview view of a position and
# starting an application
PUBLIC_PATTERNS = [
    (re.compile(r"^/api/v1/interviews/[^/]+$"), {"GET"}),
    (re.compile(r"^/api/v1/applications/?$"), {"POST"}),
]


class AuthenticationError(Exception):
    """Base exception for authentication errors."""
    pass


class TokenMissingError(AuthenticationError):
    """Raised when no bearer token is sent."""
    pass


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""
    pass


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is invalid."""
    pass


class AuthenticationMiddleware:
    """
    Authentication middleware that validates the bearer token.

    Identity comes from the token alone; the store is not consulted.
    """

    def __init__(
        self,
        app: Callable,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
    ):
        """
        Initialize authentication middleware.

        Args:
            app: ASGI application
            jwt_secret: Secret key for JWT verification
            jwt_algorithm: JWT signing algorithm
        """
        self.app = app
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        """
        Process requests with authentication validation.

        Args:
            scope: ASGI scope dictionary
            receive: ASGI receive function
            send: ASGI send function
        """
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)

        # Skip authentication for public endpoints
        if self._is_public_endpoint(request.url.path, request.method):
            await self.app(scope, receive, send)
            return

        try:
            token = self._extract_token(request)
            if not token:
                raise TokenMissingError("No authentication token provided")

            try:
                payload = verify_jwt_token(token, self.jwt_secret, self.jwt_algorithm)
            except jwt.ExpiredSignatureError:
                raise TokenExpiredError("Token has expired")
            except jwt.InvalidTokenError as e:
                raise TokenInvalidError(f"Invalid token: {str(e)}")

            caller = CallerIdentity.from_payload(payload)
            if not caller.email or not caller.role:
                raise TokenInvalidError("Token missing email or role")

            # Inject authenticated caller into request scope
            scope.setdefault("state", {})["user"] = caller
            scope["jwt_payload"] = payload

        except TokenMissingError:
            await self._send_error_response(
                scope,
                send,
                status_code=status.HTTP_401_UNAUTHORIZED,
                code="AUTHENTICATION_REQUIRED",
                message="Authentication required.",
            )
            return
        except TokenExpiredError:
            await self._send_error_response(
                scope,
                send,
                status_code=status.HTTP_401_UNAUTHORIZED,
                code="TOKEN_EXPIRED",
                message="Authentication token has expired. Please sign in again.",
            )
            return
        except TokenInvalidError as e:
            logger.warning(f"Invalid token: {str(e)}")
            await self._send_error_response(
                scope,
                send,
                status_code=status.HTTP_401_UNAUTHORIZED,
                code="TOKEN_INVALID",
                message="Invalid authentication token.",
            )
            return

        # Continue to next middleware/route
        await self.app(scope, receive, send)

    def _is_public_endpoint(self, path: str, method: str = "GET") -> bool:
        """
        Check if endpoint is public (no auth required).

        Args:
            path: Request path
            method: HTTP method

        Returns:
            True if endpoint is public
        """
        # Exact match
        if path in PUBLIC_ENDPOINTS:
            return True

        # Prefix match for health checks and docs
        public_prefixes = ["/health", "/docs", "/redoc", "/openapi"]
        if any(path.startswith(prefix) for prefix in public_prefixes):
            return True

        return any(
            pattern.match(path) and method.upper() in methods
            for pattern, methods in PUBLIC_PATTERNS
        )

    def _extract_token(self, request: Request) -> Optional[str]:
        """
        Extract JWT token from Authorization header.

        Args:
            request: FastAPI request

        Returns:
            JWT token or None
        """
        auth_header = request.headers.get("Authorization")

        if auth_header and auth_header.startswith("Bearer "):
            return auth_header[7:]  # Remove "Bearer " prefix

        return None

    async def _send_error_response(
        self,
        scope: dict,
        send: Callable,
        status_code: int,
        code: str,
        message: str,
    ) -> None:
        """
        Send error response for authentication failures.

        Args:
            scope: ASGI scope of the rejected request
            send: ASGI send function
            status_code: HTTP status code
            code: Error code
            message: Error message
        """
        error_response = {
            "error": {
                "code": code,
                "message": message,
                "path": scope.get("path"),
                "method": scope.get("method"),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        }

        response = JSONResponse(
            status_code=status_code,
            content=error_response,
            headers={"WWW-Authenticate": "Bearer"},
        )

        await response(scope, None, send)


def get_current_user(request: Request) -> CallerIdentity:
    """
    Get current authenticated caller from the request state.

    Args:
        request: FastAPI request

    Returns:
        Authenticated caller

    Raises:
        AuthenticationError: If no caller was authenticated
    """
    user = getattr(request.state, "user", None)
    if not user:
        raise AuthenticationError("User not authenticated")
    return user
