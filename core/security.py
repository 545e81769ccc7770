"""
Security utilities.

Bearer token handling for the caller identity, PII masking, and the audit
trail for evaluation decisions.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Set, TypedDict

import jwt

logger = logging.getLogger("security.audit")


class AuditAction(str, Enum):
    """Audit log action types."""
    # Read operations
    VIEW = "VIEW"
    LIST = "LIST"

    # Write operations
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    # Evaluation
    SCORE = "SCORE"
    FINALIZE = "FINALIZE"
    COMPLETE = "COMPLETE"


class ResourceType(str, Enum):
    """Resource types for audit logging."""
    POSITION = "POSITION"
    QUESTION = "QUESTION"
    APPLICATION = "APPLICATION"
    ANSWER = "ANSWER"
    EVALUATION = "EVALUATION"


class JWTPayload(TypedDict, total=False):
    """Claims carried by an access token."""
    sub: str
    user_id: str
    email: str
    role: str
    type: str
    iat: int
    exp: int


@dataclass(frozen=True)
class CallerIdentity:
    """The authenticated caller as seen by services."""

    user_id: str
    email: str
    role: str

    @classmethod
    def from_payload(cls, payload: JWTPayload) -> "CallerIdentity":
        return cls(
            user_id=str(payload.get("user_id") or payload.get("sub")),
            email=str(payload.get("email", "")).lower(),
            role=str(payload.get("role", "")).upper(),
        )


# ==================== Tokens ===================== #

def create_access_token(
    user_id: str,
    email: str,
    role: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_minutes: int = 60,
) -> str:
    """
    Create a signed access token.

    Sign-in itself happens at the identity provider; this is what it hands
    out and what the tests use to impersonate callers.

    Args:
        user_id: Subject of the token
        email: Caller email, used for applicant ownership checks
        role: MANAGER or APPLICANT
        secret_key: Signing key
        algorithm: JWT algorithm
        expires_minutes: Token lifetime

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(timezone.utc)
    payload: JWTPayload = {
        "sub": user_id,
        "user_id": user_id,
        "email": email,
        "role": role,
        "type": "access",
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(minutes=expires_minutes)).timestamp()),
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def verify_jwt_token(token: str, secret_key: str, algorithm: str = "HS256") -> JWTPayload:
    """
    Verify a token's signature and expiry and return its claims.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired
        jwt.InvalidTokenError: If the token is malformed, tampered with or not an access token
    """
    payload = jwt.decode(
        token,
        secret_key,
        algorithms=[algorithm],
        options={"require": ["exp", "sub"]},
    )
    if payload.get("type", "access") != "access":
        raise jwt.InvalidTokenError("Not an access token")
    return payload


# ==================== PII ===================== #

# PII fields that should be masked in logs
PII_FIELDS: Set[str] = {
    "email", "phone", "address",
    "name", "applicant_name", "applicantname", "applicant_email", "applicantemail",
    "response",
}


def mask_pii(data: Any, depth: int = 0) -> Any:
    """
    Recursively mask PII fields in data structures.

    Args:
        data: Data to mask (dict, list, or primitive)
        depth: Current recursion depth (max 10)

    Returns:
        Data with PII fields masked
    """
    if depth > 10:
        return "[MAX_DEPTH]"

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if key.lower() in PII_FIELDS:
                if isinstance(value, str) and len(value) > 0:
                    # Partial masking: show first char and length indicator
                    masked[key] = f"{value[0]}***[{len(value)}]"
                else:
                    masked[key] = "[MASKED]"
            else:
                masked[key] = mask_pii(value, depth + 1)
        return masked
    elif isinstance(data, list):
        return [mask_pii(item, depth + 1) for item in data[:5]]  # Limit list items
    else:
        return data


# ==================== Audit ===================== #

async def log_audit_event(
    action: AuditAction,
    resource_type: ResourceType,
    resource_id: Optional[str] = None,
    user_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    contains_pii: bool = False,
) -> Dict[str, Any]:
    """
    Log an audit event for evaluation decisions.

    Emits one JSON line on the ``security.audit`` logger and returns the
    event that was written.
    """
    event = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": "AUDIT",
        "action": action.value,
        "resource_type": resource_type.value,
        "resource_id": str(resource_id) if resource_id else None,
        "user_id": user_id,
        "contains_pii": contains_pii,
        "details": mask_pii(details) if details and contains_pii else details,
    }

    logger.info(json.dumps(event, default=str))
    return event
