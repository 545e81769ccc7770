"""
Authorization for positions, applications and evaluations.

Two layers:
1. Role permissions, checked per route by the ``require_permission``
   dependency (an applicant cannot reach manager endpoints at all)
2. Resource ownership, checked by services through ``authorize`` once the
   resource is loaded (a manager only reaches positions they own, an
   applicant only reaches applications started with their email)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Set

from fastapi import HTTPException, Request, status

from core.exceptions import AccessDeniedError
from core.security import CallerIdentity
from database.models.users import UserRole

logger = logging.getLogger(__name__)


class Permission(str, Enum):
    """System-wide permissions."""

    # Positions and their interview
    POSITION_CREATE = "position:create"
    POSITION_READ = "position:read"
    POSITION_UPDATE = "position:update"
    POSITION_DELETE = "position:delete"
    QUESTION_MANAGE = "question:manage"

    # Applications
    APPLICATION_READ = "application:read"
    APPLICATION_SUBMIT = "application:submit"  # answer questions, complete
    ANSWER_UPDATE = "answer:update"

    # Evaluation
    ANSWER_SCORE = "answer:score"
    EVALUATION_READ = "evaluation:read"
    EVALUATION_FINALIZE = "evaluation:finalize"

    # Reporting
    ANALYTICS_VIEW = "analytics:view"


# Role to permission mapping
ROLE_PERMISSIONS: dict[UserRole, Set[Permission]] = {
    UserRole.MANAGER: {
        Permission.POSITION_CREATE, Permission.POSITION_READ,
        Permission.POSITION_UPDATE, Permission.POSITION_DELETE,
        Permission.QUESTION_MANAGE,
        Permission.APPLICATION_READ, Permission.ANSWER_UPDATE,
        Permission.ANSWER_SCORE, Permission.EVALUATION_READ,
        Permission.EVALUATION_FINALIZE,
        Permission.ANALYTICS_VIEW,
    },
    UserRole.APPLICANT: {
        Permission.APPLICATION_READ,
        Permission.APPLICATION_SUBMIT,
        Permission.ANSWER_UPDATE,
    },
}

# Permissions an applicant exercises on their own application
APPLICANT_SCOPED: Set[Permission] = {
    Permission.APPLICATION_READ,
    Permission.APPLICATION_SUBMIT,
    Permission.ANSWER_UPDATE,
}


@dataclass(frozen=True)
class ProtectedResource:
    """
    Ownership facts of a loaded resource.

    ``owner_id`` is the manager owning the position the resource hangs off;
    ``applicant_email`` is set for applications and their answers.
    """

    kind: str
    id: str
    owner_id: str
    applicant_email: Optional[str] = None

    @classmethod
    def position(cls, position) -> "ProtectedResource":
        return cls(kind="Position", id=position.id, owner_id=position.user_id)

    @classmethod
    def application(cls, application) -> "ProtectedResource":
        return cls(
            kind="Application",
            id=application.id,
            owner_id=application.position.user_id,
            applicant_email=application.email,
        )


@dataclass(frozen=True)
class AuthorizationDecision:
    """Result of a capability check."""

    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


def caller_role(caller: CallerIdentity) -> Optional[UserRole]:
    try:
        return UserRole(caller.role)
    except ValueError:
        return None


def has_permission(caller: CallerIdentity, permission: Permission) -> bool:
    role = caller_role(caller)
    return role is not None and permission in ROLE_PERMISSIONS.get(role, set())


def authorize(
    caller: CallerIdentity,
    permission: Permission,
    resource: Optional[ProtectedResource] = None,
) -> AuthorizationDecision:
    """
    Decide whether a caller may exercise a permission on a resource.

    Managers act on resources under positions they own. Applicants act on
    applications whose email matches their own, compared case-insensitively.

    Args:
        caller: Authenticated caller
        permission: Permission being exercised
        resource: Loaded resource, or None for a role-only check

    Returns:
        AuthorizationDecision
    """
    if not has_permission(caller, permission):
        return AuthorizationDecision(False, f"Role {caller.role or 'unknown'} lacks {permission.value}")

    if resource is None:
        return AuthorizationDecision(True)

    role = caller_role(caller)
    if role == UserRole.MANAGER:
        if resource.owner_id == caller.user_id:
            return AuthorizationDecision(True)
        return AuthorizationDecision(False, f"{resource.kind} belongs to another manager")

    if permission in APPLICANT_SCOPED and resource.applicant_email:
        if resource.applicant_email.lower() == caller.email.lower():
            return AuthorizationDecision(True)
        return AuthorizationDecision(False, f"{resource.kind} belongs to another applicant")

    return AuthorizationDecision(False, f"{resource.kind} is not accessible to applicants")


def ensure_authorized(
    caller: CallerIdentity,
    permission: Permission,
    resource: Optional[ProtectedResource] = None,
    message: str = "You do not have access to this resource.",
) -> None:
    """
    Enforce ``authorize`` for service code.

    Raises:
        AccessDeniedError: If the decision is negative
    """
    decision = authorize(caller, permission, resource)
    if not decision:
        logger.warning(
            f"Access denied for user {caller.user_id}: {decision.reason}",
            extra={"user_id": caller.user_id},
        )
        raise AccessDeniedError(message, {"permission": permission.value})


def get_caller(request: Request) -> CallerIdentity:
    """
    Caller placed on the request by the authentication middleware.

    Raises:
        HTTPException: 401 when the request was not authenticated
    """
    caller = getattr(request.state, "user", None)
    if not caller:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return caller


def require_permission(*required_permissions: Permission) -> Callable:
    """
    Dependency to require role permissions for a route.

    Args:
        required_permissions: Required permissions

    Returns:
        FastAPI dependency returning the caller
    """
    async def dependency(request: Request) -> CallerIdentity:
        caller = get_caller(request)
        for permission in required_permissions:
            ensure_authorized(
                caller,
                permission,
                message="You do not have permission to perform this action.",
            )
        return caller

    return dependency
