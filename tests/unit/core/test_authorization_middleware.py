"""
Tests for authorization.

Tests:
- Role permission mapping
- Position ownership for managers
- Email ownership for applicants
- The require_permission route dependency
"""

from types import SimpleNamespace

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from core.exceptions import AccessDeniedError
from core.middleware.authorization import (
    ROLE_PERMISSIONS,
    Permission,
    ProtectedResource,
    authorize,
    ensure_authorized,
    has_permission,
    require_permission,
)
from core.middleware.error_handling import setup_error_handlers
from core.security import CallerIdentity
from database.models.users import UserRole


MANAGER = CallerIdentity(user_id="manager-1", email="manager@example.com", role="MANAGER")
OTHER_MANAGER = CallerIdentity(user_id="manager-2", email="other@example.com", role="MANAGER")
APPLICANT = CallerIdentity(user_id="applicant-1", email="jane@example.com", role="APPLICANT")
STRANGER = CallerIdentity(user_id="applicant-2", email="john@example.com", role="APPLICANT")


def position_resource(owner_id="manager-1"):
    return ProtectedResource.position(SimpleNamespace(id="position-1", user_id=owner_id))


def application_resource(owner_id="manager-1", email="Jane@Example.com"):
    application = SimpleNamespace(
        id="application-1",
        email=email,
        position=SimpleNamespace(user_id=owner_id),
    )
    return ProtectedResource.application(application)


class TestRolePermissions:
    """Test the role to permission mapping."""

    @pytest.mark.parametrize("permission", [
        Permission.POSITION_CREATE,
        Permission.QUESTION_MANAGE,
        Permission.ANSWER_SCORE,
        Permission.EVALUATION_FINALIZE,
        Permission.ANALYTICS_VIEW,
    ])
    def test_manager_only_permissions(self, permission):
        assert has_permission(MANAGER, permission)
        assert not has_permission(APPLICANT, permission)

    def test_applicant_permissions(self):
        assert ROLE_PERMISSIONS[UserRole.APPLICANT] == {
            Permission.APPLICATION_READ,
            Permission.APPLICATION_SUBMIT,
            Permission.ANSWER_UPDATE,
        }

    def test_manager_cannot_submit_answers(self):
        assert not has_permission(MANAGER, Permission.APPLICATION_SUBMIT)

    def test_unknown_role_has_nothing(self):
        caller = CallerIdentity(user_id="x", email="x@example.com", role="ADMIN")

        assert not has_permission(caller, Permission.POSITION_READ)
        assert not authorize(caller, Permission.POSITION_READ)


class TestOwnership:
    """Test resource ownership decisions."""

    def test_manager_owns_position(self):
        assert authorize(MANAGER, Permission.POSITION_UPDATE, position_resource())

    def test_other_manager_is_denied(self):
        decision = authorize(OTHER_MANAGER, Permission.POSITION_UPDATE, position_resource())

        assert not decision
        assert decision.reason == "Position belongs to another manager"

    def test_manager_reaches_applications_of_owned_positions(self):
        assert authorize(MANAGER, Permission.ANSWER_SCORE, application_resource())
        assert not authorize(OTHER_MANAGER, Permission.ANSWER_SCORE, application_resource())

    def test_applicant_email_match_is_case_insensitive(self):
        assert authorize(APPLICANT, Permission.APPLICATION_SUBMIT, application_resource())

    def test_applicant_cannot_reach_someone_elses_application(self):
        decision = authorize(STRANGER, Permission.APPLICATION_READ, application_resource())

        assert not decision
        assert decision.reason == "Application belongs to another applicant"

    def test_applicant_cannot_reach_positions(self):
        assert not authorize(APPLICANT, Permission.APPLICATION_READ, position_resource())

    def test_role_check_without_resource(self):
        assert authorize(APPLICANT, Permission.APPLICATION_SUBMIT)
        assert not authorize(APPLICANT, Permission.ANSWER_SCORE)


class TestEnsureAuthorized:
    def test_passes_silently(self):
        ensure_authorized(MANAGER, Permission.POSITION_READ, position_resource())

    def test_raises_access_denied(self):
        with pytest.raises(AccessDeniedError) as exc_info:
            ensure_authorized(
                OTHER_MANAGER,
                Permission.POSITION_READ,
                position_resource(),
                message="You do not have access to this position.",
            )

        error = exc_info.value
        assert error.status_code == 403
        assert error.message == "You do not have access to this position."
        assert error.details == {"permission": "position:read"}


class TestRequirePermission:
    """Test the route dependency."""

    @pytest.fixture
    def client(self):
        app = FastAPI()
        setup_error_handlers(app)

        @app.middleware("http")
        async def inject_caller(request: Request, call_next):
            role = request.headers.get("x-test-role")
            if role:
                request.state.user = CallerIdentity(user_id="u1", email="u1@example.com", role=role)
            return await call_next(request)

        @app.post("/positions")
        async def create(caller: CallerIdentity = Depends(require_permission(Permission.POSITION_CREATE))):
            return {"user_id": caller.user_id}

        return TestClient(app)

    def test_allows_role(self, client):
        response = client.post("/positions", headers={"x-test-role": "MANAGER"})

        assert response.status_code == 200
        assert response.json() == {"user_id": "u1"}

    def test_denies_role(self, client):
        response = client.post("/positions", headers={"x-test-role": "APPLICANT"})

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ACCESS_DENIED"

    def test_requires_authentication(self, client):
        response = client.post("/positions")

        assert response.status_code == 401
