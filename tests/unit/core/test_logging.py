"""
Tests for logging middleware.
Tests credential redaction, applicant PII masking and request logging.
"""

import json
import logging
import sys

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from core.middleware.logging import (
    StructuredFormatter,
    StructuredLoggingMiddleware,
    get_caller_id,
    is_sensitive_field,
    mask_headers,
    mask_sensitive_data,
    setup_logging,
    should_log_request,
)
from core.security import CallerIdentity


class TestSensitiveFieldDetection:
    @pytest.mark.parametrize("field_name,expected", [
        ("password", True),
        ("access_token", True),
        ("api_key", True),
        ("apiKey", True),
        ("client_secret", True),
        ("Authorization", True),
        ("cookie", True),
        ("session_id", True),
        ("score", False),
        ("questionId", False),
        ("title", False),
    ])
    def test_is_sensitive_field(self, field_name, expected):
        assert is_sensitive_field(field_name) is expected


class TestMaskSensitiveData:
    """Test recursive masking of request payloads."""

    def test_redacts_credentials(self):
        assert mask_sensitive_data({"token": "abc", "score": 80}) == {"token": "[REDACTED]", "score": 80}

    def test_partially_masks_applicant_fields(self):
        masked = mask_sensitive_data({
            "name": "Jane Doe",
            "email": "jane@example.com",
            "response": "I like Python",
        })

        assert masked == {
            "name": "J***[8]",
            "email": "j***[16]",
            "response": "I***[13]",
        }

    def test_masks_pii_inside_free_text(self):
        masked = mask_sensitive_data({"note": "reach me at jane@example.com or 555-123-4567"})

        assert masked["note"] == "reach me at [EMAIL] or [PHONE]"

    def test_nested_structures(self):
        masked = mask_sensitive_data({"answers": [{"questionId": "q1", "response": "Yes"}]})

        assert masked == {"answers": [{"questionId": "q1", "response": "Y***[3]"}]}

    def test_depth_limit(self):
        data = {}
        node = data
        for _ in range(15):
            node["child"] = {}
            node = node["child"]

        masked = mask_sensitive_data(data)
        for _ in range(11):
            masked = masked["child"]

        assert masked == "[MAX_DEPTH_EXCEEDED]"

    def test_primitives_pass_through(self):
        assert mask_sensitive_data(42) == 42
        assert mask_sensitive_data(None) is None


class TestMaskHeaders:
    def test_keeps_auth_scheme(self):
        masked = mask_headers({"Authorization": "Bearer eyJhbGciOi", "Accept": "application/json"})

        assert masked == {"Authorization": "Bearer [REDACTED]", "Accept": "application/json"}

    def test_redacts_cookie(self):
        assert mask_headers({"cookie": "sid=1"}) == {"cookie": "[REDACTED]"}


class TestShouldLogRequest:
    @pytest.mark.parametrize("path,expected", [
        ("/health", False),
        ("/ready", False),
        ("/api/v1/positions", True),
        ("/", True),
    ])
    def test_should_log_request(self, path, expected):
        assert should_log_request(path) is expected


class TestGetCallerId:
    def test_with_caller(self):
        caller = CallerIdentity(user_id="manager-1", email="m@example.com", role="MANAGER")
        request = Request({"type": "http", "state": {"user": caller}})

        assert get_caller_id(request) == "manager-1"

    def test_anonymous(self):
        assert get_caller_id(Request({"type": "http", "state": {}})) is None


class TestStructuredLoggingMiddleware:
    """Test request logging end to end."""

    @pytest.fixture
    def client(self):
        app = FastAPI()
        app.add_middleware(StructuredLoggingMiddleware, log_request_body=True)

        @app.post("/api/v1/applications")
        async def start(request: Request):
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        return TestClient(app)

    def _events(self, caplog):
        events = []
        for record in caplog.records:
            if record.name != "core.middleware.logging":
                continue
            try:
                events.append(json.loads(record.getMessage()))
            except json.JSONDecodeError:
                continue
        return events

    def test_logs_start_and_completion(self, client, caplog):
        caplog.set_level(logging.INFO, logger="core.middleware.logging")

        response = client.post(
            "/api/v1/applications",
            json={"name": "Jane Doe", "email": "jane@example.com"},
            headers={"x-request-id": "req-1"},
        )

        assert response.status_code == 200
        assert response.headers["x-request-id"] == "req-1"

        started, completed = self._events(caplog)
        assert started["event"] == "request_started"
        assert started["request_id"] == "req-1"
        assert started["body"] == {"name": "J***[8]", "email": "j***[16]"}
        assert completed["event"] == "request_completed"
        assert completed["status_code"] == 200
        assert completed["user_id"] is None
        assert "jane@example.com" not in caplog.text

    def test_generates_request_id(self, client):
        response = client.post("/api/v1/applications", json={})

        assert response.headers["x-request-id"]

    def test_skips_health_checks(self, client, caplog):
        caplog.set_level(logging.INFO, logger="core.middleware.logging")

        response = client.get("/health")

        assert response.status_code == 200
        assert "x-request-id" in response.headers
        assert self._events(caplog) == []


class TestStructuredFormatter:
    def test_formats_json_with_extras(self):
        record = logging.LogRecord(
            name="api.services.evaluations",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Scored answer %s",
            args=("answer-1",),
            exc_info=None,
        )
        record.answer_id = "answer-1"
        record.user_id = "manager-1"

        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "api.services.evaluations"
        assert data["message"] == "Scored answer answer-1"
        assert data["answer_id"] == "answer-1"
        assert data["user_id"] == "manager-1"
        assert "application_id" not in data

    def test_includes_exception(self):
        try:
            raise ValueError("bad score")
        except ValueError:
            exc_info = sys.exc_info()

        record = logging.LogRecord(
            name="test", level=logging.ERROR, pathname=__file__, lineno=1,
            msg="failed", args=(), exc_info=exc_info,
        )

        data = json.loads(StructuredFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad score"


class TestSetupLogging:
    def test_configures_root_logger(self):
        root = logging.getLogger()
        original_handlers = root.handlers[:]
        original_level = root.level
        try:
            setup_logging(log_level="debug", json_logs=True)

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
            assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        finally:
            root.handlers = original_handlers
            root.setLevel(original_level)
