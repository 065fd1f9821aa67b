"""
Tests for response helper functions and standard format validation.

Verifies the response-v2 envelope shared by tools and the CLI.
"""

import json
from dataclasses import asdict

from taskplan_mcp.core.context import sync_request_context
from taskplan_mcp.core.errors import (
    InvalidReferenceError,
    NotFoundError,
    StorageError,
    StructuralConflictError,
    TaskPlanError,
)
from taskplan_mcp.core.responses import (
    ErrorCode,
    ErrorType,
    ToolResponse,
    error_response,
    internal_error,
    not_found_error,
    sanitize_error_message,
    success_response,
    validation_error,
)


class TestToolResponse:
    """Tests for the ToolResponse dataclass."""

    def test_default_data_is_empty_dict(self):
        response = ToolResponse(success=True, error=None)
        assert response.data == {}
        assert response.meta == {"version": "response-v2"}


class TestSuccessResponse:
    """Tests for the success_response helper function."""

    def test_passes_kwargs_to_data(self):
        response = success_response(goal_id=1, count=2)
        assert response.success is True
        assert response.error is None
        assert response.data == {"goal_id": 1, "count": 2}

    def test_data_argument_merges_with_kwargs(self):
        response = success_response(data={"a": 1}, b=2)
        assert response.data == {"a": 1, "b": 2}

    def test_warnings_and_telemetry_in_meta(self):
        response = success_response(
            warnings=["careful"],
            telemetry={"duration_ms": 1.5},
            request_id="req_1",
        )
        assert response.meta == {
            "version": "response-v2",
            "request_id": "req_1",
            "warnings": ["careful"],
            "telemetry": {"duration_ms": 1.5},
        }

    def test_request_id_from_context(self):
        with sync_request_context(correlation_id="tool_abc"):
            response = success_response()
        assert response.meta["request_id"] == "tool_abc"

    def test_no_request_id_outside_context(self):
        assert "request_id" not in success_response().meta


class TestErrorResponse:
    """Tests for the error_response helper function."""

    def test_defaults_to_internal(self):
        response = error_response("boom")
        assert response.success is False
        assert response.error == "boom"
        assert response.data["error_code"] == "INTERNAL_ERROR"
        assert response.data["error_type"] == "internal"

    def test_code_type_remediation_details(self):
        response = error_response(
            "bad input",
            error_code=ErrorCode.INVALID_FORMAT,
            error_type=ErrorType.VALIDATION,
            remediation="fix it",
            details={"field": "task_ids"},
        )
        assert response.data == {
            "error_code": "INVALID_FORMAT",
            "error_type": "validation",
            "remediation": "fix it",
            "details": {"field": "task_ids"},
        }

    def test_string_codes_accepted(self):
        response = error_response("x", error_code="CONFLICT", error_type="conflict")
        assert response.data["error_code"] == "CONFLICT"

    def test_is_json_serializable(self):
        json.dumps(asdict(error_response("x", error_code=ErrorCode.NOT_FOUND)))


class TestSpecializedHelpers:
    def test_validation_error(self):
        response = validation_error("bad", field="goal_id")
        assert response.data["error_code"] == "VALIDATION_ERROR"
        assert response.data["details"] == {"field": "goal_id"}
        assert "goal_id" in response.data["remediation"]

    def test_not_found_error(self):
        response = not_found_error("Goal", "7")
        assert response.error == "Goal '7' not found"
        assert response.data["error_code"] == "NOT_FOUND"
        assert response.data["resource_id"] == "7"

    def test_internal_error_includes_reference(self):
        response = internal_error(request_id="req_9")
        assert "req_9" in response.data["remediation"]

    def test_sanitize_hides_details(self):
        message = sanitize_error_message(OSError("/secret/path exploded"))
        assert "/secret" not in message
        assert sanitize_error_message(RuntimeError("x")) == "An internal error occurred"


class TestErrorKinds:
    def test_codes(self):
        assert NotFoundError("x").error_code is ErrorCode.NOT_FOUND
        assert InvalidReferenceError("x").error_code is ErrorCode.INVALID_PARENT
        assert StructuralConflictError("x").error_code is ErrorCode.CONFLICT
        assert StorageError("x").error_code is ErrorCode.STORAGE_ERROR

    def test_types(self):
        assert InvalidReferenceError("x").error_type is ErrorType.VALIDATION
        assert StructuralConflictError("x").error_type is ErrorType.CONFLICT

    def test_carries_details(self):
        exc = NotFoundError("missing", remediation="create it", details={"goal_id": 3})
        assert isinstance(exc, TaskPlanError)
        assert exc.message == "missing"
        assert exc.remediation == "create it"
        assert exc.details == {"goal_id": 3}
