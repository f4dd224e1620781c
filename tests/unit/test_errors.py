"""
Unit tests for error classification and PipelineResult conversion.
"""

import asyncio

import aiohttp
import pytest

from triggerx.errors import (
    ApiError,
    AuthenticationError,
    BalanceError,
    ContractError,
    NetworkError,
    PipelineResult,
    UnknownError,
    ValidationError,
    classify_exception,
    create_error_response,
    determine_error_code,
)


class TestClassifyException:
    """Opaque third-party errors mapped onto the SDK taxonomy."""

    def test_sdk_errors_pass_through(self):
        error = BalanceError("low")
        assert classify_exception(error) is error

    @pytest.mark.parametrize(
        "exc,expected",
        [
            (asyncio.TimeoutError(), NetworkError),
            (aiohttp.ClientConnectionError("refused"), NetworkError),
            (RuntimeError("connection reset by peer"), NetworkError),
            (RuntimeError("insufficient funds for gas * price + value"), BalanceError),
            (RuntimeError("execution reverted: not owner"), ContractError),
            (RuntimeError("something odd"), UnknownError),
        ],
    )
    def test_message_based_classification(self, exc, expected):
        assert isinstance(classify_exception(exc), expected)

    def test_context_and_original_error(self):
        error = classify_exception(RuntimeError("boom"), "Failed to create job", {"job_id": "1"})
        assert error.message == "Failed to create job: boom"
        assert error.details == {"original_error": "boom", "job_id": "1"}


class TestCreateErrorResponse:
    """Failed PipelineResult construction."""

    def test_validation_error_carries_field(self):
        result = create_error_response(ValidationError("job_title", "Job title is required."))

        assert result.success is False
        assert result.error == "Job title is required."
        assert result.error_code == "VALIDATION_ERROR"
        assert result.error_type == "ValidationError"
        assert result.details == {"field": "job_title"}

    def test_http_status_copied_into_details(self):
        result = create_error_response(ApiError("nope", {"path": "/api/jobs"}, http_status=502))
        assert result.details == {"path": "/api/jobs", "http_status": 502}

    def test_plain_exception_is_classified(self):
        result = create_error_response(ValueError("weird"), "Job creation failed")
        assert result.error_code == "UNKNOWN_ERROR"
        assert result.error == "Job creation failed: weird"

    def test_wire_format(self):
        assert PipelineResult.ok({"job_id": "1"}).to_dict() == {
            "success": True,
            "data": {"job_id": "1"},
        }
        failed = create_error_response(AuthenticationError("missing key")).to_dict()
        assert failed["errorCode"] == "AUTHENTICATION_ERROR"
        assert failed["errorType"] == "AuthenticationError"


@pytest.mark.parametrize(
    "status,expected",
    [
        (401, "AUTHENTICATION_ERROR"),
        (403, "AUTHENTICATION_ERROR"),
        (422, "VALIDATION_ERROR"),
        (404, "NOT_FOUND"),
        (503, "API_ERROR"),
    ],
)
def test_determine_error_code_from_status(status, expected):
    assert determine_error_code(ApiError("x", http_status=status)) == expected


def test_determine_error_code_without_status():
    assert determine_error_code(ContractError("x")) == "CONTRACT_ERROR"
    assert determine_error_code(RuntimeError("timed out")) == "NETWORK_ERROR"
