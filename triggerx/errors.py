"""
Error taxonomy and structured results for the TriggerX SDK.

Public pipeline entry points never let exceptions escape: failures are
converted into a `PipelineResult` carrying the error kind, a stable error
code and a details dictionary. Lower-level helpers raise the typed errors
defined here and the nearest stage boundary wraps them.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp


class TriggerXError(Exception):
    """Base class for every error raised by the SDK."""

    code = "TRIGGERX_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        http_status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.http_status = http_status

    @property
    def error_type(self) -> str:
        return type(self).__name__


class ValidationError(TriggerXError):
    """Malformed or missing caller input. Never retried."""

    code = "VALIDATION_ERROR"

    def __init__(
        self, field: str, message: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        merged = {"field": field}
        merged.update(details or {})
        super().__init__(message, merged)
        self.field = field


class ConfigurationError(TriggerXError):
    code = "CONFIGURATION_ERROR"


class AuthenticationError(TriggerXError):
    code = "AUTHENTICATION_ERROR"


class ContractError(TriggerXError):
    code = "CONTRACT_ERROR"


class BalanceError(TriggerXError):
    code = "BALANCE_ERROR"


class ApiError(TriggerXError):
    code = "API_ERROR"


class BackendRejectedError(ApiError):
    """The backend answered but refused the job (validation status in the body)."""

    code = "BACKEND_REJECTED"


class NetworkError(TriggerXError):
    code = "NETWORK_ERROR"


class UnknownError(TriggerXError):
    code = "UNKNOWN_ERROR"


@dataclass
class PipelineResult:
    """Uniform outcome of every public pipeline stage."""

    success: bool
    data: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    error_type: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any = None) -> "PipelineResult":
        return cls(success=True, data=data)

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase wire representation."""
        if self.success:
            return {"success": True, "data": self.data}
        return {
            "success": False,
            "error": self.error,
            "errorCode": self.error_code,
            "errorType": self.error_type,
            "details": self.details,
        }


def create_error_response(
    error: BaseException, fallback_message: str = "Unexpected error"
) -> PipelineResult:
    """Convert any exception into a failed PipelineResult."""
    if not isinstance(error, TriggerXError):
        error = classify_exception(error, fallback_message)
    details = dict(error.details)
    if error.http_status is not None:
        details.setdefault("http_status", error.http_status)
    return PipelineResult(
        success=False,
        error=error.message or fallback_message,
        error_code=error.code,
        error_type=error.error_type,
        details=details,
    )


def classify_exception(
    exc: BaseException,
    context: str = "Unexpected error",
    details: Optional[Dict[str, Any]] = None,
) -> TriggerXError:
    """Best-effort classification of opaque third-party errors by message text.

    Only used when no explicit error kind was produced at the raise site.
    """
    if isinstance(exc, TriggerXError):
        return exc
    merged: Dict[str, Any] = {"original_error": str(exc)}
    merged.update(details or {})
    message = f"{context}: {exc}" if str(exc) else context
    status = extract_http_status_code(exc)

    if isinstance(exc, (aiohttp.ClientConnectionError, asyncio.TimeoutError, TimeoutError)):
        return NetworkError(message, merged, status)
    if isinstance(exc, aiohttp.ClientResponseError):
        return ApiError(message, merged, status)

    lowered = str(exc).lower()
    if any(token in lowered for token in ("network", "timeout", "timed out", "connection")):
        return NetworkError(message, merged, status)
    if "insufficient" in lowered:
        return BalanceError(message, merged, status)
    if any(
        token in lowered for token in ("revert", "contract", "execution", "transaction")
    ):
        return ContractError(message, merged, status)
    return UnknownError(message, merged, status)


def extract_http_status_code(exc: BaseException) -> Optional[int]:
    """Return the HTTP status attached to an error, if any."""
    status = getattr(exc, "http_status", None)
    if isinstance(status, int):
        return status
    if isinstance(exc, aiohttp.ClientResponseError):
        return exc.status
    return None


def determine_error_code(exc: BaseException, http_status: Optional[int] = None) -> str:
    """Map an error (and optional HTTP status) to a stable error code."""
    if http_status is None:
        http_status = extract_http_status_code(exc)
    if http_status in (401, 403):
        return AuthenticationError.code
    if http_status in (400, 422):
        return ValidationError.code
    if http_status == 404:
        return "NOT_FOUND"
    if http_status is not None and http_status >= 500:
        return ApiError.code
    if isinstance(exc, TriggerXError):
        return exc.code
    return classify_exception(exc).code
