"""Shared error taxonomy for ops-runbooks."""

from __future__ import annotations

from typing import Any, Mapping, TypeVar


def _normalize_context_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return normalize_context(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_context_value(item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def normalize_context(context: Mapping[str, Any]) -> dict[str, Any]:
    """Return a JSON-friendly copy of an error context mapping."""
    return {key: _normalize_context_value(val) for key, val in context.items()}


class OpsError(Exception):
    """Base error type for typed failure handling."""

    def __init__(
        self,
        message: str,
        *,
        context: Mapping[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.context = normalize_context(context or {})
        if cause is not None:
            self.__cause__ = cause

    @property
    def error_type(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.error_type, "message": str(self), "context": self.context}


class UserCanceled(OpsError):
    """The user explicitly quit an interactive selection."""


class NoCandidatesFound(OpsError):
    """Name resolution produced no candidate above the score threshold."""


class AmbiguousMatch(OpsError):
    """Name resolution left several candidates and no one can be asked to choose."""


class InvalidInput(OpsError):
    """A single unrecognized token typed at an interactive prompt."""


class ConfigurationError(OpsError):
    """Failure due to missing or invalid configuration."""


class ToolNotFoundError(OpsError):
    """A required external executable or PowerShell module is missing."""


class ToolTimeoutError(OpsError):
    """An external executable ran past its time limit and was killed."""


class AuthenticationFailure(OpsError):
    """Could not obtain a token for the external service."""


class DiscoveryError(OpsError):
    """Looking up the existing subscription failed for a non-auth reason."""


class GraphApiError(OpsError):
    """Non-success response returned by the Microsoft Graph API."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
        context: Mapping[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        merged = dict(context or {})
        merged.setdefault("status", status)
        merged.setdefault("code", code)
        super().__init__(message, context=merged, cause=cause)
        self.status = status
        self.code = code


class ResourceNotFoundOrForeign(OpsError):
    """The subscription is gone, expired, or owned by another principal."""


class TransientCallFailure(OpsError):
    """A mutating call failed for a reason not tied to resource ownership."""


T = TypeVar("T", bound=OpsError)


def wrap_error(
    error_cls: type[T],
    message: str,
    *,
    context: Mapping[str, Any] | None = None,
    cause: Exception | None = None,
) -> T:
    """Create a typed OpsError with optional context and cause."""
    return error_cls(message, context=context, cause=cause)


def error_to_payload(error: OpsError) -> dict[str, Any]:
    """Convert an OpsError to a report payload."""
    return {
        "error_type": error.error_type,
        "error": str(error),
        "error_context": error.context,
    }
