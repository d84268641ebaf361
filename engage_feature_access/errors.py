"""Categorized errors raised by feature access operations."""

from __future__ import annotations

from enum import StrEnum


class ErrorCategory(StrEnum):
    """Broad error categories surfaced to callers."""

    INVALID_ARGUMENT = "InvalidArgument"
    RESOURCE_UNAVAILABLE = "ResourceUnavailable"
    CONNECTION_ERROR = "ConnectionError"
    OBJECT_NOT_FOUND = "ObjectNotFound"
    INVALID_OPERATION = "InvalidOperation"
    RESOURCE_EXISTS = "ResourceExists"


class FeatureAccessError(RuntimeError):
    """Base error carrying a category and a stable identifying code."""

    category: ErrorCategory = ErrorCategory.INVALID_OPERATION
    default_code = "ENGAGE-ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        """Initialize error with message and optional code override."""
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class InvalidArgumentError(FeatureAccessError):
    """Raised when caller input is rejected before any remote call."""

    category = ErrorCategory.INVALID_ARGUMENT
    default_code = "ENGAGE-INVALID-ARGUMENT"


class ResourceUnavailableError(FeatureAccessError):
    """Raised when the client library cannot be installed or imported."""

    category = ErrorCategory.RESOURCE_UNAVAILABLE
    default_code = "ENGAGE-DEPENDENCY-UNAVAILABLE"


class SessionConnectionError(FeatureAccessError):
    """Raised when an authenticated session cannot be established."""

    category = ErrorCategory.CONNECTION_ERROR
    default_code = "ENGAGE-CONNECTION-FAILED"


class ObjectNotFoundError(FeatureAccessError):
    """Raised when a requested feature is missing from the remote catalog."""

    category = ErrorCategory.OBJECT_NOT_FOUND
    default_code = "ENGAGE-FEATURE-NOT-FOUND"


class RemoteServiceError(FeatureAccessError):
    """Raised when the policy service rejects a call."""

    category = ErrorCategory.INVALID_OPERATION
    default_code = "ENGAGE-REMOTE-CALL-FAILED"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        """Initialize error with the HTTP status returned by the service."""
        super().__init__(message, code=code)
        self.status_code = status_code


class TenantPolicyConflictError(RemoteServiceError):
    """Raised when an equivalent tenant-wide policy already exists."""

    category = ErrorCategory.RESOURCE_EXISTS
    default_code = "ENGAGE-TENANT-POLICY-EXISTS"


__all__ = [
    "ErrorCategory",
    "FeatureAccessError",
    "InvalidArgumentError",
    "ObjectNotFoundError",
    "RemoteServiceError",
    "ResourceUnavailableError",
    "SessionConnectionError",
    "TenantPolicyConflictError",
]
