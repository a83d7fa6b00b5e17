"""Custom exception classes for the identity pool resource.

Every error raised while handling a custom resource request ends up in
the FAILED callback, so each exception knows how to render itself as
response ``Data``.
"""

from __future__ import annotations

from typing import Any
from typing import Optional


class IdentityPoolError(Exception):
    """Base exception for identity pool resource errors.

    Attributes:
        message: Human-readable error message.
        detail: Optional additional context.
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to custom resource response data."""
        result: dict[str, Any] = {"message": self.message}
        if self.detail:
            result["detail"] = self.detail
        return result


class ValidationError(IdentityPoolError):
    """Raised when the CloudFormation event or its properties are malformed."""

    def __init__(self, message: str, field: Optional[str] = None):
        detail = f"Field: {field}" if field else None
        super().__init__(message, detail=detail)
        self.field = field


class PropertyDecodeError(ValidationError):
    """Raised when a string-encoded resource property is not valid JSON."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Invalid JSON in property {key}: {reason}", field=key)
        self.key = key


class UnknownOperationError(IdentityPoolError):
    """Raised when no operation matches the resource tag and request type."""

    def __init__(self, resource_tag: str = "", request_type: str = ""):
        super().__init__(
            "Unknown operation",
            detail=f"{resource_tag}:{request_type}" if resource_tag else None,
        )
        self.resource_tag = resource_tag
        self.request_type = request_type

    def to_dict(self) -> dict[str, Any]:
        return {"Error": self.message}


class ConfigurationError(IdentityPoolError):
    """Raised when required deployment configuration is missing."""

    def __init__(self, config_name: str):
        super().__init__(f"Missing required configuration: {config_name}")
        self.config_name = config_name


class DeploymentError(IdentityPoolError):
    """Raised when a build or deploy step cannot complete."""
