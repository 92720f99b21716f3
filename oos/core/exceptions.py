"""
Platform-wide exception hierarchy.

Services raise these; the app factory maps each type to one HTTP status class
so that "you are not allowed", "this does not exist" and "the upstream
service failed" always reach the caller as distinct responses.

Usage:
    from oos.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Startup", resource_id=startup_id)
    raise ValidationError("Bank details are required for verification")
"""


class AuthenticationError(Exception):
    """Raised when no authenticated principal is attached to the request.

    Maps to HTTP 401.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class PermissionDenied(Exception):
    """Raised when a principal lacks the capability, role or ownership required.

    Maps to HTTP 403.

    Args:
        user_id: The principal that was refused.
        action: Short description of what was attempted (e.g. "workspace.create").
        reason: Optional human-readable explanation for the response body.
    """

    def __init__(self, user_id: str | None, action: str, reason: str | None = None) -> None:
        self.user_id = user_id
        self.action = action
        self.reason = reason
        msg = reason or f"Permission denied for '{action}'"
        super().__init__(msg)


class NotFoundError(Exception):
    """Raised when a requested resource does not exist or is not visible.

    Args:
        resource: Human-readable model/entity name (e.g. "Startup").
        resource_id: The PK that was looked up. Included in logs and message.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised on a duplicate unique value or a disallowed state transition.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated, or "status" for
            transition conflicts.
        value: The conflicting value.
        message: Optional override for the generated message.
    """

    def __init__(
        self,
        resource: str,
        field: str,
        value: str | None = None,
        message: str | None = None,
    ) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(message or f"{resource} with {field}={value!r} already exists")


class TransitionError(ConflictError):
    """Raised when a status transition is not allowed from the current state."""

    def __init__(self, resource: str, action: str, current: str, reason: str | None = None) -> None:
        msg = f"Cannot '{action}' {resource} (status={current})"
        if reason:
            msg += f": {reason}"
        super().__init__(resource, "status", current, message=msg)
        self.action = action
        self.current_status = current


class UpstreamError(Exception):
    """Raised when an external collaborator (storage, payments, video, LLM) fails.

    Args:
        service: Collaborator name, e.g. "openai", "paystack", "livekit".
        reason: Classification for user messaging: "rate_limited",
            "invalid_credentials", "quota_exceeded", "not_configured"
            or "upstream_error".
        message: Human-readable message surfaced to the caller verbatim.
    """

    REASONS = frozenset({
        "rate_limited",
        "invalid_credentials",
        "quota_exceeded",
        "not_configured",
        "upstream_error",
    })

    def __init__(self, service: str, reason: str, message: str) -> None:
        if reason not in self.REASONS:
            reason = "upstream_error"
        self.service = service
        self.reason = reason
        super().__init__(message)
