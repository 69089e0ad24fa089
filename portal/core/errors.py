"""
Typed portal errors.

Policy, approval and service code raise these; the HTTP boundary
(`portal.core.exceptions`) turns them into JSON responses carrying a
machine-readable ``kind`` and a human ``detail``.
"""

from __future__ import annotations


class PortalError(Exception):
    kind: str = "error"
    status_code: int = 400
    default_detail: str = "Request could not be completed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthenticated(PortalError):
    kind = "unauthenticated"
    status_code = 401
    default_detail = "Could not validate credentials"


class Forbidden(PortalError):
    kind = "forbidden"
    status_code = 403
    default_detail = "You do not have permission to perform this action"


class NotFound(PortalError):
    kind = "not_found"
    status_code = 404
    default_detail = "Resource not found"


class Conflict(PortalError):
    kind = "conflict"
    status_code = 409
    default_detail = "Request conflicts with the current state"


class AlreadyApproved(Conflict):
    kind = "already_approved"
    default_detail = "Vendor is already approved"


class ValidationFailed(PortalError):
    kind = "validation_error"
    status_code = 422
    default_detail = "Invalid input"

    def __init__(
        self,
        detail: str | None = None,
        errors: dict[str, str] | None = None,
    ) -> None:
        super().__init__(detail)
        self.errors = errors or {}


class NotAVendor(ValidationFailed):
    kind = "not_a_vendor"
    default_detail = "Only vendor accounts take part in approval"


class InvalidCredentials(PortalError):
    kind = "invalid_credentials"
    status_code = 401
    default_detail = "Invalid email or password"


class PendingApproval(PortalError):
    kind = "pending_approval"
    status_code = 403
    default_detail = "Your account is pending approval from an administrator"
