# File: resolver/core/errors.py
"""Domain errors raised by the service layer.

Every error carries the HTTP status it maps to, a stable ``code`` for
clients and a short human-readable ``detail`` suitable for a toast.
"""
from typing import Any


class ResolverError(Exception):
    status_code = 400
    code = "error"
    detail = "Something went wrong"

    def __init__(self, detail: str | None = None, **extra: Any):
        self.detail = detail or self.detail
        self.extra = extra
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail, "code": self.code, **self.extra}


class ValidationError(ResolverError):
    status_code = 400
    code = "validation_error"
    detail = "Please fill in all required fields"


class Unauthorized(ResolverError):
    status_code = 403
    code = "unauthorized"
    detail = "You are not allowed to do that"


class NotFound(ResolverError):
    status_code = 404
    code = "not_found"
    detail = "Not found"


class UserNotFound(NotFound):
    code = "user_not_found"
    detail = "User not found"


class InvalidTransition(ResolverError):
    status_code = 409
    code = "invalid_transition"
    detail = "That status change is not allowed"


class Conflict(ResolverError):
    status_code = 409
    code = "conflict"
    detail = "The issue was changed by someone else. Refresh and try again."


class InsufficientBalance(ResolverError):
    status_code = 409
    code = "insufficient_balance"
    detail = "Not enough points"


class AlreadyRedeemed(ResolverError):
    status_code = 409
    code = "already_redeemed"
    detail = "Voucher already redeemed"


class TransientError(ResolverError):
    status_code = 503
    code = "transient_error"
    detail = "Service temporarily unavailable. Please try again."


class AwardFailed(ResolverError):
    """Status change was committed but the point award did not apply."""
    status_code = 502
    code = "award_failed"
    detail = "Status updated, but awarding points failed. Retry the award."

    def __init__(self, issue_id: int, detail: str | None = None):
        super().__init__(detail, issue_id=issue_id)
        self.issue_id = issue_id
