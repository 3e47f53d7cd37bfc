"""
Domain errors raised by the booking and lifecycle core.

Routers never catch these individually: main.py maps each class to an HTTP
status through a single exception handler.
"""

from typing import Optional


class OrderDeskError(Exception):
    """Base class for user-facing rejections"""

    status_code = 400
    code = "error"

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message, **self.details}


class ValidationError(OrderDeskError):
    """Missing or malformed booking input; nothing was sent to the store"""

    status_code = 422
    code = "validation_error"


class NotFound(OrderDeskError):
    status_code = 404
    code = "not_found"


class SlotTaken(OrderDeskError):
    """The requested (date, time) is held by another non-terminal order"""

    status_code = 409
    code = "slot_taken"


class InvalidTransition(OrderDeskError):
    """The target status is not reachable from the current one"""

    status_code = 409
    code = "invalid_transition"


class NotAssigned(OrderDeskError):
    """The acting driver does not hold (or can no longer take) the order"""

    status_code = 409
    code = "not_assigned"


class Forbidden(OrderDeskError):
    """The actor's role or standing does not allow the operation"""

    status_code = 403
    code = "forbidden"


class ConflictError(OrderDeskError):
    """A store uniqueness constraint rejected the write"""

    status_code = 409
    code = "conflict"


class TransientStoreError(OrderDeskError):
    """Network/timeout failure talking to the store; safe to retry"""

    status_code = 503
    code = "try_again"
