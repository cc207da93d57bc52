# ticketing/core/exceptions.py
"""
Custom exception hierarchy for the ticketing service.
All exceptions inherit from TicketingError so the API layer can render them
with a single handler. Every error carries a machine-checkable error_code and
a human-readable message.
"""

from typing import Optional


class ErrorCategory:
    """Error categories for structured error handling"""
    AUTHORIZATION = "authorization_error"
    NOT_FOUND = "not_found_error"
    CONFLICT = "conflict_error"
    CAPACITY = "capacity_exceeded"
    INVALID_PROMO = "invalid_promo"
    VALIDATION = "validation_error"
    CREDENTIAL = "credential_error"
    COMMIT = "commit_error"


class TicketingError(Exception):
    """Base exception for all ticketing errors."""

    category = ErrorCategory.VALIDATION
    status_code = 400

    def __init__(
        self,
        message: str,
        error_code: str = "TICKETING_ERROR",
        details: Optional[dict] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# ===========================================
# Authorization
# ===========================================


class Forbidden(TicketingError):
    """Actor is not allowed to perform the operation."""

    category = ErrorCategory.AUTHORIZATION
    status_code = 403

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message, error_code="FORBIDDEN")


# ===========================================
# Not found
# ===========================================


class NotFoundError(TicketingError):
    category = ErrorCategory.NOT_FOUND
    status_code = 404


class EventNotFound(NotFoundError):
    def __init__(self, event_id: str):
        super().__init__(
            "Event not found",
            error_code="EVENT_NOT_FOUND",
            details={"event_id": event_id},
        )


class RegistrationNotFound(NotFoundError):
    def __init__(self, registration_id: str):
        super().__init__(
            "Registration not found",
            error_code="REGISTRATION_NOT_FOUND",
            details={"registration_id": registration_id},
        )


class PromoCodeNotFound(NotFoundError):
    def __init__(self, promo_code_id: str):
        super().__init__(
            "Promo code not found",
            error_code="PROMO_CODE_NOT_FOUND",
            details={"promo_code_id": promo_code_id},
        )


class TicketTypeNotFound(NotFoundError):
    def __init__(self, ticket_type_id: str):
        super().__init__(
            "Ticket type not found",
            error_code="TICKET_TYPE_NOT_FOUND",
            details={"ticket_type_id": ticket_type_id},
        )


class NotRegistered(NotFoundError):
    def __init__(self, event_id: str):
        super().__init__(
            "You are not registered for this event",
            error_code="NOT_REGISTERED",
            details={"event_id": event_id},
        )


# ===========================================
# Conflicts
# ===========================================


class ConflictError(TicketingError):
    category = ErrorCategory.CONFLICT
    status_code = 409


class AlreadyRegistered(ConflictError):
    def __init__(self, event_id: str):
        super().__init__(
            "You are already registered for this event",
            error_code="ALREADY_REGISTERED",
            details={"event_id": event_id},
        )


class EventNotPublished(ConflictError):
    def __init__(self, event_id: str, status: str):
        super().__init__(
            "This event is not available for registration",
            error_code="EVENT_NOT_PUBLISHED",
            details={"event_id": event_id, "status": status},
        )


class EventEnded(ConflictError):
    def __init__(self, event_id: str):
        super().__init__(
            "This event has already ended",
            error_code="EVENT_ENDED",
            details={"event_id": event_id},
        )


class DuplicateCode(ConflictError):
    def __init__(self, code: str):
        super().__init__(
            "Promo code already exists",
            error_code="DUPLICATE_CODE",
            details={"promo_code": code},
        )


class WithinCancellationLockout(ConflictError):
    def __init__(self, lockout_hours: int, hours_until_start: float):
        super().__init__(
            f"Cannot cancel registration within {lockout_hours} hours of event start",
            error_code="WITHIN_CANCELLATION_LOCKOUT",
            details={"hours_until_start": round(hours_until_start, 2)},
        )


class NotCheckedIn(ConflictError):
    def __init__(self, registration_id: str):
        super().__init__(
            "Registration is not checked in",
            error_code="NOT_CHECKED_IN",
            details={"registration_id": registration_id},
        )


class WrongEvent(TicketingError):
    """Registration exists but belongs to a different event."""

    category = ErrorCategory.CONFLICT
    status_code = 400

    def __init__(self, registration_id: str, event_id: str):
        super().__init__(
            "Registration is not for this event",
            error_code="WRONG_EVENT",
            details={"registration_id": registration_id, "event_id": event_id},
        )


# ===========================================
# Capacity
# ===========================================


class CapacityExceeded(TicketingError):
    category = ErrorCategory.CAPACITY
    status_code = 409


class InsufficientInventory(CapacityExceeded):
    def __init__(self, message: str, available: int, requested: int, ticket_type_id: Optional[str] = None):
        details = {"available": available, "requested": requested}
        if ticket_type_id:
            details["ticket_type_id"] = ticket_type_id
        super().__init__(message, error_code="INSUFFICIENT_INVENTORY", details=details)


class InvalidQuantityRange(CapacityExceeded):
    status_code = 400

    def __init__(self, message: str, minimum: int, maximum: int, requested: int):
        super().__init__(
            message,
            error_code="INVALID_QUANTITY_RANGE",
            details={"min_quantity": minimum, "max_quantity": maximum, "requested": requested},
        )


# ===========================================
# Promo codes
# ===========================================


class InvalidPromo(TicketingError):
    """A promo code failed one of the validation rules; error_code names the rule."""

    category = ErrorCategory.INVALID_PROMO
    status_code = 400

    def __init__(self, reason: str, message: str, code: Optional[str] = None):
        self.reason = reason
        super().__init__(message, error_code=reason, details={"promo_code": code} if code else None)


# ===========================================
# Validation
# ===========================================


class ValidationError(TicketingError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message,
            error_code="VALIDATION_ERROR",
            details={"field": field} if field else None,
        )


class TicketTypeUnavailable(TicketingError):
    def __init__(self, ticket_type_id: str):
        super().__init__(
            "Selected ticket type is not available for this event",
            error_code="TICKET_TYPE_UNAVAILABLE",
            details={"ticket_type_id": ticket_type_id},
        )


# ===========================================
# Credentials & commit
# ===========================================


class InvalidToken(TicketingError):
    category = ErrorCategory.CREDENTIAL
    status_code = 400

    def __init__(self, message: str = "Invalid or expired ticket credential"):
        super().__init__(message, error_code="INVALID_TOKEN")


class CommitFailed(TicketingError):
    """The registration transaction could not be committed; nothing was written."""

    category = ErrorCategory.COMMIT
    status_code = 503

    def __init__(self, message: str = "Registration could not be completed. Please try again."):
        super().__init__(message, error_code="COMMIT_FAILED")
