"""Domain errors raised by the booking and activity services.

Routes turn these into HTTP responses; background jobs log them.
"""


class DomainError(Exception):
    code = "error"
    status_code = 400
    retryable = False

    def __init__(self, message: str | None = None):
        self.message = message or self.code.replace("_", " ")
        super().__init__(self.message)

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class InvalidInput(DomainError):
    code = "invalid_input"
    status_code = 400


class NotFound(DomainError):
    code = "not_found"
    status_code = 404


class Conflict(DomainError):
    code = "conflict"
    status_code = 409


class InsufficientSlots(Conflict):
    code = "insufficient_slots"


class ActivityNotBookable(Conflict):
    code = "activity_not_bookable"


class BookingNotCancelable(Conflict):
    code = "booking_not_cancelable"


class InvalidStatusTransition(Conflict):
    code = "invalid_status_transition"


class Unauthorized(DomainError):
    code = "unauthorized"
    status_code = 403


class StorageError(DomainError):
    # Units of work are atomic, so the whole operation is safe to retry.
    code = "storage_error"
    status_code = 503
    retryable = True
