import enum

from sqlalchemy import Enum as SAEnum


class ActivityStatus(str, enum.Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    REJECTED = "Rejected"
    COMPLETED = "Completed"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"
    DELAYED = "Delayed"


class BookingStatus(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELED = "Canceled"
    COMPLETED = "Completed"


class PaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class PaymentMethod(str, enum.Enum):
    STRIPE = "Stripe"
    CARD = "Card"
    CASH = "Cash"
    BANK_TRANSFER = "BankTransfer"


class UserRole(str, enum.Enum):
    TOURIST = "Tourist"
    PROVIDER = "Provider"
    ADMIN = "Admin"


# Admission control accepts new bookings only in these states.
BOOKABLE_ACTIVITY_STATUSES = frozenset({ActivityStatus.ACTIVE, ActivityStatus.PENDING})

# The sweep never touches these; a human (or a reschedule) must move them.
SWEEP_HELD_STATUSES = frozenset({
    ActivityStatus.CANCELLED,
    ActivityStatus.EXPIRED,
    ActivityStatus.DELAYED,
    ActivityStatus.REJECTED,
})

CANCELABLE_BOOKING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


def enum_column(enum_cls, length: int = 20) -> SAEnum:
    """Store the enum's value string (e.g. 'Pending') in a plain VARCHAR."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        create_constraint=False,
        length=length,
        values_callable=lambda e: [m.value for m in e],
        validate_strings=True,
    )
