"""Booking admission control.

Creating a booking reserves slots with one conditional UPDATE on the activity
row and inserts the booking in the same transaction; cancelling flips the
booking status conditionally and returns the slots in the same transaction.
Either both writes commit or neither does.
"""
import logging
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import as_utc, system_clock
from app.core.errors import (
    ActivityNotBookable, BookingNotCancelable, DomainError, InsufficientSlots,
    InvalidInput, NotFound, StorageError, Unauthorized,
)
from app.models.booking import MAX_PEOPLE_PER_BOOKING, Booking
from app.models.enums import (
    BOOKABLE_ACTIVITY_STATUSES, CANCELABLE_BOOKING_STATUSES, BookingStatus, PaymentStatus, UserRole,
)
from app.models.user import User
from app.services import activity_store, booking_store

logger = logging.getLogger(__name__)


def validate_party_size(number_of_people: int) -> None:
    if not isinstance(number_of_people, int) or isinstance(number_of_people, bool):
        raise InvalidInput("numberOfPeople must be an integer")
    if not 1 <= number_of_people <= MAX_PEOPLE_PER_BOOKING:
        raise InvalidInput(f"numberOfPeople must be between 1 and {MAX_PEOPLE_PER_BOOKING}")


def create_booking(
    db: Session,
    activity_id: str,
    user_id: str,
    number_of_people: int,
    booking_date: datetime | None = None,
    clock=system_clock,
) -> Booking:
    validate_party_size(number_of_people)
    now = as_utc(clock.now())

    try:
        activity = activity_store.get_by_id(db, activity_id)
        if not activity:
            raise NotFound("activity not found")

        # Serialization point: the row is write-locked from here until commit.
        if not activity_store.conditional_decrement_slots(db, activity_id, number_of_people, now=now):
            db.refresh(activity)
            if activity.status not in BOOKABLE_ACTIVITY_STATUSES or as_utc(activity.end_date) < now:
                raise ActivityNotBookable(f"activity is {activity.status.value} and not open for booking")
            raise InsufficientSlots(
                f"only {activity.available_slots} slots left, {number_of_people} requested"
            )

        # Price read under the row lock, frozen on the booking.
        db.refresh(activity)
        total = (Decimal(activity.price) * number_of_people).quantize(Decimal("0.01"))

        booking = booking_store.create(db, Booking(
            id=str(uuid.uuid4()),
            activity_id=activity_id,
            user_id=user_id,
            booking_date=as_utc(booking_date) or now,
            number_of_people=number_of_people,
            total_price=total,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            created_at=now,
            updated_at=now,
        ))
        db.commit()
    except DomainError as e:
        db.rollback()
        logger.warning("booking rejected for activity %s (%d people): %s", activity_id, number_of_people, e.code)
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("storage failure creating booking for activity %s", activity_id)
        raise StorageError("could not create booking, please retry") from e

    db.refresh(booking)
    logger.info("booking %s reserved %d slots on activity %s", booking.id, number_of_people, activity_id)
    return booking


def is_party_to(actor: User, booking: Booking, provider_id: str | None) -> bool:
    if actor.role == UserRole.ADMIN:
        return True
    if actor.id == booking.user_id:
        return True
    return provider_id is not None and actor.id == provider_id


def cancel_booking(db: Session, booking_id: str, actor: User, clock=system_clock) -> Booking:
    now = as_utc(clock.now())
    try:
        booking = booking_store.get_by_id(db, booking_id)
        if not booking:
            raise NotFound("booking not found")
        activity = activity_store.get_by_id(db, booking.activity_id)
        if not is_party_to(actor, booking, activity.provider_id if activity else None):
            raise Unauthorized("only the tourist, the activity's provider or an admin can cancel this booking")

        if not booking_store.update_status(
            db, booking_id, BookingStatus.CANCELED, from_statuses=CANCELABLE_BOOKING_STATUSES, updated_at=now,
        ):
            db.refresh(booking)
            raise BookingNotCancelable(f"booking is {booking.status.value}")

        activity_store.conditional_increment_slots(db, booking.activity_id, booking.number_of_people)
        db.commit()
    except DomainError as e:
        db.rollback()
        logger.warning("cancel rejected for booking %s by %s: %s", booking_id, actor.id, e.code)
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("storage failure cancelling booking %s", booking_id)
        raise StorageError("could not cancel booking, please retry") from e

    db.refresh(booking)
    logger.info("booking %s cancelled by %s, %d slots returned", booking_id, actor.id, booking.number_of_people)
    return booking


def get_booking(db: Session, booking_id: str, actor: User) -> Booking:
    booking = booking_store.get_by_id(db, booking_id)
    if not booking:
        raise NotFound("booking not found")
    activity = activity_store.get_by_id(db, booking.activity_id)
    if not is_party_to(actor, booking, activity.provider_id if activity else None):
        raise Unauthorized("not allowed to view this booking")
    return booking
