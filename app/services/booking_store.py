from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.models.booking import Booking
from app.models.enums import BookingStatus, PaymentStatus


def create(db: Session, booking: Booking) -> Booking:
    db.add(booking)
    db.flush()
    return booking


def get_by_id(db: Session, booking_id: str) -> Booking | None:
    return db.get(Booking, booking_id)


def list_for_user(db: Session, user_id: str) -> list[Booking]:
    return list(db.scalars(select(Booking).where(Booking.user_id == user_id).order_by(Booking.created_at.desc())))


def list_for_activity(db: Session, activity_id: str) -> list[Booking]:
    return list(db.scalars(select(Booking).where(Booking.activity_id == activity_id).order_by(Booking.created_at.desc())))


def update_status(
    db: Session,
    booking_id: str,
    status: BookingStatus,
    from_statuses: Iterable[BookingStatus] | None = None,
    updated_at: datetime | None = None,
) -> bool:
    stmt = (
        update(Booking)
        .where(Booking.id == booking_id, Booking.status != status)
        .values(status=status, updated_at=updated_at or datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if from_statuses is not None:
        stmt = stmt.where(Booking.status.in_(list(from_statuses)))
    return db.execute(stmt).rowcount == 1


def update_payment_status(
    db: Session,
    booking_id: str,
    payment_status: PaymentStatus,
    from_payment_status: PaymentStatus,
    confirm: bool = False,
    updated_at: datetime | None = None,
) -> bool:
    """Move payment_status off the value that was read; with confirm, also Pending -> Confirmed in the same row update."""
    values = {"payment_status": payment_status, "updated_at": updated_at or datetime.now(timezone.utc)}
    stmt = update(Booking).where(Booking.id == booking_id, Booking.payment_status == from_payment_status)
    if confirm:
        stmt = stmt.where(Booking.status == BookingStatus.PENDING)
        values["status"] = BookingStatus.CONFIRMED
    stmt = stmt.values(**values).execution_options(synchronize_session=False)
    return db.execute(stmt).rowcount == 1
