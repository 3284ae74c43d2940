"""Time-driven activity status transitions.

A sweep derives each activity's status from the clock and its dates:

    end_date < now               -> Expired
    start_date <= now <= end_date -> Active
    start_date > now             -> Pending

Cancelled, Expired, Delayed and Rejected activities are held: only an explicit
admin or provider action moves them. Every other status follows the dates.
The sweep is a pure function of wall-clock time, so a skipped or late tick
loses nothing and running it twice with the same `now` changes nothing.
"""
import logging
from datetime import datetime
from typing import NamedTuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import as_utc, system_clock
from app.core.errors import StorageError
from app.models.activity import Activity
from app.models.booking import Booking
from app.models.enums import ActivityStatus, BookingStatus, PaymentStatus, SWEEP_HELD_STATUSES
from app.services import activity_store

logger = logging.getLogger(__name__)


class StatusChange(NamedTuple):
    activity_id: str
    old_status: ActivityStatus
    new_status: ActivityStatus


def status_for_dates(start_date: datetime, end_date: datetime, now: datetime) -> ActivityStatus:
    start_date, end_date, now = as_utc(start_date), as_utc(end_date), as_utc(now)
    if end_date < now:
        return ActivityStatus.EXPIRED
    if start_date <= now:
        return ActivityStatus.ACTIVE
    return ActivityStatus.PENDING


def next_status(status: ActivityStatus, start_date: datetime, end_date: datetime, now: datetime) -> ActivityStatus | None:
    """Status the sweep should move to, or None when nothing changes."""
    if status in SWEEP_HELD_STATUSES:
        return None
    target = status_for_dates(start_date, end_date, now)
    return target if target != status else None


def sweep_once(db: Session, now: datetime | None = None, clock=system_clock) -> list[StatusChange]:
    """Run one pass over all activities and persist changes to the non-held ones.

    A failure on one activity is logged and skipped; a failure to load the
    activity set raises StorageError and the next tick retries.
    """
    now = as_utc(now or clock.now())
    try:
        snapshot = [(a.id, a.status, a.start_date, a.end_date) for a in activity_store.get_all(db)]
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"could not load activities: {e}") from e

    changes: list[StatusChange] = []
    failed = 0
    for activity_id, status, start_date, end_date in snapshot:
        target = next_status(status, start_date, end_date, now)
        if target is None:
            continue
        try:
            # Conditional on the status we read so a concurrent admin change wins.
            if activity_store.update_status(db, activity_id, target, now, expected=status):
                db.commit()
                changes.append(StatusChange(activity_id, status, target))
                logger.info("activity %s: %s -> %s", activity_id, status.value, target.value)
            else:
                db.rollback()
        except SQLAlchemyError:
            db.rollback()
            failed += 1
            logger.exception("failed to update status of activity %s", activity_id)

    completed = complete_finished_bookings(db, now)
    logger.info(
        "activity sweep at %s: %d scanned, %d changed, %d failed, %d bookings completed",
        now.isoformat(), len(snapshot), len(changes), failed, completed,
    )
    return changes


def complete_finished_bookings(db: Session, now: datetime) -> int:
    """Confirmed, paid bookings whose activity has ended become Completed."""
    ended = select(Activity.id).where(Activity.end_date < now)
    stmt = (
        update(Booking)
        .where(
            Booking.status == BookingStatus.CONFIRMED,
            Booking.payment_status == PaymentStatus.PAID,
            Booking.activity_id.in_(ended),
        )
        .values(status=BookingStatus.COMPLETED, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    try:
        count = db.execute(stmt).rowcount
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("failed to complete finished bookings")
        return 0
    return count
