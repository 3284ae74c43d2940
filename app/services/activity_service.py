import logging
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import as_utc, system_clock
from app.core.errors import Conflict, InvalidInput, InvalidStatusTransition, NotFound, StorageError, Unauthorized
from app.models.activity import Activity
from app.models.enums import ActivityStatus, UserRole
from app.models.user import User
from app.services import activity_store
from app.services.activity_status_service import status_for_dates

logger = logging.getLogger(__name__)

# Statuses an admin may set directly; None means "approve": derive from the clock.
ADMIN_SETTABLE = {
    ActivityStatus.REJECTED,
    ActivityStatus.CANCELLED,
    ActivityStatus.INACTIVE,
    ActivityStatus.ACTIVE,
    ActivityStatus.PENDING,
}


def _money(value) -> Decimal:
    try:
        d = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        raise InvalidInput("price must be a number")
    if d < 0:
        raise InvalidInput("price must be >= 0")
    return d


def _check_dates(start_date: datetime, end_date: datetime) -> tuple[datetime, datetime]:
    start_date, end_date = as_utc(start_date), as_utc(end_date)
    if end_date < start_date:
        raise InvalidInput("endDate must not be before startDate")
    return start_date, end_date


def _require_owner(activity: Activity, actor: User) -> None:
    if actor.role == UserRole.ADMIN:
        return
    if actor.role != UserRole.PROVIDER or actor.id != activity.provider_id:
        raise Unauthorized("only the activity's provider or an admin can change it")


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("storage failure: %s", what)
        raise StorageError(f"could not {what}, please retry") from e


def get_activity(db: Session, activity_id: str) -> Activity:
    activity = activity_store.get_by_id(db, activity_id)
    if not activity:
        raise NotFound("activity not found")
    return activity


def create_activity(
    db: Session,
    provider: User,
    name: str,
    price,
    capacity: int,
    start_date: datetime,
    end_date: datetime,
    description: str = "",
    location: str = "",
    category_id: str | None = None,
    clock=system_clock,
) -> Activity:
    if provider.role not in (UserRole.PROVIDER, UserRole.ADMIN):
        raise Unauthorized("only providers can create activities")
    if not name or not name.strip():
        raise InvalidInput("name is required")
    if capacity < 0:
        raise InvalidInput("capacity must be >= 0")
    start_date, end_date = _check_dates(start_date, end_date)
    now = as_utc(clock.now())
    status = status_for_dates(start_date, end_date, now)
    if status == ActivityStatus.EXPIRED:
        raise InvalidInput("activity has already ended")

    activity = Activity(
        id=str(uuid.uuid4()),
        provider_id=provider.id,
        category_id=category_id,
        name=name.strip(),
        description=description or "",
        location=location or "",
        price=_money(price),
        total_capacity=capacity,
        available_slots=capacity,
        status=status,
        start_date=start_date,
        end_date=end_date,
        created_at=now,
        updated_at=now,
    )
    db.add(activity)
    _commit(db, "create activity")
    db.refresh(activity)
    logger.info("activity %s created by %s as %s", activity.id, provider.id, status.value)
    return activity


def update_price(db: Session, activity_id: str, actor: User, price, clock=system_clock) -> Activity:
    """Existing bookings keep the total_price they were created with."""
    activity = get_activity(db, activity_id)
    _require_owner(activity, actor)
    activity.price = _money(price)
    activity.updated_at = as_utc(clock.now())
    _commit(db, "update price")
    db.refresh(activity)
    return activity


def set_capacity(db: Session, activity_id: str, actor: User, total_capacity: int, clock=system_clock) -> Activity:
    activity = get_activity(db, activity_id)
    _require_owner(activity, actor)
    if total_capacity < 0:
        raise InvalidInput("capacity must be >= 0")
    try:
        ok = activity_store.set_capacity(db, activity_id, total_capacity)
        if not ok:
            db.rollback()
            db.refresh(activity)
            raise Conflict(f"{activity.reserved_slots} slots are already reserved")
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("could not change capacity, please retry") from e
    db.refresh(activity)
    logger.info("activity %s capacity set to %d (%d available)", activity_id, total_capacity, activity.available_slots)
    return activity


def set_status(db: Session, activity_id: str, actor: User, status: ActivityStatus | None, clock=system_clock) -> Activity:
    """Admin moderation. status=None approves: the clock decides Pending/Active/Expired."""
    if actor.role != UserRole.ADMIN:
        raise Unauthorized("only admins can moderate activities")
    activity = get_activity(db, activity_id)
    now = as_utc(clock.now())
    if status is None:
        status = status_for_dates(activity.start_date, activity.end_date, now)
    elif status not in ADMIN_SETTABLE:
        raise InvalidStatusTransition(f"admins cannot set status {status.value}")
    old = activity.status
    try:
        activity_store.update_status(db, activity_id, status, now)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("could not update status, please retry") from e
    db.refresh(activity)
    logger.info("activity %s: %s -> %s by admin %s", activity_id, old.value, activity.status.value, actor.id)
    return activity


def delay_activity(
    db: Session,
    activity_id: str,
    actor: User,
    delayed_date: datetime | None = None,
    rescheduled_start_date: datetime | None = None,
    rescheduled_end_date: datetime | None = None,
    clock=system_clock,
) -> Activity:
    """Hold the activity as Delayed, optionally with tentative new dates. The sweep leaves it alone."""
    activity = get_activity(db, activity_id)
    _require_owner(activity, actor)
    if activity.status in (ActivityStatus.CANCELLED, ActivityStatus.REJECTED, ActivityStatus.EXPIRED):
        raise InvalidStatusTransition(f"cannot delay an activity that is {activity.status.value}")
    tentative = None
    if rescheduled_start_date and rescheduled_end_date:
        tentative = _check_dates(rescheduled_start_date, rescheduled_end_date)
    now = as_utc(clock.now())
    activity.status = ActivityStatus.DELAYED
    activity.delayed_date = as_utc(delayed_date) or now
    if tentative:
        activity.rescheduled_start_date, activity.rescheduled_end_date = tentative
    activity.updated_at = now
    _commit(db, "delay activity")
    db.refresh(activity)
    logger.info("activity %s delayed by %s", activity_id, actor.id)
    return activity


def reschedule_activity(
    db: Session, activity_id: str, actor: User, start_date: datetime, end_date: datetime, clock=system_clock,
) -> Activity:
    """Move the activity to new dates. Clears Delayed or Expired; Cancelled and Rejected stay put."""
    activity = get_activity(db, activity_id)
    _require_owner(activity, actor)
    if activity.status in (ActivityStatus.CANCELLED, ActivityStatus.REJECTED):
        raise InvalidStatusTransition(f"cannot reschedule an activity that is {activity.status.value}")
    start_date, end_date = _check_dates(start_date, end_date)
    now = as_utc(clock.now())
    status = status_for_dates(start_date, end_date, now)
    if status == ActivityStatus.EXPIRED:
        raise InvalidInput("new dates are already in the past")
    activity.rescheduled_start_date = start_date
    activity.rescheduled_end_date = end_date
    activity.start_date = start_date
    activity.end_date = end_date
    activity.status = status
    activity.updated_at = now
    _commit(db, "reschedule activity")
    db.refresh(activity)
    logger.info("activity %s rescheduled to %s..%s (%s)", activity_id, start_date.isoformat(), end_date.isoformat(), status.value)
    return activity


def expected_dates(activity: Activity) -> tuple[datetime, datetime]:
    if activity.status == ActivityStatus.DELAYED:
        return (
            as_utc(activity.rescheduled_start_date or activity.start_date),
            as_utc(activity.rescheduled_end_date or activity.end_date),
        )
    return as_utc(activity.start_date), as_utc(activity.end_date)


def list_activities(
    db: Session,
    provider_id: str | None = None,
    category_id: str | None = None,
    status: ActivityStatus | None = None,
    view: str | None = None,
    clock=system_clock,
) -> list[Activity]:
    """view: 'active' | 'upcoming' | 'expired' filters on dates as of the clock."""
    q = select(Activity)
    if provider_id:
        q = q.where(Activity.provider_id == provider_id)
    if category_id:
        q = q.where(Activity.category_id == category_id)
    if status:
        q = q.where(Activity.status == status)
    now = as_utc(clock.now())
    if view == "active":
        q = q.where(Activity.status == ActivityStatus.ACTIVE, Activity.end_date > now)
    elif view == "upcoming":
        q = q.where(Activity.start_date > now)
    elif view == "expired":
        q = q.where(Activity.end_date < now)
    elif view is not None:
        raise InvalidInput("view must be one of active, upcoming, expired")
    return list(db.scalars(q.order_by(Activity.start_date)))
