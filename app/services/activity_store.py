"""Activity persistence primitives.

Every slot mutation is a single conditional UPDATE so concurrent requests
serialize on the row in the database, not in process memory. Nothing here
commits; callers own the transaction.
"""
from datetime import datetime
from typing import Iterable

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from app.models.activity import Activity
from app.models.enums import ActivityStatus, BOOKABLE_ACTIVITY_STATUSES


def get_by_id(db: Session, activity_id: str) -> Activity | None:
    return db.get(Activity, activity_id)


def get_all(db: Session) -> list[Activity]:
    return list(db.scalars(select(Activity).order_by(Activity.created_at)))


def conditional_decrement_slots(db: Session, activity_id: str, n: int, now: datetime | None = None) -> bool:
    """Reserve n slots if the activity is bookable and has room. True when the row changed."""
    stmt = (
        update(Activity)
        .where(
            Activity.id == activity_id,
            Activity.available_slots >= n,
            Activity.status.in_(list(BOOKABLE_ACTIVITY_STATUSES)),
        )
        .values(available_slots=Activity.available_slots - n)
        .execution_options(synchronize_session=False)
    )
    if now is not None:
        stmt = stmt.where(Activity.end_date >= now)
    return db.execute(stmt).rowcount == 1


def conditional_increment_slots(db: Session, activity_id: str, n: int, cap: int | None = None) -> bool:
    """Return n slots, clamped to cap (defaults to the activity's total_capacity)."""
    limit = Activity.total_capacity if cap is None else cap
    raised = Activity.available_slots + n
    stmt = (
        update(Activity)
        .where(Activity.id == activity_id)
        .values(available_slots=case((raised > limit, limit), else_=raised))
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount == 1


def set_capacity(db: Session, activity_id: str, total_capacity: int) -> bool:
    """Change capacity, keeping already-reserved slots reserved. False if it would drop below them."""
    stmt = (
        update(Activity)
        .where(
            Activity.id == activity_id,
            Activity.total_capacity - Activity.available_slots <= total_capacity,
        )
        .values(
            available_slots=Activity.available_slots + (total_capacity - Activity.total_capacity),
            total_capacity=total_capacity,
        )
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount == 1


def update_status(
    db: Session,
    activity_id: str,
    status: ActivityStatus,
    updated_at: datetime,
    expected: ActivityStatus | Iterable[ActivityStatus] | None = None,
) -> bool:
    """Set status only if it differs (and, when given, only from the expected old status)."""
    stmt = (
        update(Activity)
        .where(Activity.id == activity_id, Activity.status != status)
        .values(status=status, updated_at=updated_at)
        .execution_options(synchronize_session=False)
    )
    if isinstance(expected, ActivityStatus):
        stmt = stmt.where(Activity.status == expected)
    elif expected is not None:
        stmt = stmt.where(Activity.status.in_(list(expected)))
    return db.execute(stmt).rowcount == 1
