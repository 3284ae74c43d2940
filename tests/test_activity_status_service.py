from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import StorageError
from app.models.activity import Activity
from app.models.booking import Booking
from app.models.enums import ActivityStatus, BookingStatus, PaymentStatus
from app.services import activity_store
from app.services.activity_status_service import next_status, status_for_dates, sweep_once

from conftest import NOW


class TestNextStatus:
    start = NOW + timedelta(days=1)
    end = NOW + timedelta(days=2)

    def test_upcoming_is_pending(self):
        assert status_for_dates(self.start, self.end, NOW) == ActivityStatus.PENDING

    def test_running_is_active_including_bounds(self):
        assert status_for_dates(self.start, self.end, self.start) == ActivityStatus.ACTIVE
        assert status_for_dates(self.start, self.end, self.end) == ActivityStatus.ACTIVE

    def test_ended_is_expired(self):
        assert status_for_dates(self.start, self.end, self.end + timedelta(seconds=1)) == ActivityStatus.EXPIRED

    def test_no_change_returns_none(self):
        assert next_status(ActivityStatus.PENDING, self.start, self.end, NOW) is None

    @pytest.mark.parametrize("held", [
        ActivityStatus.CANCELLED, ActivityStatus.EXPIRED, ActivityStatus.DELAYED, ActivityStatus.REJECTED,
    ])
    def test_held_statuses_never_move(self, held):
        for now in (NOW, self.start + timedelta(hours=1), self.end + timedelta(days=5)):
            assert next_status(held, self.start, self.end, now) is None

    def test_inactive_follows_the_dates(self):
        assert next_status(ActivityStatus.INACTIVE, self.start, self.end, self.start - timedelta(hours=1)) == ActivityStatus.PENDING
        assert next_status(ActivityStatus.INACTIVE, self.start, self.end, self.start + timedelta(hours=1)) == ActivityStatus.ACTIVE
        assert next_status(ActivityStatus.INACTIVE, self.start, self.end, self.end + timedelta(hours=1)) == ActivityStatus.EXPIRED

    def test_naive_dates_are_treated_as_utc(self):
        naive_start = self.start.replace(tzinfo=None)
        naive_end = self.end.replace(tzinfo=None)
        assert next_status(ActivityStatus.PENDING, naive_start, naive_end, self.start + timedelta(hours=2)) == ActivityStatus.ACTIVE


def test_pending_becomes_active_once_started(db_session, make_activity, reload):
    a = make_activity(start=NOW + timedelta(days=1), end=NOW + timedelta(days=2))

    changes = sweep_once(db_session, now=NOW + timedelta(days=1, hours=12))

    assert [(c.activity_id, c.old_status, c.new_status) for c in changes] == [
        (a.id, ActivityStatus.PENDING, ActivityStatus.ACTIVE)
    ]
    fresh = reload(Activity, a.id)
    assert fresh.status == ActivityStatus.ACTIVE
    assert fresh.updated_at.replace(tzinfo=None) == (NOW + timedelta(days=1, hours=12)).replace(tzinfo=None)


def test_active_becomes_expired_after_end(db_session, make_activity, reload):
    a = make_activity(start=NOW - timedelta(days=1), end=NOW - timedelta(hours=1), status=ActivityStatus.ACTIVE)

    sweep_once(db_session, now=NOW)

    assert reload(Activity, a.id).status == ActivityStatus.EXPIRED


def test_active_activity_moved_to_future_goes_back_to_pending(db_session, make_activity, reload):
    a = make_activity(start=NOW + timedelta(days=3), status=ActivityStatus.ACTIVE)

    sweep_once(db_session, now=NOW)

    assert reload(Activity, a.id).status == ActivityStatus.PENDING


def test_sweep_is_idempotent(db_session, make_activity):
    make_activity(start=NOW - timedelta(hours=1), end=NOW + timedelta(hours=1))
    make_activity(start=NOW - timedelta(days=2), end=NOW - timedelta(days=1), status=ActivityStatus.ACTIVE)

    first = sweep_once(db_session, now=NOW)
    second = sweep_once(db_session, now=NOW)

    assert len(first) == 2
    assert second == []


@pytest.mark.parametrize("initial", [ActivityStatus.PENDING, ActivityStatus.ACTIVE, ActivityStatus.INACTIVE, ActivityStatus.COMPLETED])
@pytest.mark.parametrize("t1,t2", [
    (timedelta(hours=-1), timedelta(days=1, hours=2)),
    (timedelta(days=1, hours=2), timedelta(days=3)),
    (timedelta(hours=1), timedelta(days=3)),
    (timedelta(days=1), timedelta(days=2)),
])
def test_two_sweeps_equal_one_sweep_at_the_later_time(db_session, make_activity, reload, initial, t1, t2):
    start, end = NOW + timedelta(days=1), NOW + timedelta(days=2)
    twice = make_activity(start=start, end=end, status=initial)
    sweep_once(db_session, now=NOW + t1)
    sweep_once(db_session, now=NOW + t2)

    once = make_activity(start=start, end=end, status=initial)
    sweep_once(db_session, now=NOW + t2)

    assert reload(Activity, once.id).status == reload(Activity, twice.id).status


@pytest.mark.parametrize("status", [
    ActivityStatus.PENDING, ActivityStatus.ACTIVE, ActivityStatus.INACTIVE, ActivityStatus.COMPLETED,
])
def test_ended_activities_always_expire(db_session, make_activity, reload, status):
    a = make_activity(start=NOW - timedelta(days=3), end=NOW - timedelta(seconds=1), status=status)

    sweep_once(db_session, now=NOW)

    assert reload(Activity, a.id).status == ActivityStatus.EXPIRED



def test_running_inactive_activity_becomes_active(db_session, make_activity, reload):
    a = make_activity(start=NOW - timedelta(hours=1), end=NOW + timedelta(hours=5), status=ActivityStatus.INACTIVE)

    changes = sweep_once(db_session, now=NOW)

    assert [(c.old_status, c.new_status) for c in changes] == [(ActivityStatus.INACTIVE, ActivityStatus.ACTIVE)]
    assert reload(Activity, a.id).status == ActivityStatus.ACTIVE


@pytest.mark.parametrize("status", [ActivityStatus.CANCELLED, ActivityStatus.DELAYED, ActivityStatus.REJECTED])
def test_held_activities_are_left_alone(db_session, make_activity, reload, status):
    a = make_activity(start=NOW - timedelta(days=3), end=NOW - timedelta(days=1), status=status)

    assert sweep_once(db_session, now=NOW) == []
    assert reload(Activity, a.id).status == status


def test_failure_on_one_activity_does_not_stop_the_sweep(db_session, make_activity, reload, monkeypatch):
    broken = make_activity(start=NOW - timedelta(hours=1))
    fine = make_activity(start=NOW - timedelta(hours=1))
    real_update = activity_store.update_status

    def flaky_update(db, activity_id, *args, **kwargs):
        if activity_id == broken.id:
            raise OperationalError("UPDATE activities", {}, Exception("connection reset"))
        return real_update(db, activity_id, *args, **kwargs)

    monkeypatch.setattr(activity_store, "update_status", flaky_update)

    changes = sweep_once(db_session, now=NOW)

    assert [c.activity_id for c in changes] == [fine.id]
    assert reload(Activity, fine.id).status == ActivityStatus.ACTIVE
    assert reload(Activity, broken.id).status == ActivityStatus.PENDING


def test_load_failure_raises_storage_error(db_session, monkeypatch):
    def boom(db):
        raise OperationalError("SELECT activities", {}, Exception("db down"))

    monkeypatch.setattr(activity_store, "get_all", boom)

    with pytest.raises(StorageError) as exc:
        sweep_once(db_session, now=NOW)
    assert exc.value.retryable


def test_status_update_is_conditional_on_the_status_read(db_session, make_activity, reload):
    a = make_activity(start=NOW - timedelta(hours=1))
    # Admin cancels after the sweep read the row as Pending.
    assert activity_store.update_status(db_session, a.id, ActivityStatus.CANCELLED, NOW)
    db_session.commit()

    assert not activity_store.update_status(db_session, a.id, ActivityStatus.ACTIVE, NOW, expected=ActivityStatus.PENDING)
    db_session.commit()
    assert reload(Activity, a.id).status == ActivityStatus.CANCELLED


def test_status_update_skips_rows_already_in_target_status(db_session, make_activity):
    a = make_activity(status=ActivityStatus.PENDING)
    assert not activity_store.update_status(db_session, a.id, ActivityStatus.PENDING, NOW)


def test_sweep_completes_paid_bookings_of_ended_activities(db_session, make_activity, tourist, reload):
    ended = make_activity(start=NOW - timedelta(days=2), end=NOW - timedelta(days=1), status=ActivityStatus.ACTIVE)
    running = make_activity(start=NOW - timedelta(hours=1), end=NOW + timedelta(hours=5))

    def book(activity, status, payment_status):
        b = Booking(
            id=f"{activity.id[:8]}-{status.value}-{payment_status.value}",
            activity_id=activity.id, user_id=tourist.id, booking_date=NOW, number_of_people=1,
            total_price=Decimal("50.00"), status=status, payment_status=payment_status,
        )
        db_session.add(b)
        db_session.commit()
        return b.id

    paid = book(ended, BookingStatus.CONFIRMED, PaymentStatus.PAID)
    unpaid = book(ended, BookingStatus.PENDING, PaymentStatus.PENDING)
    still_running = book(running, BookingStatus.CONFIRMED, PaymentStatus.PAID)

    sweep_once(db_session, now=NOW)

    assert reload(Booking, paid).status == BookingStatus.COMPLETED
    assert reload(Booking, unpaid).status == BookingStatus.PENDING
    assert reload(Booking, still_running).status == BookingStatus.CONFIRMED
