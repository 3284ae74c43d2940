from decimal import Decimal

import pytest

from app.core.errors import InvalidStatusTransition, Unauthorized
from app.models.activity import Activity
from app.models.booking import Booking
from app.models.enums import BookingStatus, PaymentMethod, PaymentStatus, UserRole
from app.models.payment import Payment
from app.services import booking_service, booking_store, payment_service


@pytest.fixture
def booking(db_session, make_activity, tourist, clock):
    activity = make_activity(slots=5, price="30.00")
    return booking_service.create_booking(db_session, activity.id, tourist.id, 2, clock=clock)


def test_paid_confirms_booking_and_mirrors_status(db_session, booking, clock, reload):
    payment_service.record_payment(
        db_session, booking.id, None, PaymentStatus.PAID, PaymentMethod.STRIPE, "pi_123", clock=clock,
    )

    b = reload(Booking, booking.id)
    assert b.status == BookingStatus.CONFIRMED
    assert b.payment_status == PaymentStatus.PAID
    payment = db_session.query(Payment).filter(Payment.booking_id == booking.id).one()
    assert payment.payment_status == PaymentStatus.PAID
    assert payment.amount == Decimal("60.00")
    assert payment.transaction_id == "pi_123"


def test_failed_then_paid_reuses_the_single_payment_row(db_session, booking, tourist, clock, reload):
    payment_service.record_payment(db_session, booking.id, tourist, PaymentStatus.FAILED, clock=clock)
    assert reload(Booking, booking.id).status == BookingStatus.PENDING

    payment_service.record_payment(db_session, booking.id, None, PaymentStatus.PAID, transaction_id="pi_2", clock=clock)

    assert db_session.query(Payment).filter(Payment.booking_id == booking.id).count() == 1
    assert reload(Booking, booking.id).payment_status == PaymentStatus.PAID


def test_refund_only_after_paid(db_session, booking, admin, clock, reload):
    with pytest.raises(InvalidStatusTransition):
        payment_service.record_payment(db_session, booking.id, admin, PaymentStatus.REFUNDED, clock=clock)

    payment_service.record_payment(db_session, booking.id, admin, PaymentStatus.PAID, clock=clock)
    booking_service.cancel_booking(db_session, booking.id, admin, clock=clock)
    payment_service.record_payment(db_session, booking.id, admin, PaymentStatus.REFUNDED, clock=clock)

    b = reload(Booking, booking.id)
    assert (b.status, b.payment_status) == (BookingStatus.CANCELED, PaymentStatus.REFUNDED)
    assert b.payment.payment_status == PaymentStatus.REFUNDED


def test_cannot_pay_for_a_cancelled_booking(db_session, booking, tourist, clock):
    booking_service.cancel_booking(db_session, booking.id, tourist, clock=clock)

    with pytest.raises(InvalidStatusTransition):
        payment_service.record_payment(db_session, booking.id, None, PaymentStatus.PAID, clock=clock)


def test_cancel_committed_after_the_read_wins_over_payment(db_session, session_factory, booking, tourist, clock, reload):
    # This session has already seen the booking as Pending.
    assert db_session.get(Booking, booking.id).status == BookingStatus.PENDING

    other = session_factory()
    try:
        booking_service.cancel_booking(other, booking.id, tourist, clock=clock)
    finally:
        other.close()

    with pytest.raises(InvalidStatusTransition):
        payment_service.record_payment(db_session, booking.id, None, PaymentStatus.PAID, clock=clock)

    b = reload(Booking, booking.id)
    assert (b.status, b.payment_status) == (BookingStatus.CANCELED, PaymentStatus.PENDING)
    assert b.payment is None
    activity = reload(Activity, b.activity_id)
    assert activity.available_slots == activity.total_capacity == 5


def test_payment_status_update_is_conditional_on_the_status_read(db_session, booking):
    assert not booking_store.update_payment_status(
        db_session, booking.id, PaymentStatus.REFUNDED, PaymentStatus.PAID,
    )
    assert booking_store.update_payment_status(
        db_session, booking.id, PaymentStatus.PAID, PaymentStatus.PENDING, confirm=True,
    )
    db_session.commit()
    # A second confirmation read the old Pending state and must not apply.
    assert not booking_store.update_payment_status(
        db_session, booking.id, PaymentStatus.PAID, PaymentStatus.PENDING, confirm=True,
    )


@pytest.mark.parametrize("status", [PaymentStatus.PAID, PaymentStatus.REFUNDED])
def test_tourists_cannot_assert_gateway_outcomes(db_session, booking, tourist, clock, reload, status):
    with pytest.raises(Unauthorized):
        payment_service.record_payment(db_session, booking.id, tourist, status, clock=clock)

    b = reload(Booking, booking.id)
    assert (b.status, b.payment_status) == (BookingStatus.PENDING, PaymentStatus.PENDING)


def test_admin_can_record_a_paid_payment(db_session, booking, admin, clock):
    b = payment_service.record_payment(db_session, booking.id, admin, PaymentStatus.PAID, PaymentMethod.CASH, clock=clock)
    assert (b.status, b.payment_status) == (BookingStatus.CONFIRMED, PaymentStatus.PAID)


def test_other_users_cannot_record_payments(db_session, booking, make_user, clock):
    with pytest.raises(Unauthorized):
        payment_service.record_payment(db_session, booking.id, make_user(UserRole.TOURIST), PaymentStatus.FAILED, clock=clock)
