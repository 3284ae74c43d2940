"""Single update path for payment state.

Payment.payment_status and Booking.payment_status are only ever written here,
together, in one transaction. Paid and Refunded come from the gateway webhook
(actor None) or an admin; a tourist can only report a failed attempt.
"""
import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import as_utc, system_clock
from app.core.errors import InvalidStatusTransition, NotFound, StorageError, Unauthorized
from app.models.booking import Booking
from app.models.enums import BookingStatus, PaymentMethod, PaymentStatus, UserRole
from app.models.payment import Payment
from app.models.user import User
from app.services import booking_store

logger = logging.getLogger(__name__)

PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),
}

TOURIST_REPORTABLE = {PaymentStatus.FAILED}


def _check_actor(actor: User | None, booking: Booking, status: PaymentStatus) -> None:
    if actor is None or actor.role == UserRole.ADMIN:
        return
    if actor.id != booking.user_id:
        raise Unauthorized("only the booking's tourist or an admin can record payments")
    if status not in TOURIST_REPORTABLE:
        raise Unauthorized(f"{status.value} must come from the payment gateway")


def record_payment(
    db: Session,
    booking_id: str,
    actor: User | None,
    status: PaymentStatus,
    method: PaymentMethod = PaymentMethod.STRIPE,
    transaction_id: str | None = None,
    clock=system_clock,
) -> Booking:
    booking = booking_store.get_by_id(db, booking_id)
    if not booking:
        raise NotFound("booking not found")
    _check_actor(actor, booking, status)

    current = booking.payment_status
    if status not in PAYMENT_TRANSITIONS[current]:
        raise InvalidStatusTransition(f"payment cannot go from {current.value} to {status.value}")
    confirm = status == PaymentStatus.PAID
    if confirm and booking.status != BookingStatus.PENDING:
        raise InvalidStatusTransition(f"cannot take payment for a {booking.status.value} booking")

    now = as_utc(clock.now())
    try:
        # Conditional on what was read: a cancel or another payment committed since then wins.
        if not booking_store.update_payment_status(db, booking_id, status, current, confirm=confirm, updated_at=now):
            db.rollback()
            logger.warning("booking %s changed while recording payment %s", booking_id, status.value)
            raise InvalidStatusTransition("booking changed concurrently, payment not recorded")

        payment = booking.payment
        if payment is None:
            payment = Payment(
                id=str(uuid.uuid4()),
                booking_id=booking.id,
                amount=booking.total_price,
                created_at=now,
            )
            booking.payment = payment
        payment.payment_method = method
        payment.payment_status = status
        if transaction_id:
            payment.transaction_id = transaction_id
        payment.updated_at = now
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("storage failure recording payment for booking %s", booking_id)
        raise StorageError("could not record payment, please retry") from e
    db.refresh(booking)
    logger.info("booking %s payment %s -> %s (%s)", booking_id, current.value, status.value, transaction_id or "-")
    return booking
