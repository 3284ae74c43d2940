import hashlib
import hmac

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.api.deps import get_current_user, get_clock, http_error
from app.core.config import settings
from app.core.errors import DomainError
from app.models.user import User
from app.schemas.booking import BookingOut, PaymentRecord
from app.services import payment_service

router = APIRouter(tags=["payments"])


def _verify_webhook_signature(body: bytes, signature: str | None) -> bool:
    """X-Signature: sha256=<hex HMAC-SHA256 of the raw body keyed with PAYMENT_WEBHOOK_SECRET>."""
    secret = settings.PAYMENT_WEBHOOK_SECRET
    if not secret or not signature:
        return False
    received = signature.strip()
    if received.startswith("sha256="):
        received = received[len("sha256="):]
    computed = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(computed, received)


# Tourists report a declined attempt here; admins can record any transition.
@router.post("/payments/confirm", response_model=BookingOut)
def confirm_payment(body: PaymentRecord, db: Session = Depends(get_db), clock=Depends(get_clock),
                    me: User = Depends(get_current_user)):
    try:
        booking = payment_service.record_payment(
            db, body.bookingId, me, body.status, method=body.paymentMethod,
            transaction_id=body.transactionId, clock=clock,
        )
    except DomainError as e:
        raise http_error(e)
    return BookingOut.from_model(booking)


# Called by the payment gateway once an intent succeeds, fails or is refunded.
@router.post("/payments/webhook", response_model=BookingOut)
async def payment_webhook(req: Request, db: Session = Depends(get_db), clock=Depends(get_clock)):
    body = await req.body()
    if not _verify_webhook_signature(body, req.headers.get("x-signature")):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")
    try:
        event = PaymentRecord.model_validate_json(body)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail="Invalid webhook payload") from e
    try:
        booking = payment_service.record_payment(
            db, event.bookingId, None, event.status, method=event.paymentMethod,
            transaction_id=event.transactionId, clock=clock,
        )
    except DomainError as e:
        raise http_error(e)
    return BookingOut.from_model(booking)
