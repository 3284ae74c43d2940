from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.api.deps import get_current_user, get_clock, http_error, require_roles
from app.core.errors import DomainError, Unauthorized
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.booking import BookingCreate, BookingOut
from app.services import activity_service, booking_service, booking_store

router = APIRouter(tags=["bookings"])

@router.post("/bookings", response_model=BookingOut, status_code=201)
def create_booking(body: BookingCreate, db: Session = Depends(get_db), clock=Depends(get_clock),
                   me: User = Depends(require_roles(UserRole.TOURIST, UserRole.ADMIN))):
    try:
        booking = booking_service.create_booking(
            db, body.activityId, me.id, body.numberOfPeople, booking_date=body.bookingDate, clock=clock,
        )
    except DomainError as e:
        raise http_error(e)
    return BookingOut.from_model(booking)

@router.get("/bookings/me", response_model=list[BookingOut])
def my_bookings(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    return [BookingOut.from_model(b) for b in booking_store.list_for_user(db, me.id)]

@router.get("/activities/{activity_id}/bookings", response_model=list[BookingOut])
def activity_bookings(activity_id: str, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    try:
        activity = activity_service.get_activity(db, activity_id)
    except DomainError as e:
        raise http_error(e)
    if me.role != UserRole.ADMIN and me.id != activity.provider_id:
        raise http_error(Unauthorized("only the provider or an admin can list bookings"))
    return [BookingOut.from_model(b) for b in booking_store.list_for_activity(db, activity_id)]

@router.get("/bookings/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: str, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    try:
        return BookingOut.from_model(booking_service.get_booking(db, booking_id, me))
    except DomainError as e:
        raise http_error(e)

@router.post("/bookings/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(booking_id: str, db: Session = Depends(get_db), clock=Depends(get_clock),
                   me: User = Depends(get_current_user)):
    try:
        return BookingOut.from_model(booking_service.cancel_booking(db, booking_id, me, clock=clock))
    except DomainError as e:
        raise http_error(e)
