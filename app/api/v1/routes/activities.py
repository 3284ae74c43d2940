from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.api.deps import get_current_user, get_clock, http_error, require_roles
from app.core.errors import DomainError
from app.models.enums import ActivityStatus, UserRole
from app.models.user import User
from app.schemas.activity import (
    ActivityCapacityUpdate, ActivityCreate, ActivityDelay, ActivityOut, ActivityPriceUpdate,
    ActivityReschedule, ActivityStatusUpdate,
)
from app.services import activity_service

router = APIRouter(tags=["activities"])

@router.get("/activities", response_model=list[ActivityOut])
def list_activities(providerId: str | None = None, categoryId: str | None = None,
                    status: ActivityStatus | None = None, view: str | None = None,
                    db: Session = Depends(get_db), clock=Depends(get_clock)):
    try:
        items = activity_service.list_activities(db, provider_id=providerId, category_id=categoryId,
                                                 status=status, view=view, clock=clock)
    except DomainError as e:
        raise http_error(e)
    return [ActivityOut.from_model(a) for a in items]

@router.get("/activities/{activity_id}", response_model=ActivityOut)
def get_activity(activity_id: str, db: Session = Depends(get_db)):
    try:
        return ActivityOut.from_model(activity_service.get_activity(db, activity_id))
    except DomainError as e:
        raise http_error(e)

@router.post("/activities", response_model=ActivityOut, status_code=201)
def create_activity(body: ActivityCreate, db: Session = Depends(get_db), clock=Depends(get_clock),
                    me: User = Depends(require_roles(UserRole.PROVIDER, UserRole.ADMIN))):
    try:
        a = activity_service.create_activity(
            db, me, name=body.name, price=body.price, capacity=body.availableSlots,
            start_date=body.startDate, end_date=body.endDate, description=body.description,
            location=body.location, category_id=body.categoryId, clock=clock,
        )
    except DomainError as e:
        raise http_error(e)
    return ActivityOut.from_model(a)

@router.patch("/activities/{activity_id}/price", response_model=ActivityOut)
def update_price(activity_id: str, body: ActivityPriceUpdate, db: Session = Depends(get_db),
                 clock=Depends(get_clock), me: User = Depends(get_current_user)):
    try:
        return ActivityOut.from_model(activity_service.update_price(db, activity_id, me, body.price, clock=clock))
    except DomainError as e:
        raise http_error(e)

@router.patch("/activities/{activity_id}/capacity", response_model=ActivityOut)
def update_capacity(activity_id: str, body: ActivityCapacityUpdate, db: Session = Depends(get_db),
                    clock=Depends(get_clock), me: User = Depends(get_current_user)):
    try:
        return ActivityOut.from_model(activity_service.set_capacity(db, activity_id, me, body.totalCapacity, clock=clock))
    except DomainError as e:
        raise http_error(e)

@router.patch("/activities/{activity_id}/status", response_model=ActivityOut)
def update_status(activity_id: str, body: ActivityStatusUpdate, db: Session = Depends(get_db),
                  clock=Depends(get_clock), me: User = Depends(require_roles(UserRole.ADMIN))):
    try:
        return ActivityOut.from_model(activity_service.set_status(db, activity_id, me, body.status, clock=clock))
    except DomainError as e:
        raise http_error(e)

@router.post("/activities/{activity_id}/delay", response_model=ActivityOut)
def delay_activity(activity_id: str, body: ActivityDelay, db: Session = Depends(get_db),
                   clock=Depends(get_clock), me: User = Depends(get_current_user)):
    try:
        a = activity_service.delay_activity(
            db, activity_id, me, delayed_date=body.delayedDate,
            rescheduled_start_date=body.rescheduledStartDate, rescheduled_end_date=body.rescheduledEndDate,
            clock=clock,
        )
    except DomainError as e:
        raise http_error(e)
    return ActivityOut.from_model(a)

@router.post("/activities/{activity_id}/reschedule", response_model=ActivityOut)
def reschedule_activity(activity_id: str, body: ActivityReschedule, db: Session = Depends(get_db),
                        clock=Depends(get_clock), me: User = Depends(get_current_user)):
    try:
        a = activity_service.reschedule_activity(db, activity_id, me, body.startDate, body.endDate, clock=clock)
    except DomainError as e:
        raise http_error(e)
    return ActivityOut.from_model(a)
