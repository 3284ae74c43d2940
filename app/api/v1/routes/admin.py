from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.api.deps import get_clock, http_error, require_roles
from app.core.errors import DomainError
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.activity import StatusChangeOut
from app.services.activity_status_service import sweep_once

router = APIRouter(tags=["admin"])

@router.post("/admin/sweep", response_model=list[StatusChangeOut])
def force_sweep(db: Session = Depends(get_db), clock=Depends(get_clock),
                me: User = Depends(require_roles(UserRole.ADMIN))):
    """Force refresh: run one status sweep now instead of waiting for the next tick."""
    try:
        changes = sweep_once(db, clock=clock)
    except DomainError as e:
        raise http_error(e)
    return [StatusChangeOut(activityId=c.activity_id, oldStatus=c.old_status.value, newStatus=c.new_status.value)
            for c in changes]
