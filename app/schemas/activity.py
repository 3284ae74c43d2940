from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel
from typing import Optional

from app.models.enums import ActivityStatus
from app.services.activity_service import expected_dates

class ActivityCreate(BaseModel):
    name: str
    description: str = ""
    location: str = ""
    categoryId: Optional[str] = None
    price: Decimal
    availableSlots: int
    startDate: datetime
    endDate: datetime

class ActivityPriceUpdate(BaseModel):
    price: Decimal

class ActivityCapacityUpdate(BaseModel):
    totalCapacity: int

class ActivityStatusUpdate(BaseModel):
    # Omit to approve: status is then derived from the dates.
    status: Optional[ActivityStatus] = None

class ActivityDelay(BaseModel):
    delayedDate: Optional[datetime] = None
    rescheduledStartDate: Optional[datetime] = None
    rescheduledEndDate: Optional[datetime] = None

class ActivityReschedule(BaseModel):
    startDate: datetime
    endDate: datetime

class ActivityOut(BaseModel):
    id: str
    providerId: str
    categoryId: Optional[str] = None
    name: str
    description: str = ""
    location: str = ""
    price: Decimal
    totalCapacity: int
    availableSlots: int
    status: str
    startDate: datetime
    endDate: datetime
    delayedDate: Optional[datetime] = None
    rescheduledStartDate: Optional[datetime] = None
    rescheduledEndDate: Optional[datetime] = None
    expectedStartDate: datetime
    expectedEndDate: datetime
    updatedAt: datetime

    @classmethod
    def from_model(cls, a) -> "ActivityOut":
        expected_start, expected_end = expected_dates(a)
        return cls(
            id=a.id,
            providerId=a.provider_id,
            categoryId=a.category_id,
            name=a.name,
            description=a.description or "",
            location=a.location or "",
            price=a.price,
            totalCapacity=a.total_capacity,
            availableSlots=a.available_slots,
            status=a.status.value,
            startDate=a.start_date,
            endDate=a.end_date,
            delayedDate=a.delayed_date,
            rescheduledStartDate=a.rescheduled_start_date,
            rescheduledEndDate=a.rescheduled_end_date,
            expectedStartDate=expected_start,
            expectedEndDate=expected_end,
            updatedAt=a.updated_at,
        )

class StatusChangeOut(BaseModel):
    activityId: str
    oldStatus: str
    newStatus: str
