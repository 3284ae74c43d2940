from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel
from typing import Optional

from app.models.enums import PaymentMethod, PaymentStatus

class BookingCreate(BaseModel):
    activityId: str
    numberOfPeople: int = 1
    bookingDate: Optional[datetime] = None

class BookingOut(BaseModel):
    id: str
    activityId: str
    userId: str
    bookingDate: datetime
    numberOfPeople: int
    totalPrice: Decimal
    status: str
    paymentStatus: str
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_model(cls, b) -> "BookingOut":
        return cls(
            id=b.id,
            activityId=b.activity_id,
            userId=b.user_id,
            bookingDate=b.booking_date,
            numberOfPeople=b.number_of_people,
            totalPrice=b.total_price,
            status=b.status.value,
            paymentStatus=b.payment_status.value,
            createdAt=b.created_at,
            updatedAt=b.updated_at,
        )

class PaymentRecord(BaseModel):
    bookingId: str
    status: PaymentStatus
    paymentMethod: PaymentMethod = PaymentMethod.STRIPE
    transactionId: Optional[str] = None
