from decimal import Decimal
from sqlalchemy import String, Integer, DateTime, Numeric, ForeignKey, CheckConstraint
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime, timezone
from app.db.session import Base
from app.models.enums import BookingStatus, PaymentStatus, enum_column

MAX_PEOPLE_PER_BOOKING = 50

class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint(f"number_of_people BETWEEN 1 AND {MAX_PEOPLE_PER_BOOKING}", name="ck_bookings_people_range"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    activity_id: Mapped[str] = mapped_column(String(36), ForeignKey("activities.id"), index=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)  # tourist

    booking_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    number_of_people: Mapped[int] = mapped_column(Integer, default=1)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))  # frozen at creation

    status: Mapped[BookingStatus] = mapped_column(enum_column(BookingStatus), index=True, default=BookingStatus.PENDING)
    payment_status: Mapped[PaymentStatus] = mapped_column(enum_column(PaymentStatus), default=PaymentStatus.PENDING)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    payment: Mapped[Optional["Payment"]] = relationship(
        "Payment", back_populates="booking", uselist=False, cascade="all, delete-orphan", passive_deletes=True,
    )
