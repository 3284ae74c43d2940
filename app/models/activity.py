from decimal import Decimal
from sqlalchemy import String, Integer, DateTime, Numeric, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from app.db.session import Base
from app.models.enums import ActivityStatus, enum_column

class Activity(Base):
    __tablename__ = "activities"
    __table_args__ = (
        CheckConstraint("available_slots >= 0", name="ck_activities_slots_non_negative"),
        CheckConstraint("available_slots <= total_capacity", name="ck_activities_slots_within_capacity"),
        CheckConstraint("end_date >= start_date", name="ck_activities_dates_ordered"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    provider_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    category_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("categories.id"), index=True, nullable=True)

    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text, default="")
    location: Mapped[str] = mapped_column(String(200), default="")
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))

    # total_capacity only changes through an explicit capacity edit; bookings move available_slots.
    total_capacity: Mapped[int] = mapped_column(Integer)
    available_slots: Mapped[int] = mapped_column(Integer)

    status: Mapped[ActivityStatus] = mapped_column(enum_column(ActivityStatus), index=True, default=ActivityStatus.PENDING)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    delayed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rescheduled_start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rescheduled_end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def reserved_slots(self) -> int:
        return self.total_capacity - self.available_slots
