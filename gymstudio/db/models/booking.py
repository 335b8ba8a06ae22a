from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import DateTime, Enum, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class BookingStatus(str, PyEnum):
    confirmed = "CONFIRMED"
    cancelled = "CANCELLED"
    completed = "COMPLETED"
    no_show = "NO_SHOW"
    waitlisted = "WAITLISTED"


class ClassBooking(Base):
    __tablename__ = "class_bookings"
    __table_args__ = (
        UniqueConstraint("member_id", "class_schedule_id", name="uq_booking_member_schedule"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"))
    class_schedule_id: Mapped[int] = mapped_column(
        ForeignKey("class_schedules.id", ondelete="CASCADE"), index=True
    )
    status: Mapped[BookingStatus] = mapped_column(Enum(BookingStatus), default=BookingStatus.confirmed)
    booked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    member = relationship("Member", back_populates="bookings")
    schedule = relationship("ClassSchedule", back_populates="bookings")
