from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import DateTime, Enum, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class WaitlistStatus(str, PyEnum):
    waiting = "WAITING"
    notified = "NOTIFIED"
    booked = "BOOKED"
    cancelled = "CANCELLED"


ACTIVE_WAITLIST_STATUSES = (WaitlistStatus.waiting, WaitlistStatus.notified)


class ClassWaitlist(Base):
    __tablename__ = "class_waitlist"
    __table_args__ = (
        UniqueConstraint("member_id", "class_schedule_id", name="uq_waitlist_member_schedule"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"))
    class_schedule_id: Mapped[int] = mapped_column(
        ForeignKey("class_schedules.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[WaitlistStatus] = mapped_column(Enum(WaitlistStatus), default=WaitlistStatus.waiting)
    notified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    member = relationship("Member")
    schedule = relationship("ClassSchedule")
