from datetime import datetime
from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class ClassSchedule(Base):
    __tablename__ = "class_schedules"
    __table_args__ = (
        Index("ix_class_schedule_trainer_time", "trainer_id", "start_time", "end_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id"))
    trainer_id: Mapped[int] = mapped_column(ForeignKey("trainers.id"))
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    day_of_week: Mapped[str | None] = mapped_column(String(16))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    gym_class = relationship("GymClass", back_populates="schedules")
    trainer = relationship("Trainer", back_populates="schedules")
    bookings = relationship("ClassBooking", back_populates="schedule")
