from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class Trainer(Base):
    __tablename__ = "trainers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    bio: Mapped[str | None] = mapped_column(Text)
    specialization: Mapped[str] = mapped_column(String(255), default="")
    experience: Mapped[int] = mapped_column(Integer, default=0)
    certification: Mapped[str | None] = mapped_column(String(255))

    user = relationship("User")
    schedules = relationship("ClassSchedule", back_populates="trainer")
