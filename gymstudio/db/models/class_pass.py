from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum, ForeignKey, Integer, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class PassStatus(str, PyEnum):
    active = "ACTIVE"
    expired = "EXPIRED"


class MemberClassPass(Base):
    __tablename__ = "member_class_passes"
    __table_args__ = (
        CheckConstraint("remaining_credits >= 0", name="ck_pass_remaining_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"), index=True)
    class_package_id: Mapped[int] = mapped_column(ForeignKey("class_packages.id"))
    purchased_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    total_credits: Mapped[int] = mapped_column(Integer, default=0)
    remaining_credits: Mapped[int] = mapped_column(Integer, default=0)
    monthly_unlimited: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[PassStatus] = mapped_column(Enum(PassStatus), default=PassStatus.active)

    package = relationship("ClassPackage", back_populates="passes")
