from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class ClassPassType(str, PyEnum):
    bundle = "BUNDLE"
    monthly = "MONTHLY"


class ClassPackage(Base):
    __tablename__ = "class_packages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    pass_type: Mapped[ClassPassType] = mapped_column(Enum(ClassPassType), default=ClassPassType.bundle)
    class_id: Mapped[int | None] = mapped_column(ForeignKey("classes.id"))
    credits_included: Mapped[int] = mapped_column(Integer, default=0)
    price: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    validity_days: Mapped[int | None] = mapped_column(Integer)
    monthly_unlimited: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    gym_class = relationship("GymClass")
    passes = relationship("MemberClassPass", back_populates="package")
