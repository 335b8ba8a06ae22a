from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column
from ..session import Base


class CreditTransactionType(str, PyEnum):
    purchase = "PURCHASE"
    usage = "USAGE"
    refund = "REFUND"


class ClassCreditTransaction(Base):
    """Append-only ledger row; never updated after insert."""

    __tablename__ = "class_credit_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"), index=True)
    member_class_pass_id: Mapped[int | None] = mapped_column(ForeignKey("member_class_passes.id"))
    booking_id: Mapped[int | None] = mapped_column(ForeignKey("class_bookings.id"), index=True)
    transaction_type: Mapped[CreditTransactionType] = mapped_column(Enum(CreditTransactionType))
    credits_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
