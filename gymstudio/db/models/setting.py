from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ..session import Base

_DISABLED_VALUES = {"false", "0", "off", "no"}


class Setting(Base):
    """Key/value gym settings, e.g. per-event notification toggles."""

    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def is_disabled(self) -> bool:
        if self.value is None:
            return False
        return self.value.strip().lower() in _DISABLED_VALUES
