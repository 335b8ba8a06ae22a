from datetime import datetime
from pydantic import BaseModel

from ..models.waitlist import WaitlistStatus


class WaitlistJoin(BaseModel):
    member_id: int


class WaitlistEntry(BaseModel):
    id: int
    member_id: int
    class_schedule_id: int
    position: int
    status: WaitlistStatus
    notified_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True
