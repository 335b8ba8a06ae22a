from datetime import datetime
from pydantic import BaseModel

from ..models.booking import BookingStatus


class BookingCreate(BaseModel):
    member_id: int
    class_schedule_id: int


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class Booking(BaseModel):
    id: int
    member_id: int
    class_schedule_id: int
    status: BookingStatus
    booked_at: datetime | None = None

    class Config:
        from_attributes = True
