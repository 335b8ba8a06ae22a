from . import (
    booking_service,
    credit_service,
    favorite_service,
    notification_service,
    rating_service,
    recurrence,
    schedule_service,
    waitlist_service,
)
__all__ = [
    "booking_service",
    "credit_service",
    "favorite_service",
    "notification_service",
    "rating_service",
    "recurrence",
    "schedule_service",
    "waitlist_service",
]
