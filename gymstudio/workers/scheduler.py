from datetime import datetime, timezone
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ..config import get_settings
from ..core.constants import REMINDER_BATCH_LIMIT, REMINDER_WINDOWS
from ..db import models
from ..db.session import SessionLocal
from ..services import notification_service

logger = logging.getLogger(__name__)


def dispatch_class_reminders(db: Session, now: datetime | None = None) -> int:
    """Notify members of confirmed classes starting in ~2 hours or ~24 hours."""
    now = now or datetime.now(timezone.utc)
    windows = [
        models.ClassSchedule.start_time.between(now + start, now + end)
        for start, end in REMINDER_WINDOWS
    ]
    bookings = (
        db.query(models.ClassBooking)
        .join(models.ClassSchedule)
        .options(
            selectinload(models.ClassBooking.member).selectinload(models.Member.user),
            selectinload(models.ClassBooking.schedule).selectinload(models.ClassSchedule.gym_class),
        )
        .filter(models.ClassBooking.status == models.BookingStatus.confirmed)
        .filter(models.ClassSchedule.is_active.is_(True))
        .filter(or_(*windows))
        .order_by(models.ClassSchedule.start_time, models.ClassBooking.id)
        .limit(REMINDER_BATCH_LIMIT)
        .all()
    )
    sent = 0
    for booking in bookings:
        schedule = booking.schedule
        notification = notification_service.create_for_user(
            db,
            user_id=booking.member.user_id,
            title="Class reminder",
            message=f"{schedule.gym_class.name} starts at {schedule.start_time:%Y-%m-%d %H:%M}.",
            action_url="/member/classes",
        )
        if notification is not None:
            sent += 1
    logger.info("Class reminder sweep sent %s of %s reminders", sent, len(bookings))
    return sent


def send_class_reminders() -> None:
    with SessionLocal() as db:
        dispatch_class_reminders(db)


def get_scheduler() -> AsyncIOScheduler:
    settings = get_settings()
    scheduler = AsyncIOScheduler(timezone=settings.timezone)
    scheduler.add_job(send_class_reminders, "interval", minutes=settings.reminder_interval_min)
    return scheduler
