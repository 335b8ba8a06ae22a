from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..core.auth import Principal, ensure_member_access
from ..core.errors import InvalidStateError, NotFoundError
from ..db import models, schemas

logger = logging.getLogger(__name__)

RATEABLE_BOOKING_STATUSES = (models.BookingStatus.confirmed, models.BookingStatus.completed)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive values; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def rate_instructor(
    db: Session,
    schedule_id: int,
    member_id: int,
    payload: schemas.InstructorRatingCreate,
    principal: Principal | None = None,
) -> models.InstructorRating:
    ensure_member_access(db, member_id, principal, message="You can only rate your own classes")
    schedule = db.get(models.ClassSchedule, schedule_id)
    if schedule is None:
        raise NotFoundError(f"Class schedule with ID {schedule_id} not found")

    booked = db.execute(
        select(models.ClassBooking.id).where(
            models.ClassBooking.member_id == member_id,
            models.ClassBooking.class_schedule_id == schedule_id,
            models.ClassBooking.status.in_(RATEABLE_BOOKING_STATUSES),
        )
    ).first()
    if booked is None:
        raise InvalidStateError("Member did not book this class")
    if _as_utc(schedule.end_time) > datetime.now(timezone.utc):
        raise InvalidStateError(f"Class schedule {schedule_id} has not ended yet")

    rating = db.execute(
        select(models.InstructorRating).where(
            models.InstructorRating.member_id == member_id,
            models.InstructorRating.class_schedule_id == schedule_id,
        )
    ).scalar_one_or_none()
    if rating is None:
        rating = models.InstructorRating(
            member_id=member_id,
            class_schedule_id=schedule_id,
            trainer_id=schedule.trainer_id,
        )
        db.add(rating)
    rating.rating = payload.rating
    rating.review = payload.review
    db.commit()
    db.refresh(rating)
    logger.info("Member %s rated trainer %s with %s", member_id, schedule.trainer_id, payload.rating)
    return rating


def get_instructor_profile(db: Session, trainer_id: int) -> schemas.InstructorProfile:
    """Trainer card: rating summary plus past/upcoming class counts."""

    trainer = db.execute(
        select(models.Trainer)
        .options(selectinload(models.Trainer.user))
        .where(models.Trainer.id == trainer_id)
    ).scalar_one_or_none()
    if trainer is None:
        raise NotFoundError(f"Trainer with ID {trainer_id} not found")

    average, count = db.execute(
        select(func.avg(models.InstructorRating.rating), func.count(models.InstructorRating.id))
        .where(models.InstructorRating.trainer_id == trainer_id)
    ).one()

    schedules = (
        db.execute(
            select(models.ClassSchedule)
            .options(selectinload(models.ClassSchedule.gym_class))
            .where(models.ClassSchedule.trainer_id == trainer_id)
        )
        .scalars()
        .all()
    )
    now = datetime.now(timezone.utc)
    past = sum(1 for schedule in schedules if _as_utc(schedule.start_time) < now)
    categories = Counter(schedule.gym_class.category for schedule in schedules)

    return schemas.InstructorProfile(
        trainer_id=trainer.id,
        full_name=trainer.user.full_name if trainer.user else "",
        bio=trainer.bio,
        specializations=[s.strip() for s in (trainer.specialization or "").split(",") if s.strip()],
        experience=trainer.experience or 0,
        certifications=trainer.certification,
        average_rating=round(float(average), 2) if average is not None else 0.0,
        ratings_count=count or 0,
        class_history=schemas.ClassHistory(
            past_classes_count=past,
            upcoming_classes_count=len(schedules) - past,
            top_class_types=[category for category, _ in categories.most_common(3)],
        ),
    )


__all__ = ["get_instructor_profile", "rate_instructor"]
