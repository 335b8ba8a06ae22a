from __future__ import annotations

from datetime import datetime, timedelta
import logging
import math

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..core.auth import Principal
from ..core.constants import NEW_SESSION_NOTIFICATION
from ..core.errors import ConflictError, ForbiddenError, NotFoundError
from ..db import models, schemas
from ..db.session import atomic
from . import notification_service
from .cache import ClassCache, get_cache
from .recurrence import build_occurrences, weekday_name

logger = logging.getLogger(__name__)


def count_confirmed(db: Session, schedule_id: int) -> int:
    return db.scalar(
        select(func.count(models.ClassBooking.id)).where(
            models.ClassBooking.class_schedule_id == schedule_id,
            models.ClassBooking.status == models.BookingStatus.confirmed,
        )
    ) or 0


def has_capacity(db: Session, schedule_id: int, *, lock: bool = False) -> bool:
    """True while confirmed bookings are below the class's max capacity.

    With ``lock`` the schedule row stays locked until the caller's
    transaction ends, so the count and the following write cannot race.
    """

    stmt = (
        select(models.ClassSchedule)
        .options(selectinload(models.ClassSchedule.gym_class))
        .where(models.ClassSchedule.id == schedule_id)
    )
    if lock:
        stmt = stmt.with_for_update()
    schedule = db.execute(stmt).scalar_one_or_none()
    if schedule is None:
        return False
    return count_confirmed(db, schedule_id) < schedule.gym_class.max_capacity


def has_schedule_conflict(
    db: Session,
    trainer_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_schedule_id: int | None = None,
) -> bool:
    stmt = select(models.ClassSchedule.id).where(
        models.ClassSchedule.trainer_id == trainer_id,
        models.ClassSchedule.is_active.is_(True),
        models.ClassSchedule.start_time < end_time,
        models.ClassSchedule.end_time > start_time,
    )
    if exclude_schedule_id is not None:
        stmt = stmt.where(models.ClassSchedule.id != exclude_schedule_id)
    return db.execute(stmt.limit(1)).first() is not None


def _confirmed_counts(db: Session, schedule_ids: list[int]) -> dict[int, int]:
    if not schedule_ids:
        return {}
    return dict(
        db.execute(
            select(models.ClassBooking.class_schedule_id, func.count(models.ClassBooking.id))
            .where(models.ClassBooking.class_schedule_id.in_(schedule_ids))
            .where(models.ClassBooking.status == models.BookingStatus.confirmed)
            .group_by(models.ClassBooking.class_schedule_id)
        ).all()
    )


def to_schema(schedule: models.ClassSchedule, confirmed: int) -> schemas.ClassSchedule:
    gym_class = schedule.gym_class
    trainer_user = schedule.trainer.user if schedule.trainer else None
    return schemas.ClassSchedule(
        id=schedule.id,
        class_id=gym_class.id,
        name=gym_class.name,
        description=gym_class.description,
        trainer_id=schedule.trainer_id,
        trainer_name=trainer_user.full_name if trainer_user else None,
        schedule=schedule.start_time,
        end_time=schedule.end_time,
        duration=gym_class.duration,
        capacity=gym_class.max_capacity,
        class_type=gym_class.category,
        is_active=schedule.is_active,
        available_slots=max(gym_class.max_capacity - confirmed, 0),
    )


def _get_trainer(db: Session, trainer_id: int) -> models.Trainer:
    trainer = db.get(models.Trainer, trainer_id)
    if trainer is None:
        raise NotFoundError(f"Trainer with ID {trainer_id} not found")
    return trainer


def _get_schedule(db: Session, schedule_id: int) -> models.ClassSchedule:
    schedule = db.execute(
        select(models.ClassSchedule)
        .options(
            selectinload(models.ClassSchedule.gym_class),
            selectinload(models.ClassSchedule.trainer).selectinload(models.Trainer.user),
        )
        .where(models.ClassSchedule.id == schedule_id)
    ).scalar_one_or_none()
    if schedule is None:
        raise NotFoundError(f"Class schedule with ID {schedule_id} not found")
    return schedule


def create_class_with_schedule(
    db: Session,
    payload: schemas.ClassCreate,
    principal: Principal | None = None,
    cache: ClassCache | None = None,
) -> schemas.ClassSchedule:
    trainer = _get_trainer(db, payload.trainer_id)
    if principal and principal.is_trainer and trainer.user_id != principal.user_id:
        raise ForbiddenError("You can only create classes for yourself")

    occurrences = build_occurrences(
        payload.schedule,
        payload.duration,
        payload.recurrence_rule,
        payload.occurrences,
    )
    for occurrence in occurrences:
        if has_schedule_conflict(db, trainer.id, occurrence.start, occurrence.end):
            raise ConflictError(
                f"Trainer {trainer.id} has a scheduling conflict at {occurrence.start.isoformat()}"
            )

    with atomic(db):
        gym_class = models.GymClass(
            name=payload.name,
            description=payload.description,
            category=payload.class_type,
            duration=payload.duration,
            max_capacity=payload.capacity,
        )
        db.add(gym_class)
        db.flush()
        created = [
            models.ClassSchedule(
                class_id=gym_class.id,
                trainer_id=trainer.id,
                start_time=occurrence.start,
                end_time=occurrence.end,
                day_of_week=weekday_name(occurrence.start),
                is_active=True,
            )
            for occurrence in occurrences
        ]
        db.add_all(created)
        db.flush()
    logger.info("Created class %s with %s schedule(s)", gym_class.id, len(created))

    notification_service.notify_if_enabled(
        db,
        NEW_SESSION_NOTIFICATION,
        role=models.UserRole.admin,
        title="New class created",
        message=f'Class "{gym_class.name}" was created.',
        type=models.NotificationType.success,
        action_url="/admin/classes",
    )
    (cache or get_cache()).invalidate_classes()
    return to_schema(_get_schedule(db, created[0].id), 0)


def update_class(
    db: Session,
    schedule_id: int,
    payload: schemas.ClassUpdate,
    principal: Principal | None = None,
    cache: ClassCache | None = None,
) -> schemas.ClassSchedule:
    schedule = _get_schedule(db, schedule_id)
    trainer_principal = principal is not None and principal.is_trainer
    if trainer_principal and schedule.trainer.user_id != principal.user_id:
        raise ForbiddenError("You can only update your own classes")
    if payload.trainer_id is not None:
        trainer = _get_trainer(db, payload.trainer_id)
        if trainer_principal and trainer.user_id != principal.user_id:
            raise ForbiddenError("You can only assign classes to yourself")

    gym_class = schedule.gym_class
    duration = payload.duration or gym_class.duration
    start_time = payload.schedule or schedule.start_time
    end_time = start_time + timedelta(minutes=duration)
    trainer_id = payload.trainer_id or schedule.trainer_id

    if payload.schedule or payload.duration or payload.trainer_id:
        if has_schedule_conflict(db, trainer_id, start_time, end_time, schedule.id):
            raise ConflictError(f"Trainer {trainer_id} has a scheduling conflict at this time")

    with atomic(db):
        if payload.name is not None:
            gym_class.name = payload.name
        if payload.description is not None:
            gym_class.description = payload.description
        if payload.class_type is not None:
            gym_class.category = payload.class_type
        if payload.duration is not None:
            gym_class.duration = payload.duration
        if payload.capacity is not None:
            gym_class.max_capacity = payload.capacity
        schedule.trainer_id = trainer_id
        if payload.schedule or payload.duration:
            schedule.start_time = start_time
            schedule.end_time = end_time
            schedule.day_of_week = weekday_name(start_time)

    (cache or get_cache()).invalidate_classes()
    db.expire(schedule)
    schedule = _get_schedule(db, schedule_id)
    return to_schema(schedule, count_confirmed(db, schedule_id))


def deactivate_class(db: Session, schedule_id: int, cache: ClassCache | None = None) -> None:
    schedule = db.get(models.ClassSchedule, schedule_id)
    if schedule is None:
        raise NotFoundError(f"Class schedule with ID {schedule_id} not found")
    schedule.is_active = False
    db.commit()
    (cache or get_cache()).invalidate_classes()


def list_classes(
    db: Session,
    filters: schemas.ClassFilters | None = None,
    cache: ClassCache | None = None,
) -> schemas.PaginatedClasses:
    filters = filters or schemas.ClassFilters()
    cache = cache or get_cache()
    cache_key = cache.key("list", cache.fingerprint(filters.model_dump(mode="json")))
    cached = cache.get(cache_key)
    if cached is not None:
        logger.debug("Cache hit for class schedules: %s", cache_key)
        return schemas.PaginatedClasses.model_validate(cached)
    logger.debug("Cache miss for class schedules: %s", cache_key)

    stmt = select(models.ClassSchedule).where(models.ClassSchedule.is_active.is_(True))
    if filters.start_date:
        stmt = stmt.where(models.ClassSchedule.start_time >= filters.start_date)
    if filters.end_date:
        stmt = stmt.where(models.ClassSchedule.start_time <= filters.end_date)
    if filters.trainer_id:
        stmt = stmt.where(models.ClassSchedule.trainer_id == filters.trainer_id)
    if filters.class_type:
        stmt = stmt.join(models.GymClass).where(
            models.GymClass.category.ilike(f"%{filters.class_type}%")
        )

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    offset = filters.skip or (filters.page - 1) * filters.limit
    rows = list(
        db.execute(
            stmt.options(
                selectinload(models.ClassSchedule.gym_class),
                selectinload(models.ClassSchedule.trainer).selectinload(models.Trainer.user),
            )
            .order_by(models.ClassSchedule.start_time, models.ClassSchedule.id)
            .offset(offset)
            .limit(filters.limit)
        )
        .scalars()
        .all()
    )
    counts = _confirmed_counts(db, [row.id for row in rows])
    result = schemas.PaginatedClasses(
        data=[to_schema(row, int(counts.get(row.id, 0))) for row in rows],
        page=filters.page,
        limit=filters.limit,
        total=total,
        total_pages=math.ceil(total / filters.limit) if total else 0,
    )
    cache.set(cache_key, result.model_dump(mode="json"))
    return result


def get_class(db: Session, schedule_id: int, cache: ClassCache | None = None) -> schemas.ClassSchedule:
    cache = cache or get_cache()
    cache_key = cache.key(schedule_id)
    cached = cache.get(cache_key)
    if cached is not None:
        logger.debug("Cache hit for class: %s", schedule_id)
        return schemas.ClassSchedule.model_validate(cached)
    logger.debug("Cache miss for class: %s", schedule_id)
    schedule = _get_schedule(db, schedule_id)
    result = to_schema(schedule, count_confirmed(db, schedule_id))
    cache.set(cache_key, result.model_dump(mode="json"))
    return result


__all__ = [
    "count_confirmed",
    "create_class_with_schedule",
    "deactivate_class",
    "get_class",
    "has_capacity",
    "has_schedule_conflict",
    "list_classes",
    "to_schema",
    "update_class",
]
