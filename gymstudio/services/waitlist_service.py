from __future__ import annotations

from datetime import datetime, timezone
import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from ..core.auth import Principal, can_act_on_member, ensure_member_access
from ..core.constants import LISTING_LIMIT
from ..core.errors import ForbiddenError, InvalidStateError, NotFoundError
from ..db import models
from ..db.session import atomic
from . import credit_service, notification_service
from .cache import ClassCache, get_cache
from .schedule_service import has_capacity

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_schedule_active(db: Session, schedule_id: int) -> models.ClassSchedule:
    schedule = db.get(models.ClassSchedule, schedule_id)
    if schedule is None:
        raise NotFoundError(f"Class schedule with ID {schedule_id} not found")
    if not schedule.is_active:
        raise InvalidStateError(f"Class schedule {schedule_id} is not active")
    return schedule


def _next_position(db: Session, schedule_id: int) -> int:
    current = db.scalar(
        select(func.max(models.ClassWaitlist.position)).where(
            models.ClassWaitlist.class_schedule_id == schedule_id,
            models.ClassWaitlist.status.in_(models.ACTIVE_WAITLIST_STATUSES),
        )
    )
    return (current or 0) + 1


def join_waitlist(
    db: Session,
    schedule_id: int,
    member_id: int,
    principal: Principal | None = None,
) -> models.ClassWaitlist:
    ensure_member_access(db, member_id, principal)
    ensure_schedule_active(db, schedule_id)

    existing = db.execute(
        select(models.ClassWaitlist).where(
            models.ClassWaitlist.member_id == member_id,
            models.ClassWaitlist.class_schedule_id == schedule_id,
        )
    ).scalar_one_or_none()
    # only waiting/notified rows count as queued; a booked row is re-queued at the back
    if existing and existing.status in models.ACTIVE_WAITLIST_STATUSES:
        return existing

    with atomic(db):
        position = _next_position(db, schedule_id)
        if existing:
            entry = existing
            entry.status = models.WaitlistStatus.waiting
            entry.position = position
            entry.notified_at = None
            entry.expires_at = None
        else:
            entry = models.ClassWaitlist(
                member_id=member_id,
                class_schedule_id=schedule_id,
                position=position,
                status=models.WaitlistStatus.waiting,
            )
            db.add(entry)
    logger.info("Member %s joined waitlist for schedule %s at %s", member_id, schedule_id, position)
    return entry


def leave_waitlist(
    db: Session, waitlist_id: int, principal: Principal | None = None
) -> models.ClassWaitlist:
    entry = db.get(models.ClassWaitlist, waitlist_id)
    if entry is None:
        raise NotFoundError(f"Waitlist entry with ID {waitlist_id} not found")
    if not can_act_on_member(principal, entry.member):
        raise ForbiddenError("You can only manage your own waitlist")
    entry.status = models.WaitlistStatus.cancelled
    db.commit()
    return entry


def _mark_booked(db: Session, entry: models.ClassWaitlist) -> None:
    """Take ``entry`` out of the queue and close the gap behind it.

    Runs inside the caller's transaction; nothing is committed here.
    """

    position = entry.position
    entry.status = models.WaitlistStatus.booked
    entry.notified_at = _now()
    entry.expires_at = None
    db.flush()
    db.execute(
        update(models.ClassWaitlist)
        .where(
            models.ClassWaitlist.class_schedule_id == entry.class_schedule_id,
            models.ClassWaitlist.status == models.WaitlistStatus.waiting,
            models.ClassWaitlist.position > position,
        )
        .values(position=models.ClassWaitlist.position - 1)
        .execution_options(synchronize_session="fetch")
    )


def close_active_entry(
    db: Session, schedule_id: int, member_id: int
) -> models.ClassWaitlist | None:
    """Mark the member's waiting/notified entry as booked, if there is one."""

    entry = db.execute(
        select(models.ClassWaitlist).where(
            models.ClassWaitlist.member_id == member_id,
            models.ClassWaitlist.class_schedule_id == schedule_id,
            models.ClassWaitlist.status.in_(models.ACTIVE_WAITLIST_STATUSES),
        )
    ).scalar_one_or_none()
    if entry is not None:
        _mark_booked(db, entry)
        logger.info("Closed waitlist entry %s of member %s after direct booking", entry.id, member_id)
    return entry


def _first_waiting(db: Session, schedule_id: int) -> models.ClassWaitlist | None:
    return (
        db.execute(
            select(models.ClassWaitlist)
            .options(
                selectinload(models.ClassWaitlist.member).selectinload(models.Member.user),
                selectinload(models.ClassWaitlist.schedule).selectinload(
                    models.ClassSchedule.gym_class
                ),
            )
            .where(
                models.ClassWaitlist.class_schedule_id == schedule_id,
                models.ClassWaitlist.status == models.WaitlistStatus.waiting,
            )
            .order_by(models.ClassWaitlist.position, models.ClassWaitlist.id)
        )
        .scalars()
        .first()
    )


def promote_waitlist(
    db: Session, schedule_id: int, cache: ClassCache | None = None
) -> models.ClassBooking | None:
    """Move the first waiting member into a confirmed booking if a seat is free.

    Waiters who already hold a confirmed booking for the schedule are retired
    from the queue and skipped.
    """

    if _first_waiting(db, schedule_id) is None:
        return None

    with atomic(db):
        if not has_capacity(db, schedule_id, lock=True):
            logger.info("Schedule %s is still full; waitlist not promoted", schedule_id)
            return None

        while True:
            next_entry = _first_waiting(db, schedule_id)
            if next_entry is None:
                return None
            booking = db.execute(
                select(models.ClassBooking).where(
                    models.ClassBooking.member_id == next_entry.member_id,
                    models.ClassBooking.class_schedule_id == schedule_id,
                )
            ).scalar_one_or_none()
            if booking is None or booking.status != models.BookingStatus.confirmed:
                break
            logger.info(
                "Member %s already booked schedule %s; dropping waitlist entry %s",
                next_entry.member_id,
                schedule_id,
                next_entry.id,
            )
            _mark_booked(db, next_entry)

        if booking is None:
            booking = models.ClassBooking(
                member_id=next_entry.member_id,
                class_schedule_id=schedule_id,
            )
            db.add(booking)
        booking.status = models.BookingStatus.confirmed
        db.flush()

        _mark_booked(db, next_entry)
        credit_service.consume_credit_for_booking(
            db, booking_id=booking.id, member_id=next_entry.member_id
        )
    logger.info("Promoted member %s from waitlist of schedule %s", next_entry.member_id, schedule_id)

    (cache or get_cache()).invalidate_classes()
    notification_service.create_for_user(
        db,
        user_id=next_entry.member.user_id,
        title="Waitlist promotion",
        message=f"You have been moved into {next_entry.schedule.gym_class.name}.",
        action_url="/member/classes",
    )
    return booking


def promote_next_by_admin(db: Session, schedule_id: int) -> models.ClassBooking | None:
    ensure_schedule_active(db, schedule_id)
    return promote_waitlist(db, schedule_id)


def get_member_waitlist(
    db: Session, member_id: int, principal: Principal | None = None
) -> list[models.ClassWaitlist]:
    ensure_member_access(db, member_id, principal)
    return list(
        db.execute(
            select(models.ClassWaitlist)
            .where(
                models.ClassWaitlist.member_id == member_id,
                models.ClassWaitlist.status.in_(models.ACTIVE_WAITLIST_STATUSES),
            )
            .order_by(models.ClassWaitlist.status, models.ClassWaitlist.position)
        )
        .scalars()
        .all()
    )


def get_all_waitlist(db: Session, schedule_id: int | None = None) -> list[models.ClassWaitlist]:
    stmt = select(models.ClassWaitlist)
    if schedule_id is not None:
        stmt = stmt.where(models.ClassWaitlist.class_schedule_id == schedule_id)
    return list(
        db.execute(
            stmt.order_by(models.ClassWaitlist.class_schedule_id, models.ClassWaitlist.position)
            .limit(LISTING_LIMIT)
        )
        .scalars()
        .all()
    )


__all__ = [
    "close_active_entry",
    "ensure_schedule_active",
    "get_all_waitlist",
    "get_member_waitlist",
    "join_waitlist",
    "leave_waitlist",
    "promote_next_by_admin",
    "promote_waitlist",
]
