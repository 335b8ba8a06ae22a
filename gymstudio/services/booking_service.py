from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core.auth import Principal, can_act_on_member, ensure_member_access
from ..core.constants import LISTING_LIMIT, NEW_SESSION_NOTIFICATION
from ..core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ServiceError,
)
from ..db import models
from ..db.session import atomic
from . import credit_service, notification_service, waitlist_service
from .cache import ClassCache, get_cache
from .schedule_service import has_capacity

logger = logging.getLogger(__name__)


def book_class(
    db: Session,
    member_id: int,
    schedule_id: int,
    principal: Principal | None = None,
    cache: ClassCache | None = None,
) -> models.ClassBooking:
    member = ensure_member_access(
        db, member_id, principal, message="You can only book classes for yourself"
    )
    waitlist_service.ensure_schedule_active(db, schedule_id)

    existing = db.execute(
        select(models.ClassBooking).where(
            models.ClassBooking.member_id == member_id,
            models.ClassBooking.class_schedule_id == schedule_id,
        )
    ).scalar_one_or_none()
    if existing and existing.status == models.BookingStatus.confirmed:
        raise ConflictError(f"Member {member_id} already has a booking for schedule {schedule_id}")

    try:
        with atomic(db):
            if has_capacity(db, schedule_id, lock=True):
                if existing:
                    booking = existing
                    booking.status = models.BookingStatus.confirmed
                else:
                    booking = models.ClassBooking(
                        member_id=member_id,
                        class_schedule_id=schedule_id,
                        status=models.BookingStatus.confirmed,
                    )
                    db.add(booking)
                db.flush()
                waitlist_service.close_active_entry(db, schedule_id, member_id)
                credit_service.consume_credit_for_booking(
                    db, booking_id=booking.id, member_id=member_id
                )
            else:
                booking = None
    except IntegrityError as exc:
        raise ConflictError(
            f"Member {member_id} already has a booking for schedule {schedule_id}"
        ) from exc

    if booking is None:
        entry = waitlist_service.join_waitlist(db, schedule_id, member_id, principal)
        raise ConflictError(
            f"Class is at full capacity. Member added to waitlist at position {entry.position}"
        )

    (cache or get_cache()).invalidate_classes()
    full_name = member.user.full_name if member.user else ""
    notification_service.notify_if_enabled(
        db,
        NEW_SESSION_NOTIFICATION,
        role=models.UserRole.admin,
        title="New class booking",
        message=f"{full_name or 'Member'} booked a class session.",
        type=models.NotificationType.info,
        action_url="/admin/classes",
    )
    return booking


def cancel_booking(
    db: Session,
    booking_id: int,
    principal: Principal | None = None,
    cache: ClassCache | None = None,
) -> models.ClassBooking:
    booking = db.get(models.ClassBooking, booking_id)
    if booking is None:
        raise NotFoundError(f"Booking with ID {booking_id} not found")
    if booking.status == models.BookingStatus.cancelled:
        raise InvalidStateError(f"Booking {booking_id} is already cancelled")
    if not can_act_on_member(principal, booking.member):
        raise ForbiddenError("You can only cancel your own bookings")

    with atomic(db):
        booking.status = models.BookingStatus.cancelled
        credit_service.refund_credit_for_booking(
            db, booking_id=booking.id, member_id=booking.member_id
        )
    logger.info("Booking %s cancelled", booking.id)

    cache = cache or get_cache()
    try:
        waitlist_service.promote_waitlist(db, booking.class_schedule_id, cache=cache)
    except (ServiceError, SQLAlchemyError):
        db.rollback()
        logger.exception(
            "Waitlist promotion failed after cancelling booking %s", booking.id
        )
    cache.invalidate_classes()
    return booking


def update_booking_status(
    db: Session,
    booking_id: int,
    status: models.BookingStatus,
    cache: ClassCache | None = None,
) -> models.ClassBooking:
    booking = db.get(models.ClassBooking, booking_id)
    if booking is None:
        raise NotFoundError(f"Booking with ID {booking_id} not found")
    if status == models.BookingStatus.waitlisted:
        raise InvalidStateError("WAITLISTED is not a valid direct booking update")
    booking.status = status
    db.commit()
    (cache or get_cache()).invalidate_classes()
    return booking


def get_member_bookings(
    db: Session, member_id: int, principal: Principal | None = None
) -> list[models.ClassBooking]:
    ensure_member_access(db, member_id, principal)
    return list(
        db.execute(
            select(models.ClassBooking)
            .options(
                selectinload(models.ClassBooking.schedule).selectinload(
                    models.ClassSchedule.gym_class
                )
            )
            .where(models.ClassBooking.member_id == member_id)
            .order_by(models.ClassBooking.booked_at.desc(), models.ClassBooking.id.desc())
        )
        .scalars()
        .all()
    )


def get_all_bookings(db: Session, schedule_id: int | None = None) -> list[models.ClassBooking]:
    stmt = select(models.ClassBooking)
    if schedule_id is not None:
        stmt = stmt.where(models.ClassBooking.class_schedule_id == schedule_id)
    return list(
        db.execute(
            stmt.order_by(models.ClassBooking.booked_at.desc(), models.ClassBooking.id.desc())
            .limit(LISTING_LIMIT)
        )
        .scalars()
        .all()
    )


__all__ = [
    "book_class",
    "cancel_booking",
    "get_all_bookings",
    "get_member_bookings",
    "update_booking_status",
]
