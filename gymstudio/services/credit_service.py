from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..core.auth import Principal, ensure_member_access
from ..core.constants import (
    BONUS_CREDIT_BUNDLE_SIZE,
    BONUS_CREDITS,
    BUNDLE_PASS_VALIDITY_DAYS,
    MONTHLY_PASS_VALIDITY_DAYS,
)
from ..core.errors import NotFoundError
from ..db import models, schemas
from ..db.session import atomic

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _active_passes(db: Session, member_id: int) -> list[models.MemberClassPass]:
    return list(
        db.execute(
            select(models.MemberClassPass)
            .options(selectinload(models.MemberClassPass.package))
            .where(
                models.MemberClassPass.member_id == member_id,
                models.MemberClassPass.status == models.PassStatus.active,
                models.MemberClassPass.expires_at > _now(),
            )
            .order_by(models.MemberClassPass.expires_at, models.MemberClassPass.id)
        )
        .scalars()
        .all()
    )


def get_member_credits_balance(db: Session, member_id: int) -> int:
    """Numeric balance across active passes; unlimited passes report 0."""

    db.flush()
    passes = _active_passes(db, member_id)
    if any(pass_.monthly_unlimited for pass_ in passes):
        return 0
    return sum(pass_.remaining_credits for pass_ in passes)


def _record(
    db: Session,
    *,
    member_id: int,
    pass_id: int,
    transaction_type: models.CreditTransactionType,
    delta: int,
    booking_id: int | None = None,
    notes: str | None = None,
) -> models.ClassCreditTransaction:
    transaction = models.ClassCreditTransaction(
        member_id=member_id,
        member_class_pass_id=pass_id,
        booking_id=booking_id,
        transaction_type=transaction_type,
        credits_delta=delta,
        balance_after=get_member_credits_balance(db, member_id),
        notes=notes,
    )
    db.add(transaction)
    db.flush()
    return transaction


def consume_credit_for_booking(
    db: Session, *, booking_id: int, member_id: int
) -> models.ClassCreditTransaction | None:
    """Take one credit from the soonest-expiring pass. Never blocks a booking.

    Writes are left to the caller's transaction.
    """

    passes = _active_passes(db, member_id)
    if not passes or any(pass_.monthly_unlimited for pass_ in passes):
        return None
    pass_with_credits = next((p for p in passes if p.remaining_credits > 0), None)
    if pass_with_credits is None:
        logger.info("Member %s has no credits left; booking %s not charged", member_id, booking_id)
        return None
    pass_with_credits.remaining_credits -= 1
    return _record(
        db,
        member_id=member_id,
        pass_id=pass_with_credits.id,
        booking_id=booking_id,
        transaction_type=models.CreditTransactionType.usage,
        delta=-1,
        notes="Class booking credit usage",
    )


def refund_credit_for_booking(
    db: Session, *, booking_id: int, member_id: int
) -> models.ClassCreditTransaction | None:
    usage = (
        db.execute(
            select(models.ClassCreditTransaction)
            .where(
                models.ClassCreditTransaction.booking_id == booking_id,
                models.ClassCreditTransaction.member_id == member_id,
                models.ClassCreditTransaction.transaction_type
                == models.CreditTransactionType.usage,
            )
            .order_by(
                models.ClassCreditTransaction.created_at.desc(),
                models.ClassCreditTransaction.id.desc(),
            )
        )
        .scalars()
        .first()
    )
    if usage is None or usage.member_class_pass_id is None:
        return None
    class_pass = db.get(models.MemberClassPass, usage.member_class_pass_id)
    if class_pass is None:
        return None
    if class_pass.remaining_credits >= class_pass.total_credits:
        logger.warning("Pass %s is already full; skipping refund for booking %s", class_pass.id, booking_id)
        return None
    class_pass.remaining_credits += 1
    return _record(
        db,
        member_id=member_id,
        pass_id=class_pass.id,
        booking_id=booking_id,
        transaction_type=models.CreditTransactionType.refund,
        delta=1,
        notes="Class cancellation credit refund",
    )


def create_package(db: Session, payload: schemas.ClassPackageCreate) -> models.ClassPackage:
    if payload.class_id is not None and db.get(models.GymClass, payload.class_id) is None:
        raise NotFoundError(f"Class with ID {payload.class_id} not found")
    package = models.ClassPackage(**payload.model_dump())
    db.add(package)
    db.commit()
    db.refresh(package)
    return package


def list_packages(db: Session) -> list[models.ClassPackage]:
    return list(
        db.execute(
            select(models.ClassPackage)
            .where(models.ClassPackage.is_active.is_(True))
            .order_by(models.ClassPackage.created_at.desc(), models.ClassPackage.id.desc())
        )
        .scalars()
        .all()
    )


def _total_credits(package: models.ClassPackage) -> int:
    if package.monthly_unlimited:
        return 0
    bonus = BONUS_CREDITS if package.credits_included == BONUS_CREDIT_BUNDLE_SIZE else 0
    return package.credits_included + bonus


def _validity_days(package: models.ClassPackage) -> int:
    if package.validity_days:
        return package.validity_days
    if package.pass_type == models.ClassPassType.monthly:
        return MONTHLY_PASS_VALIDITY_DAYS
    return BUNDLE_PASS_VALIDITY_DAYS


def purchase_package(
    db: Session,
    package_id: int,
    member_id: int,
    principal: Principal | None = None,
) -> schemas.PurchaseResult:
    ensure_member_access(db, member_id, principal)
    package = db.execute(
        select(models.ClassPackage).where(
            models.ClassPackage.id == package_id,
            models.ClassPackage.is_active.is_(True),
        )
    ).scalar_one_or_none()
    if package is None:
        raise NotFoundError(f"Class package with ID {package_id} not found")

    total_credits = _total_credits(package)
    with atomic(db):
        class_pass = models.MemberClassPass(
            member_id=member_id,
            class_package_id=package.id,
            purchased_at=_now(),
            expires_at=_now() + timedelta(days=_validity_days(package)),
            total_credits=total_credits,
            remaining_credits=total_credits,
            monthly_unlimited=package.monthly_unlimited,
            status=models.PassStatus.active,
        )
        db.add(class_pass)
        db.flush()
        _record(
            db,
            member_id=member_id,
            pass_id=class_pass.id,
            transaction_type=models.CreditTransactionType.purchase,
            delta=total_credits,
            notes=f"Purchased package {package.name}",
        )
    logger.info("Member %s purchased package %s (pass %s)", member_id, package.id, class_pass.id)
    return schemas.PurchaseResult(
        pass_id=class_pass.id,
        expires_at=class_pass.expires_at,
        remaining_credits=class_pass.remaining_credits,
        monthly_unlimited=class_pass.monthly_unlimited,
    )


def get_member_credits(
    db: Session, member_id: int, principal: Principal | None = None
) -> schemas.MemberCredits:
    ensure_member_access(db, member_id, principal)
    passes = _active_passes(db, member_id)
    return schemas.MemberCredits(
        member_id=member_id,
        total_remaining_credits=sum(pass_.remaining_credits for pass_ in passes),
        has_unlimited_pass=any(pass_.monthly_unlimited for pass_ in passes),
        active_passes=[
            schemas.ActivePass(
                pass_id=pass_.id,
                package_name=pass_.package.name,
                expires_at=pass_.expires_at,
                remaining_credits=pass_.remaining_credits,
                monthly_unlimited=pass_.monthly_unlimited,
            )
            for pass_ in passes
        ],
    )


__all__ = [
    "consume_credit_for_booking",
    "create_package",
    "get_member_credits",
    "get_member_credits_balance",
    "list_packages",
    "purchase_package",
    "refund_credit_for_booking",
]
