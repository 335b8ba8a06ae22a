from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...api import deps
from ...core.auth import Principal
from ...db.session import get_db
from ...db import schemas
from ...services import booking_service

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("", response_model=list[schemas.Booking])
def list_bookings(
    schedule_id: int | None = None,
    db: Session = Depends(get_db),
    _: Principal = Depends(deps.require_roles(*deps.STAFF_ROLES)),
):
    return booking_service.get_all_bookings(db, schedule_id)


@router.post("", response_model=schemas.Booking)
def create_booking(
    payload: schemas.BookingCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
):
    return booking_service.book_class(db, payload.member_id, payload.class_schedule_id, principal)


@router.post("/{booking_id}/cancel", response_model=schemas.Booking)
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
):
    return booking_service.cancel_booking(db, booking_id, principal)


@router.patch("/{booking_id}/status", response_model=schemas.Booking)
def update_booking_status(
    booking_id: int,
    payload: schemas.BookingStatusUpdate,
    db: Session = Depends(get_db),
    _: Principal = Depends(deps.require_roles(*deps.STAFF_ROLES)),
):
    return booking_service.update_booking_status(db, booking_id, payload.status)
