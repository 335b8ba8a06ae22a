from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...api import deps
from ...core.auth import Principal
from ...db.session import get_db
from ...db import schemas
from ...services import (
    booking_service,
    credit_service,
    favorite_service,
    rating_service,
    waitlist_service,
)

router = APIRouter(prefix="/members", tags=["members"])


@router.get("/{member_id}/bookings", response_model=list[schemas.Booking])
def member_bookings(
    member_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
):
    return booking_service.get_member_bookings(db, member_id, principal)


@router.get("/{member_id}/waitlist", response_model=list[schemas.WaitlistEntry])
def member_waitlist(
    member_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
):
    return waitlist_service.get_member_waitlist(db, member_id, principal)


@router.get("/{member_id}/credits", response_model=schemas.MemberCredits)
def member_credits(
    member_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
):
    return credit_service.get_member_credits(db, member_id, principal)


@router.get("/{member_id}/favorites", response_model=list[schemas.ClassFavorite])
def member_favorites(
    member_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
):
    return favorite_service.get_member_favorites(db, member_id, principal)


@router.post("/{member_id}/favorites/{class_id}", response_model=schemas.ClassFavorite)
def add_favorite(
    member_id: int,
    class_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
):
    return favorite_service.favorite_class(db, class_id, member_id, principal)


@router.delete("/{member_id}/favorites/{class_id}")
def remove_favorite(
    member_id: int,
    class_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
):
    favorite_service.unfavorite_class(db, class_id, member_id, principal)
    return {"status": "deleted"}


@router.post("/{member_id}/ratings/{schedule_id}", response_model=schemas.InstructorRating)
def rate_instructor(
    member_id: int,
    schedule_id: int,
    payload: schemas.InstructorRatingCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
):
    return rating_service.rate_instructor(db, schedule_id, member_id, payload, principal)
