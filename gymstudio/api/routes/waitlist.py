from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...api import deps
from ...core.auth import Principal
from ...db.session import get_db
from ...db import schemas
from ...services import waitlist_service

router = APIRouter(prefix="/waitlist", tags=["waitlist"])


@router.get("", response_model=list[schemas.WaitlistEntry])
def list_waitlist(
    schedule_id: int | None = None,
    db: Session = Depends(get_db),
    _: Principal = Depends(deps.require_roles(*deps.STAFF_ROLES)),
):
    return waitlist_service.get_all_waitlist(db, schedule_id)


@router.post("/{schedule_id}", response_model=schemas.WaitlistEntry)
def join_waitlist(
    schedule_id: int,
    payload: schemas.WaitlistJoin,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
):
    return waitlist_service.join_waitlist(db, schedule_id, payload.member_id, principal)


@router.delete("/{waitlist_id}", response_model=schemas.WaitlistEntry)
def leave_waitlist(
    waitlist_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
):
    return waitlist_service.leave_waitlist(db, waitlist_id, principal)


@router.post("/{schedule_id}/promote", response_model=schemas.Booking | None)
def promote_waitlist(
    schedule_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(deps.require_roles(*deps.STAFF_ROLES)),
):
    return waitlist_service.promote_next_by_admin(db, schedule_id)
