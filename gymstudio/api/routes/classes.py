from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from ...api import deps
from ...core.auth import Principal
from ...db.session import get_db
from ...db import models, schemas
from ...services import schedule_service

router = APIRouter(prefix="/classes", tags=["classes"])


@router.get("", response_model=schemas.PaginatedClasses)
def list_classes(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    skip: int = Query(default=0, ge=0),
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    trainer_id: int | None = None,
    class_type: str | None = None,
    db: Session = Depends(get_db),
):
    filters = schemas.ClassFilters(
        page=page,
        limit=limit,
        skip=skip,
        start_date=start_date,
        end_date=end_date,
        trainer_id=trainer_id,
        class_type=class_type,
    )
    return schedule_service.list_classes(db, filters)


@router.get("/{schedule_id}", response_model=schemas.ClassSchedule)
def get_class(schedule_id: int, db: Session = Depends(get_db)):
    return schedule_service.get_class(db, schedule_id)


@router.post("", response_model=schemas.ClassSchedule)
def create_class(
    payload: schemas.ClassCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(
        deps.require_roles(models.UserRole.admin, models.UserRole.staff, models.UserRole.trainer)
    ),
):
    return schedule_service.create_class_with_schedule(db, payload, principal)


@router.patch("/{schedule_id}", response_model=schemas.ClassSchedule)
def update_class(
    schedule_id: int,
    payload: schemas.ClassUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(
        deps.require_roles(models.UserRole.admin, models.UserRole.staff, models.UserRole.trainer)
    ),
):
    return schedule_service.update_class(db, schedule_id, payload, principal)


@router.delete("/{schedule_id}")
def deactivate_class(
    schedule_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(deps.require_roles(*deps.STAFF_ROLES)),
):
    schedule_service.deactivate_class(db, schedule_id)
    return {"status": "deactivated"}
