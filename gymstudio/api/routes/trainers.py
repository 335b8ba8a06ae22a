from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...db.session import get_db
from ...db import schemas
from ...services import rating_service

router = APIRouter(prefix="/trainers", tags=["trainers"])


@router.get("/{trainer_id}/profile", response_model=schemas.InstructorProfile)
def trainer_profile(trainer_id: int, db: Session = Depends(get_db)):
    return rating_service.get_instructor_profile(db, trainer_id)
