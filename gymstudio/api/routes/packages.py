from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...api import deps
from ...core.auth import Principal
from ...db.session import get_db
from ...db import schemas
from ...services import credit_service

router = APIRouter(prefix="/packages", tags=["packages"])


@router.get("", response_model=list[schemas.ClassPackage])
def list_packages(db: Session = Depends(get_db)):
    return credit_service.list_packages(db)


@router.post("", response_model=schemas.ClassPackage)
def create_package(
    payload: schemas.ClassPackageCreate,
    db: Session = Depends(get_db),
    _: Principal = Depends(deps.require_roles(*deps.STAFF_ROLES)),
):
    return credit_service.create_package(db, payload)


@router.post("/{package_id}/purchase", response_model=schemas.PurchaseResult)
def purchase_package(
    package_id: int,
    payload: schemas.PackagePurchase,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
):
    return credit_service.purchase_package(db, package_id, payload.member_id, principal)
