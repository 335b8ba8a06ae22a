from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..core.auth import Principal, ensure_member_access
from ..core.errors import NotFoundError
from ..db import models, schemas


def _to_schema(favorite: models.ClassFavorite) -> schemas.ClassFavorite:
    return schemas.ClassFavorite(
        id=favorite.id,
        member_id=favorite.member_id,
        class_id=favorite.class_id,
        class_name=favorite.gym_class.name,
        class_type=favorite.gym_class.category,
        created_at=favorite.created_at,
    )


def favorite_class(
    db: Session, class_id: int, member_id: int, principal: Principal | None = None
) -> schemas.ClassFavorite:
    ensure_member_access(db, member_id, principal)
    if db.get(models.GymClass, class_id) is None:
        raise NotFoundError(f"Class with ID {class_id} not found")

    favorite = db.execute(
        select(models.ClassFavorite).where(
            models.ClassFavorite.member_id == member_id,
            models.ClassFavorite.class_id == class_id,
        )
    ).scalar_one_or_none()
    if favorite is None:
        favorite = models.ClassFavorite(member_id=member_id, class_id=class_id)
        db.add(favorite)
        db.commit()
        db.refresh(favorite)
    return _to_schema(favorite)


def unfavorite_class(
    db: Session, class_id: int, member_id: int, principal: Principal | None = None
) -> None:
    ensure_member_access(db, member_id, principal)
    favorite = db.execute(
        select(models.ClassFavorite).where(
            models.ClassFavorite.member_id == member_id,
            models.ClassFavorite.class_id == class_id,
        )
    ).scalar_one_or_none()
    if favorite is not None:
        db.delete(favorite)
        db.commit()


def get_member_favorites(
    db: Session, member_id: int, principal: Principal | None = None
) -> list[schemas.ClassFavorite]:
    ensure_member_access(db, member_id, principal)
    favorites = (
        db.execute(
            select(models.ClassFavorite)
            .options(selectinload(models.ClassFavorite.gym_class))
            .where(models.ClassFavorite.member_id == member_id)
            .order_by(models.ClassFavorite.created_at.desc(), models.ClassFavorite.id.desc())
        )
        .scalars()
        .all()
    )
    return [_to_schema(favorite) for favorite in favorites]


__all__ = ["favorite_class", "get_member_favorites", "unfavorite_class"]
