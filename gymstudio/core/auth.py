from dataclasses import dataclass

from sqlalchemy.orm import Session

from ..db import models
from .errors import ForbiddenError, NotFoundError


@dataclass(frozen=True, slots=True)
class Principal:
    user_id: int
    role: models.UserRole

    @property
    def is_member(self) -> bool:
        return self.role == models.UserRole.member

    @property
    def is_trainer(self) -> bool:
        return self.role == models.UserRole.trainer


def can_act_on_member(principal: Principal | None, member: models.Member) -> bool:
    """Members may only act on themselves; staff roles and internal calls on anyone."""
    if principal is None or not principal.is_member:
        return True
    return member.user_id == principal.user_id


def ensure_member_access(
    db: Session,
    member_id: int,
    principal: Principal | None,
    message: str = "You can only access your own member data",
) -> models.Member:
    member = db.get(models.Member, member_id)
    if member is None:
        raise NotFoundError(f"Member with ID {member_id} not found")
    if not can_act_on_member(principal, member):
        raise ForbiddenError(message)
    return member
