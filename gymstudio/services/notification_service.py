from __future__ import annotations

import logging

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db import models

logger = logging.getLogger(__name__)


def _push_webhook(notification: models.Notification) -> None:
    settings = get_settings()
    url = settings.notification_webhook_url
    if not url:
        return
    try:
        with httpx.Client(timeout=10) as client:
            response = client.post(
                url,
                json={
                    "id": notification.id,
                    "user_id": notification.user_id,
                    "role": notification.role.value if notification.role else None,
                    "title": notification.title,
                    "message": notification.message,
                    "type": notification.type.value,
                    "action_url": notification.action_url,
                },
            )
            response.raise_for_status()
    except httpx.HTTPError:
        logger.exception(
            "Failed to push notification to webhook",
            extra={"notification_id": notification.id},
        )


def _store(db: Session, notification: models.Notification) -> models.Notification | None:
    try:
        db.add(notification)
        db.commit()
        db.refresh(notification)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to store notification", extra={"title": notification.title})
        return None
    _push_webhook(notification)
    return notification


def create_for_role(
    db: Session,
    *,
    role: models.UserRole,
    title: str,
    message: str,
    type: models.NotificationType = models.NotificationType.info,
    action_url: str | None = None,
) -> models.Notification | None:
    return _store(
        db,
        models.Notification(
            role=role, title=title, message=message, type=type, action_url=action_url
        ),
    )


def create_for_user(
    db: Session,
    *,
    user_id: int,
    title: str,
    message: str,
    type: models.NotificationType = models.NotificationType.in_app,
    action_url: str | None = None,
) -> models.Notification | None:
    return _store(
        db,
        models.Notification(
            user_id=user_id, title=title, message=message, type=type, action_url=action_url
        ),
    )


def notify_if_enabled(
    db: Session,
    setting_key: str,
    *,
    role: models.UserRole,
    title: str,
    message: str,
    type: models.NotificationType = models.NotificationType.info,
    action_url: str | None = None,
) -> models.Notification | None:
    """Broadcast to a role unless the gym has switched this notification kind off."""
    try:
        setting = db.get(models.Setting, setting_key)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to read notification setting %s", setting_key)
        return None
    if setting is not None and setting.is_disabled:
        logger.debug("Notification %s is disabled; skipping", setting_key)
        return None
    return create_for_role(
        db, role=role, title=title, message=message, type=type, action_url=action_url
    )


__all__ = ["create_for_role", "create_for_user", "notify_if_enabled"]
