"""Outcome notifications for reviewed enrollment requests.

Dispatchers are best effort: the review is already committed when they run,
and the caller logs rather than propagates whatever they raise.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from sqlalchemy.orm import Session

from api.core.config import get_settings
from api.models.notification import Notification

logger = logging.getLogger(__name__)

APPROVED = "approved"
REJECTED = "rejected"


class NotificationDispatcher(Protocol):
    def notify_enrollment_outcome(
        self,
        user_id: int,
        course_title: str,
        outcome: str,
        admin_note: Optional[str] = None,
    ) -> None:
        ...


def build_enrollment_notification(course_title: str, outcome: str, admin_note: Optional[str] = None) -> dict:
    """Title, message and type for an outcome notification."""
    if outcome == APPROVED:
        return {
            "title": "Enrollment Approved",
            "message": f'Your enrollment request for "{course_title}" has been approved.',
            "type": "ENROLLMENT_APPROVED",
        }
    if outcome == REJECTED:
        reason = f" Reason: {admin_note}" if admin_note else ""
        return {
            "title": "Enrollment Rejected",
            "message": f'Your enrollment request for "{course_title}" has been rejected.{reason}',
            "type": "ENROLLMENT_REJECTED",
        }
    raise ValueError(f"Unknown enrollment outcome: {outcome}")


def save_notification(db: Session, user_id: int, title: str, message: str, type: str) -> Notification:
    notification = Notification(user_id=user_id, title=title, message=message, type=type)
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


class DatabaseNotificationDispatcher:
    """Writes the notification row in its own session and transaction."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        if session_factory is None:
            from api.core.database import SessionLocal
            session_factory = SessionLocal
        self._session_factory = session_factory

    def notify_enrollment_outcome(self, user_id, course_title, outcome, admin_note=None) -> None:
        payload = build_enrollment_notification(course_title, outcome, admin_note)
        db = self._session_factory()
        try:
            notification = save_notification(db, user_id, **payload)
            logger.info("Notification %s created for user %s (%s)", notification.id, user_id, payload["type"])
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class CeleryNotificationDispatcher:
    """Hands the notification to the Celery worker."""

    def notify_enrollment_outcome(self, user_id, course_title, outcome, admin_note=None) -> None:
        from worker.tasks import deliver_enrollment_notification_task

        result = deliver_enrollment_notification_task.delay(user_id, course_title, outcome, admin_note)
        logger.info("Queued %s notification for user %s (task %s)", outcome, user_id, result.id)


class NullNotificationDispatcher:
    def notify_enrollment_outcome(self, user_id, course_title, outcome, admin_note=None) -> None:
        logger.debug("Notifications disabled; dropping %s notification for user %s", outcome, user_id)


def get_notification_dispatcher() -> NotificationDispatcher:
    """Dispatcher selected by the ``notification_backend`` setting."""
    backend = get_settings().notification_backend
    if backend == "celery":
        return CeleryNotificationDispatcher()
    if backend == "none":
        return NullNotificationDispatcher()
    return DatabaseNotificationDispatcher()
