import logging
from typing import Optional

from worker.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3, default_retry_delay=30)
def deliver_enrollment_notification_task(
    self,
    user_id: int,
    course_title: str,
    outcome: str,
    admin_note: Optional[str] = None,
) -> dict:
    """Persist the enrollment outcome notification for a student."""
    # Import here to avoid circular imports and ensure DB connection
    from api.core.database import SessionLocal
    from api.services.notifications import build_enrollment_notification, save_notification

    payload = build_enrollment_notification(course_title, outcome, admin_note)
    db = SessionLocal()
    try:
        notification = save_notification(db, user_id, **payload)
    except Exception as exc:
        db.rollback()
        logger.warning("Notification for user %s failed, retrying: %s", user_id, exc)
        raise self.retry(exc=exc)
    finally:
        db.close()

    return {"user_id": user_id, "notification_id": notification.id, "status": "completed"}
