import pytest

from api.models.notification import Notification
from api.services import notifications
from api.services.notifications import (
    CeleryNotificationDispatcher,
    DatabaseNotificationDispatcher,
    NullNotificationDispatcher,
    build_enrollment_notification,
    get_notification_dispatcher,
)


def test_approved_notification_content():
    payload = build_enrollment_notification("Algebra I", "approved", "see you monday")
    assert payload == {
        "title": "Enrollment Approved",
        "message": 'Your enrollment request for "Algebra I" has been approved.',
        "type": "ENROLLMENT_APPROVED",
    }


def test_rejected_notification_includes_reason():
    payload = build_enrollment_notification("Biology", "rejected", "course is full")
    assert payload["title"] == "Enrollment Rejected"
    assert payload["type"] == "ENROLLMENT_REJECTED"
    assert payload["message"] == 'Your enrollment request for "Biology" has been rejected. Reason: course is full'


def test_rejected_notification_without_reason():
    payload = build_enrollment_notification("Biology", "rejected")
    assert payload["message"].endswith("has been rejected.")


def test_unknown_outcome():
    with pytest.raises(ValueError):
        build_enrollment_notification("Biology", "pending")


def test_database_dispatcher_writes_row(session_factory, db, seed):
    dispatcher = DatabaseNotificationDispatcher(session_factory)

    dispatcher.notify_enrollment_outcome(seed.alice, "Algebra I", "approved")

    rows = db.query(Notification).filter(Notification.user_id == seed.alice).all()
    assert len(rows) == 1
    assert rows[0].type == "ENROLLMENT_APPROVED"
    assert rows[0].is_read is False


def test_approval_through_manager_persists_notification(store, session_factory, db, seed):
    from api.services.enrollment_requests import EnrollmentRequestManager

    manager = EnrollmentRequestManager(store, DatabaseNotificationDispatcher(session_factory))
    request = manager.create_request(seed.bob, seed.biology)
    manager.reject(request.id, admin_note="prerequisites missing", reviewer_id=seed.admin)

    notification = db.query(Notification).filter(Notification.user_id == seed.bob).one()
    assert notification.title == "Enrollment Rejected"
    assert "Reason: prerequisites missing" in notification.message


def test_celery_dispatcher_enqueues_task(monkeypatch):
    from worker import tasks

    sent = []

    class FakeResult:
        id = "task-1"

    class FakeTask:
        def delay(self, *args):
            sent.append(args)
            return FakeResult()

    monkeypatch.setattr(tasks, "deliver_enrollment_notification_task", FakeTask())

    CeleryNotificationDispatcher().notify_enrollment_outcome(7, "Chemistry", "rejected", "full")

    assert sent == [(7, "Chemistry", "rejected", "full")]


@pytest.mark.parametrize("backend, expected", [
    ("database", DatabaseNotificationDispatcher),
    ("celery", CeleryNotificationDispatcher),
    ("none", NullNotificationDispatcher),
])
def test_dispatcher_selected_from_settings(monkeypatch, backend, expected):
    class FakeSettings:
        notification_backend = backend

    monkeypatch.setattr(notifications, "get_settings", lambda: FakeSettings())
    assert isinstance(get_notification_dispatcher(), expected)
