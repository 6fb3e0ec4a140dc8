import pytest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from api.core.errors import (
    AlreadyEnrolledError,
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    RequestAlreadyApprovedError,
    RequestAlreadyPendingError,
)
from api.models.enrollment import Enrollment
from api.models.enrollment_request import EnrollmentRequest, EnrollmentRequestStatus
from api.services.enrollment_requests import EnrollmentRequestManager


def _enrollment_count(db, student_id, course_id):
    return db.query(Enrollment).filter(
        Enrollment.user_id == student_id, Enrollment.course_id == course_id
    ).count()


def test_create_request_starts_pending(manager, seed):
    request = manager.create_request(seed.alice, seed.algebra, "  I'd like to join  ")

    assert request.status == EnrollmentRequestStatus.pending
    assert request.message == "I'd like to join"
    assert request.reviewed_at is None
    assert request.reviewed_by is None
    assert request.student.name == "Alice Johnson"
    assert request.course.title == "Algebra I"


def test_blank_message_is_stored_as_null(manager, seed):
    request = manager.create_request(seed.alice, seed.algebra, "   ")
    assert request.message is None


def test_create_request_unknown_course(manager, seed):
    with pytest.raises(NotFoundError, match="Course not found"):
        manager.create_request(seed.alice, 9999)


def test_create_request_unknown_or_non_student(manager, seed):
    with pytest.raises(NotFoundError, match="Student not found"):
        manager.create_request(9999, seed.algebra)
    with pytest.raises(NotFoundError, match="Student not found"):
        manager.create_request(seed.instructor, seed.algebra)


def test_duplicate_pending_request_rejected(manager, seed):
    manager.create_request(seed.alice, seed.algebra)
    with pytest.raises(RequestAlreadyPendingError):
        manager.create_request(seed.alice, seed.algebra)


def test_approve_creates_enrollment_and_notifies(manager, dispatcher, db, seed):
    request = manager.create_request(seed.alice, seed.algebra)

    approved = manager.approve(request.id, admin_note="ok", reviewer_id=seed.admin)

    assert approved.status == EnrollmentRequestStatus.approved
    assert approved.admin_note == "ok"
    assert approved.reviewed_by == seed.admin
    assert approved.reviewed_at is not None
    assert _enrollment_count(db, seed.alice, seed.algebra) == 1
    assert dispatcher.calls == [
        {"user_id": seed.alice, "course_title": "Algebra I", "outcome": "approved", "admin_note": "ok"}
    ]


def test_create_after_approval_reports_already_enrolled(manager, seed):
    request = manager.create_request(seed.alice, seed.algebra)
    manager.approve(request.id, reviewer_id=seed.admin)

    with pytest.raises(AlreadyEnrolledError):
        manager.create_request(seed.alice, seed.algebra)


def test_create_with_approved_request_but_no_enrollment(manager, db, seed):
    request = manager.create_request(seed.alice, seed.algebra)
    manager.approve(request.id, reviewer_id=seed.admin)
    # Unenrollment removes the enrollment but leaves the request row approved.
    db.query(Enrollment).delete()
    db.commit()

    with pytest.raises(RequestAlreadyApprovedError):
        manager.create_request(seed.alice, seed.algebra)


def test_reject_then_resubmit_reuses_row(manager, dispatcher, db, seed):
    request = manager.create_request(seed.bob, seed.biology, "first try")
    rejected = manager.reject(request.id, admin_note="prerequisites missing", reviewer_id=seed.admin)
    assert rejected.status == EnrollmentRequestStatus.rejected
    assert dispatcher.calls[-1]["outcome"] == "rejected"

    again = manager.create_request(seed.bob, seed.biology, "second try")

    assert again.id == request.id
    assert again.status == EnrollmentRequestStatus.pending
    assert again.message == "second try"
    assert again.admin_note is None
    assert again.reviewed_by is None
    assert again.reviewed_at is None
    assert db.query(EnrollmentRequest).filter(
        EnrollmentRequest.student_id == seed.bob, EnrollmentRequest.course_id == seed.biology
    ).count() == 1
    assert _enrollment_count(db, seed.bob, seed.biology) == 0


def test_decide_on_missing_request(manager, seed):
    with pytest.raises(NotFoundError):
        manager.approve(12345, reviewer_id=seed.admin)


def test_decide_on_reviewed_request_is_invalid_transition(manager, seed):
    request = manager.create_request(seed.alice, seed.algebra)
    manager.reject(request.id, reviewer_id=seed.admin)

    with pytest.raises(InvalidTransitionError, match="Only pending requests can be reviewed"):
        manager.approve(request.id, reviewer_id=seed.admin)


def test_decide_rejects_pending_as_outcome(manager, seed):
    request = manager.create_request(seed.alice, seed.algebra)
    with pytest.raises(InvalidArgumentError):
        manager.decide(request.id, "pending")
    with pytest.raises(InvalidArgumentError):
        manager.decide(request.id, "maybe")


def test_approve_after_direct_enrollment_fails_and_keeps_pending(manager, dispatcher, db, seed):
    request = manager.create_request(seed.carol, seed.chemistry)
    db.add(Enrollment(user_id=seed.carol, course_id=seed.chemistry))
    db.commit()

    with pytest.raises(AlreadyEnrolledError):
        manager.approve(request.id, reviewer_id=seed.admin)

    db.expire_all()
    assert manager.get_request(request.id).status == EnrollmentRequestStatus.pending
    assert dispatcher.calls == []


def test_reject_allowed_even_if_enrolled(manager, db, seed):
    request = manager.create_request(seed.carol, seed.chemistry)
    db.add(Enrollment(user_id=seed.carol, course_id=seed.chemistry))
    db.commit()

    rejected = manager.reject(request.id, reviewer_id=seed.admin)
    assert rejected.status == EnrollmentRequestStatus.rejected


def test_enrollment_insert_failure_rolls_back_status(manager, store, dispatcher, db, seed, monkeypatch):
    request = manager.create_request(seed.alice, seed.algebra)

    def failing_insert(student_id, course_id):
        raise SQLAlchemyError("enrollment insert failed")

    monkeypatch.setattr(store, "add_enrollment", failing_insert)

    with pytest.raises(SQLAlchemyError):
        manager.approve(request.id, reviewer_id=seed.admin)

    db.expire_all()
    reloaded = db.query(EnrollmentRequest).filter(EnrollmentRequest.id == request.id).one()
    assert reloaded.status == EnrollmentRequestStatus.pending
    assert reloaded.reviewed_by is None
    assert _enrollment_count(db, seed.alice, seed.algebra) == 0
    assert dispatcher.calls == []


def test_duplicate_enrollment_constraint_maps_to_already_enrolled(manager, store, db, seed, monkeypatch):
    request = manager.create_request(seed.alice, seed.algebra)
    db.add(Enrollment(user_id=seed.alice, course_id=seed.algebra))
    db.commit()
    # Simulate the enrollment appearing between the re-check and the insert.
    monkeypatch.setattr(store, "enrollment_exists", lambda student_id, course_id: False)

    with pytest.raises(AlreadyEnrolledError):
        manager.approve(request.id, reviewer_id=seed.admin)

    db.expire_all()
    assert manager.get_request(request.id).status == EnrollmentRequestStatus.pending
    assert _enrollment_count(db, seed.alice, seed.algebra) == 1


def test_concurrent_review_loses_conditional_update(manager, db, seed):
    request = manager.create_request(seed.alice, seed.algebra)
    manager.get_request(request.id)
    # Another reviewer flips the row behind this session's back.
    db.connection().execute(
        text("UPDATE enrollment_requests SET status = 'approved' WHERE id = :id"),
        {"id": request.id},
    )

    with pytest.raises(InvalidTransitionError):
        manager.approve(request.id, reviewer_id=seed.admin)
    assert _enrollment_count(db, seed.alice, seed.algebra) == 0


def test_notification_failure_does_not_fail_review(store, failing_dispatcher, db, seed):
    manager = EnrollmentRequestManager(store, failing_dispatcher)
    request = manager.create_request(seed.alice, seed.algebra)

    approved = manager.approve(request.id, reviewer_id=seed.admin)

    assert approved.status == EnrollmentRequestStatus.approved
    assert _enrollment_count(db, seed.alice, seed.algebra) == 1


def test_delete_request_leaves_enrollment(manager, db, seed):
    request = manager.create_request(seed.alice, seed.algebra)
    manager.approve(request.id, reviewer_id=seed.admin)

    manager.delete_request(request.id)

    assert db.query(EnrollmentRequest).count() == 0
    assert _enrollment_count(db, seed.alice, seed.algebra) == 1
    with pytest.raises(NotFoundError):
        manager.delete_request(request.id)
