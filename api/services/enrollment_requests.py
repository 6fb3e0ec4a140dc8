"""
Enrollment request lifecycle.

A request moves PENDING -> APPROVED or PENDING -> REJECTED, once per round.
A rejected request can be resubmitted, which puts the same row back to
PENDING. Approval creates the Enrollment in the same transaction as the
status change. The student is notified after commit, best effort.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from api.core.errors import (
    AlreadyEnrolledError,
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    RequestAlreadyApprovedError,
    RequestAlreadyPendingError,
)
from api.models.enrollment_request import EnrollmentRequest, EnrollmentRequestStatus, utcnow
from api.models.user import UserRole
from api.services.enrollment_store import EnrollmentStore
from api.services.notifications import NotificationDispatcher, NullNotificationDispatcher

logger = logging.getLogger(__name__)

BULK_ACTIONS = {
    "approve": EnrollmentRequestStatus.approved,
    "reject": EnrollmentRequestStatus.rejected,
}


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class EnrollmentRequestManager:
    """Creates, reviews and deletes enrollment requests."""

    def __init__(self, store: EnrollmentStore, dispatcher: Optional[NotificationDispatcher] = None):
        self.store = store
        self.dispatcher = dispatcher or NullNotificationDispatcher()

    def get_request(self, request_id: int) -> EnrollmentRequest:
        request = self.store.get_request(request_id)
        if not request:
            raise NotFoundError("Enrollment request not found")
        return request

    def create_request(self, student_id: int, course_id: int, message: Optional[str] = None) -> EnrollmentRequest:
        """Submit a request, or revive the student's rejected one for this course."""
        course = self.store.get_course(course_id)
        if not course:
            raise NotFoundError("Course not found")

        student = self.store.get_user(student_id)
        if not student or student.role != UserRole.student:
            raise NotFoundError("Student not found")

        if self.store.enrollment_exists(student_id, course_id):
            raise AlreadyEnrolledError()

        message = _clean_text(message)
        existing = self.store.find_request(student_id, course_id)
        if existing is not None:
            if existing.status == EnrollmentRequestStatus.pending:
                raise RequestAlreadyPendingError()
            if existing.status == EnrollmentRequestStatus.approved:
                raise RequestAlreadyApprovedError()

        try:
            with self.store.atomic():
                if existing is not None:
                    request = self.store.reopen_request(existing, message)
                    logger.info("Resubmitted enrollment request %s (student=%s course=%s)",
                                request.id, student_id, course_id)
                else:
                    request = self.store.add_request(student_id, course_id, message)
                    logger.info("Created enrollment request %s (student=%s course=%s)",
                                request.id, student_id, course_id)
        except IntegrityError:
            # Another submission for the same pair won the insert.
            raise RequestAlreadyPendingError()

        return self.get_request(request.id)

    def decide(
        self,
        request_id: int,
        outcome: EnrollmentRequestStatus,
        admin_note: Optional[str] = None,
        reviewer_id: Optional[int] = None,
    ) -> EnrollmentRequest:
        """Approve or reject a pending request and return the reviewed row."""
        self.record_decision(request_id, outcome, admin_note, reviewer_id)
        return self.get_request(request_id)

    def record_decision(
        self,
        request_id: int,
        outcome: EnrollmentRequestStatus,
        admin_note: Optional[str] = None,
        reviewer_id: Optional[int] = None,
    ) -> None:
        """Commit a review without reading the row back.

        The status update and, on approval, the enrollment insert commit
        together or not at all. Returning means the review is durable.
        """
        try:
            outcome = EnrollmentRequestStatus(outcome)
        except ValueError:
            raise InvalidArgumentError(f"Invalid review outcome: {outcome}")
        if outcome == EnrollmentRequestStatus.pending:
            raise InvalidArgumentError("Review outcome must be approved or rejected")

        request = self.get_request(request_id)
        if request.status != EnrollmentRequestStatus.pending:
            raise InvalidTransitionError()

        student_id = request.student_id
        course_id = request.course_id
        course_title = request.course.title
        admin_note = _clean_text(admin_note)

        try:
            with self.store.atomic():
                if outcome == EnrollmentRequestStatus.approved and self.store.enrollment_exists(student_id, course_id):
                    raise AlreadyEnrolledError()

                updated = self.store.mark_reviewed(request_id, outcome, admin_note, reviewer_id, utcnow())
                if updated != 1:
                    raise InvalidTransitionError()

                if outcome == EnrollmentRequestStatus.approved:
                    self.store.add_enrollment(student_id, course_id)
        except IntegrityError:
            raise AlreadyEnrolledError()

        logger.info("Enrollment request %s %s by reviewer %s", request_id, outcome.value, reviewer_id)
        self._notify(student_id, course_title, outcome, admin_note)

    def approve(self, request_id: int, admin_note: Optional[str] = None, reviewer_id: Optional[int] = None):
        return self.decide(request_id, EnrollmentRequestStatus.approved, admin_note, reviewer_id)

    def reject(self, request_id: int, admin_note: Optional[str] = None, reviewer_id: Optional[int] = None):
        return self.decide(request_id, EnrollmentRequestStatus.rejected, admin_note, reviewer_id)

    def delete_request(self, request_id: int) -> None:
        """Remove a request row. Enrollments are left untouched."""
        request = self.get_request(request_id)
        with self.store.atomic():
            self.store.delete_request(request)
        logger.info("Deleted enrollment request %s", request_id)

    def _notify(self, user_id: int, course_title: str, outcome: EnrollmentRequestStatus,
                admin_note: Optional[str]) -> None:
        try:
            self.dispatcher.notify_enrollment_outcome(user_id, course_title, outcome.value, admin_note)
        except Exception:
            logger.exception("Failed to notify user %s about %s enrollment request", user_id, outcome.value)


@dataclass
class BulkOperationResult:
    successful: List[int] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)
    total_processed: int = 0
    success_count: int = 0
    failure_count: int = 0


class BulkReviewCoordinator:
    """Applies one review action to many requests, each in its own transaction.

    A failure on one id is recorded and the loop moves on; items that already
    committed are never rolled back.
    """

    def __init__(self, manager: EnrollmentRequestManager):
        self.manager = manager

    def bulk_decide(
        self,
        request_ids: List[int],
        action: str,
        admin_note: Optional[str] = None,
        reviewer_id: Optional[int] = None,
    ) -> BulkOperationResult:
        if not request_ids:
            raise InvalidArgumentError("No request IDs provided")
        if action not in BULK_ACTIONS:
            raise InvalidArgumentError("Invalid action. Must be 'approve' or 'reject'")

        outcome = BULK_ACTIONS[action]
        result = BulkOperationResult(total_processed=len(request_ids))

        for request_id in request_ids:
            try:
                self.manager.record_decision(request_id, outcome, admin_note, reviewer_id)
            except Exception as exc:
                # Leave the session usable for the next item.
                self.manager.store.rollback()
                logger.warning("Failed to %s enrollment request %s: %s", action, request_id, exc)
                result.failed.append({"request_id": request_id, "error": str(exc) or type(exc).__name__})
                result.failure_count += 1
            else:
                result.successful.append(request_id)
                result.success_count += 1

        logger.info(
            "Bulk %s processed %d requests: %d succeeded, %d failed",
            action, result.total_processed, result.success_count, result.failure_count,
        )
        return result
