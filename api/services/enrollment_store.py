"""SQLAlchemy access layer for enrollment requests and enrollments."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy.orm import Session, joinedload

from api.models.course import Course
from api.models.enrollment import Enrollment
from api.models.enrollment_request import EnrollmentRequest, EnrollmentRequestStatus, utcnow
from api.models.user import User


class EnrollmentStore:
    """Reads and writes the request and enrollment tables on one session.

    Writes are flushed but never committed here; callers wrap them in
    :meth:`atomic` so the request update and the enrollment insert share a
    transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def atomic(self) -> Iterator[Session]:
        """Commit on success, roll back on any exception."""
        try:
            yield self.db
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def rollback(self) -> None:
        self.db.rollback()

    # -- collaborators -----------------------------------------------------

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_course(self, course_id: int) -> Optional[Course]:
        return self.db.query(Course).filter(Course.id == course_id).first()

    # -- requests ----------------------------------------------------------

    def get_request(self, request_id: int) -> Optional[EnrollmentRequest]:
        return (
            self.db.query(EnrollmentRequest)
            .options(joinedload(EnrollmentRequest.student), joinedload(EnrollmentRequest.course))
            .filter(EnrollmentRequest.id == request_id)
            .first()
        )

    def find_request(self, student_id: int, course_id: int) -> Optional[EnrollmentRequest]:
        return (
            self.db.query(EnrollmentRequest)
            .filter(
                EnrollmentRequest.student_id == student_id,
                EnrollmentRequest.course_id == course_id,
            )
            .first()
        )

    def add_request(self, student_id: int, course_id: int, message: Optional[str]) -> EnrollmentRequest:
        request = EnrollmentRequest(
            student_id=student_id,
            course_id=course_id,
            message=message,
            status=EnrollmentRequestStatus.pending,
        )
        self.db.add(request)
        self.db.flush()
        return request

    def reopen_request(self, request: EnrollmentRequest, message: Optional[str]) -> EnrollmentRequest:
        request.status = EnrollmentRequestStatus.pending
        request.message = message
        request.admin_note = None
        request.reviewed_by = None
        request.reviewed_at = None
        request.updated_at = utcnow()
        self.db.flush()
        return request

    def mark_reviewed(
        self,
        request_id: int,
        status: EnrollmentRequestStatus,
        admin_note: Optional[str],
        reviewer_id: Optional[int],
        reviewed_at: datetime,
    ) -> int:
        """Move a request out of ``pending``; returns the number of rows changed.

        The update is conditional on the row still being pending, so a second
        reviewer racing the first sees zero rows instead of overwriting.
        """
        return (
            self.db.query(EnrollmentRequest)
            .filter(
                EnrollmentRequest.id == request_id,
                EnrollmentRequest.status == EnrollmentRequestStatus.pending,
            )
            .update(
                {
                    EnrollmentRequest.status: status,
                    EnrollmentRequest.admin_note: admin_note,
                    EnrollmentRequest.reviewed_by: reviewer_id,
                    EnrollmentRequest.reviewed_at: reviewed_at,
                    EnrollmentRequest.updated_at: reviewed_at,
                },
                synchronize_session=False,
            )
        )

    def delete_request(self, request: EnrollmentRequest) -> None:
        self.db.delete(request)
        self.db.flush()

    # -- enrollments -------------------------------------------------------

    def enrollment_exists(self, student_id: int, course_id: int) -> bool:
        return (
            self.db.query(Enrollment.id)
            .filter(Enrollment.user_id == student_id, Enrollment.course_id == course_id)
            .first()
            is not None
        )

    def add_enrollment(self, student_id: int, course_id: int) -> Enrollment:
        enrollment = Enrollment(user_id=student_id, course_id=course_id)
        self.db.add(enrollment)
        self.db.flush()
        return enrollment
