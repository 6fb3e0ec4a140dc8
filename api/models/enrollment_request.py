from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
import enum
from api.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EnrollmentRequestStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class EnrollmentRequest(Base):
    """A student's petition to join a course, subject to admin review.

    At most one row exists per (student, course); a rejected row is reused
    when the student submits again.
    """
    __tablename__ = "enrollment_requests"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        SAEnum(EnrollmentRequestStatus, name="enrollment_request_status"),
        nullable=False,
        default=EnrollmentRequestStatus.pending,
        index=True,
    )
    message = Column(Text, nullable=True)
    admin_note = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    student = relationship("User", back_populates="enrollment_requests", foreign_keys=[student_id])
    course = relationship("Course", back_populates="enrollment_requests")
    reviewer = relationship("User", foreign_keys=[reviewed_by])

    __table_args__ = (
        UniqueConstraint('student_id', 'course_id', name='unique_enrollment_request'),
    )
