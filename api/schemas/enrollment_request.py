from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from api.models.enrollment_request import EnrollmentRequestStatus


class ORMSchema(BaseModel):
    """Response schemas read straight from ORM rows and service dataclasses."""

    model_config = ConfigDict(from_attributes=True)


# Request schemas
class EnrollmentRequestCreate(BaseModel):
    student_id: int
    course_id: int
    message: Optional[str] = Field(default=None, max_length=2000)


class ReviewDecision(BaseModel):
    admin_note: Optional[str] = Field(default=None, max_length=2000)


class BulkReviewRequest(BaseModel):
    """Empty lists and unknown actions are rejected by the service, not here."""
    request_ids: List[int]
    action: str
    admin_note: Optional[str] = Field(default=None, max_length=2000)


# Response schemas
class StudentSummary(ORMSchema):
    id: int
    name: str
    email: str


class CourseSummary(ORMSchema):
    id: int
    title: str
    description: Optional[str] = None


class EnrollmentRequestResponse(ORMSchema):
    id: int
    student_id: int
    course_id: int
    status: EnrollmentRequestStatus
    message: Optional[str] = None
    admin_note: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    student: Optional[StudentSummary] = None
    course: Optional[CourseSummary] = None


class EnrollmentRequestPage(ORMSchema):
    items: List[EnrollmentRequestResponse]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


class BulkFailure(BaseModel):
    request_id: int
    error: str


class BulkOperationResponse(ORMSchema):
    successful: List[int]
    failed: List[BulkFailure]
    total_processed: int
    success_count: int
    failure_count: int


class MonthCount(BaseModel):
    month: str
    count: int


class CourseCount(BaseModel):
    course_id: int
    course_title: str
    count: int


class EnrollmentRequestStatistics(ORMSchema):
    total_requests: int
    pending_requests: int
    approved_requests: int
    rejected_requests: int
    requests_by_month: List[MonthCount]
    requests_by_course: List[CourseCount]
    recent_requests: List[EnrollmentRequestResponse]


class PendingCount(BaseModel):
    count: int
