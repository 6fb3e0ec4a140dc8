from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Optional
from datetime import datetime
from api.core.auth import require_admin, require_owner_or_admin, require_student
from api.core.config import get_settings
from api.core.database import get_db
from api.models.enrollment_request import EnrollmentRequestStatus
from api.models.user import User
from api.schemas.enrollment_request import (
    BulkOperationResponse,
    BulkReviewRequest,
    EnrollmentRequestCreate,
    EnrollmentRequestPage,
    EnrollmentRequestResponse,
    EnrollmentRequestStatistics,
    PendingCount,
    ReviewDecision,
)
from api.services.enrollment_queries import EnrollmentRequestFilters, EnrollmentRequestQueries
from api.services.enrollment_requests import BulkReviewCoordinator, EnrollmentRequestManager
from api.services.enrollment_store import EnrollmentStore
from api.services.notifications import NotificationDispatcher, get_notification_dispatcher

router = APIRouter()


def get_manager(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> EnrollmentRequestManager:
    return EnrollmentRequestManager(EnrollmentStore(db), dispatcher)


def get_queries(db: Session = Depends(get_db)) -> EnrollmentRequestQueries:
    return EnrollmentRequestQueries(db)


def _database_error(db: Session, e: SQLAlchemyError) -> HTTPException:
    db.rollback()
    return HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.post("/", response_model=EnrollmentRequestResponse, status_code=status.HTTP_201_CREATED)
def create_enrollment_request(
    payload: EnrollmentRequestCreate,
    manager: EnrollmentRequestManager = Depends(get_manager),
    db: Session = Depends(get_db),
):
    """Submit a request to join a course. (Student only)"""
    require_student(payload.student_id, db)
    try:
        return manager.create_request(payload.student_id, payload.course_id, payload.message)
    except SQLAlchemyError as e:
        raise _database_error(db, e)


# IMPORTANT: These routes must be before /{request_id} to avoid path conflicts
@router.get("/", response_model=EnrollmentRequestPage)
def list_enrollment_requests(
    status_filter: Optional[EnrollmentRequestStatus] = Query(default=None, alias="status"),
    course_id: Optional[int] = None,
    student_id: Optional[int] = None,
    search: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    sort_by: str = Query(default="created_at", pattern="^(created_at|updated_at|student_name|course_title)$"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    admin: User = Depends(require_admin),
    queries: EnrollmentRequestQueries = Depends(get_queries),
):
    """List enrollment requests with filters and pagination. (Admin only)"""
    settings = get_settings()
    filters = EnrollmentRequestFilters(
        status=status_filter,
        course_id=course_id,
        student_id=student_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=min(limit or settings.default_page_size, settings.max_page_size),
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return queries.list_requests(filters)


@router.get("/count/pending", response_model=PendingCount)
def get_pending_count(
    admin: User = Depends(require_admin),
    queries: EnrollmentRequestQueries = Depends(get_queries),
):
    """Number of requests awaiting review. (Admin only)"""
    return {"count": queries.pending_count()}


@router.get("/statistics", response_model=EnrollmentRequestStatistics)
def get_statistics(
    admin: User = Depends(require_admin),
    queries: EnrollmentRequestQueries = Depends(get_queries),
):
    """Aggregate counts over enrollment requests. (Admin only)"""
    return queries.statistics()


@router.get("/student/{student_id}", response_model=List[EnrollmentRequestResponse])
def list_student_requests(
    student_id: int,
    viewer_user_id: int,
    queries: EnrollmentRequestQueries = Depends(get_queries),
    db: Session = Depends(get_db),
):
    """A student's enrollment requests, newest first. Admins or the student only."""
    require_owner_or_admin(viewer_user_id, student_id, db)
    require_student(student_id, db)
    return queries.list_for_student(student_id)


@router.post("/bulk-process", response_model=BulkOperationResponse)
def bulk_process_requests(
    payload: BulkReviewRequest,
    response: Response,
    admin: User = Depends(require_admin),
    manager: EnrollmentRequestManager = Depends(get_manager),
):
    """Approve or reject many requests at once. (Admin only)

    Returns 200 when every item succeeded, 207 on partial success and 400
    when every item failed. The body always lists per-item outcomes.
    """
    result = BulkReviewCoordinator(manager).bulk_decide(
        payload.request_ids, payload.action, payload.admin_note, admin.id
    )
    if result.failure_count and not result.success_count:
        response.status_code = status.HTTP_400_BAD_REQUEST
    elif result.failure_count:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return result


@router.get("/{request_id}", response_model=EnrollmentRequestResponse)
def get_enrollment_request(
    request_id: int,
    viewer_user_id: int,
    manager: EnrollmentRequestManager = Depends(get_manager),
    db: Session = Depends(get_db),
):
    """Get a request by ID. Admins see any request, students only their own."""
    request = manager.get_request(request_id)
    require_owner_or_admin(viewer_user_id, request.student_id, db)
    return request


@router.post("/{request_id}/approve", response_model=EnrollmentRequestResponse)
def approve_enrollment_request(
    request_id: int,
    decision: Optional[ReviewDecision] = None,
    admin: User = Depends(require_admin),
    manager: EnrollmentRequestManager = Depends(get_manager),
    db: Session = Depends(get_db),
):
    """Approve a pending request and enroll the student. (Admin only)"""
    admin_note = decision.admin_note if decision else None
    try:
        return manager.approve(request_id, admin_note, admin.id)
    except SQLAlchemyError as e:
        raise _database_error(db, e)


@router.post("/{request_id}/reject", response_model=EnrollmentRequestResponse)
def reject_enrollment_request(
    request_id: int,
    decision: Optional[ReviewDecision] = None,
    admin: User = Depends(require_admin),
    manager: EnrollmentRequestManager = Depends(get_manager),
    db: Session = Depends(get_db),
):
    """Reject a pending request. (Admin only)"""
    admin_note = decision.admin_note if decision else None
    try:
        return manager.reject(request_id, admin_note, admin.id)
    except SQLAlchemyError as e:
        raise _database_error(db, e)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_enrollment_request(
    request_id: int,
    admin: User = Depends(require_admin),
    manager: EnrollmentRequestManager = Depends(get_manager),
    db: Session = Depends(get_db),
):
    """Delete a request row for cleanup. (Admin only)"""
    try:
        manager.delete_request(request_id)
    except SQLAlchemyError as e:
        raise _database_error(db, e)
