"""Read-only listing and statistics over enrollment requests."""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import asc, desc, func
from sqlalchemy.orm import Session, joinedload

from api.core.errors import InvalidArgumentError
from api.models.course import Course
from api.models.enrollment_request import EnrollmentRequest, EnrollmentRequestStatus
from api.models.user import User

logger = logging.getLogger(__name__)

SORT_FIELDS = {"created_at", "updated_at", "student_name", "course_title"}


@dataclass
class EnrollmentRequestFilters:
    status: Optional[EnrollmentRequestStatus] = None
    course_id: Optional[int] = None
    student_id: Optional[int] = None
    search: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    page: int = 1
    limit: int = 20
    sort_by: str = "created_at"
    sort_order: str = "desc"


class EnrollmentRequestQueries:
    def __init__(self, db: Session):
        self.db = db

    def _base_query(self):
        return self.db.query(EnrollmentRequest).options(
            joinedload(EnrollmentRequest.student),
            joinedload(EnrollmentRequest.course),
        )

    def list_requests(self, filters: Optional[EnrollmentRequestFilters] = None) -> Dict[str, Any]:
        """Filtered, sorted, offset-paginated listing. Filters combine with AND."""
        filters = filters or EnrollmentRequestFilters()
        if filters.page < 1 or filters.limit < 1:
            raise InvalidArgumentError("page and limit must be positive")
        if filters.sort_by not in SORT_FIELDS:
            raise InvalidArgumentError(f"Cannot sort by '{filters.sort_by}'")
        if filters.sort_order not in ("asc", "desc"):
            raise InvalidArgumentError("sort_order must be 'asc' or 'desc'")

        query = (
            self.db.query(EnrollmentRequest)
            .join(User, EnrollmentRequest.student_id == User.id)
            .join(Course, EnrollmentRequest.course_id == Course.id)
        )
        if filters.status:
            query = query.filter(EnrollmentRequest.status == filters.status)
        if filters.course_id is not None:
            query = query.filter(EnrollmentRequest.course_id == filters.course_id)
        if filters.student_id is not None:
            query = query.filter(EnrollmentRequest.student_id == filters.student_id)
        if filters.search:
            query = query.filter(User.name.icontains(filters.search, autoescape=True))
        if filters.date_from:
            query = query.filter(EnrollmentRequest.created_at >= filters.date_from)
        if filters.date_to:
            query = query.filter(EnrollmentRequest.created_at <= filters.date_to)

        total = query.count()

        sort_column = {
            "created_at": EnrollmentRequest.created_at,
            "updated_at": EnrollmentRequest.updated_at,
            "student_name": User.name,
            "course_title": Course.title,
        }[filters.sort_by]
        direction = asc if filters.sort_order == "asc" else desc

        items = (
            query.options(joinedload(EnrollmentRequest.student), joinedload(EnrollmentRequest.course))
            .order_by(direction(sort_column), direction(EnrollmentRequest.id))
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
            .all()
        )

        total_pages = math.ceil(total / filters.limit)
        return {
            "items": items,
            "total": total,
            "page": filters.page,
            "limit": filters.limit,
            "total_pages": total_pages,
            "has_next": filters.page < total_pages,
            "has_prev": filters.page > 1,
        }

    def list_for_student(self, student_id: int) -> List[EnrollmentRequest]:
        return (
            self._base_query()
            .filter(EnrollmentRequest.student_id == student_id)
            .order_by(EnrollmentRequest.created_at.desc(), EnrollmentRequest.id.desc())
            .all()
        )

    def pending_count(self) -> int:
        return (
            self.db.query(func.count(EnrollmentRequest.id))
            .filter(EnrollmentRequest.status == EnrollmentRequestStatus.pending)
            .scalar()
        )

    def statistics(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Status totals, last six months, top ten courses and ten newest requests."""
        counts = dict(
            self.db.query(EnrollmentRequest.status, func.count(EnrollmentRequest.id))
            .group_by(EnrollmentRequest.status)
            .all()
        )
        pending = counts.get(EnrollmentRequestStatus.pending, 0)
        approved = counts.get(EnrollmentRequestStatus.approved, 0)
        rejected = counts.get(EnrollmentRequestStatus.rejected, 0)

        return {
            "total_requests": pending + approved + rejected,
            "pending_requests": pending,
            "approved_requests": approved,
            "rejected_requests": rejected,
            "requests_by_month": self._requests_by_month(now or datetime.now(timezone.utc)),
            "requests_by_course": self._requests_by_course(),
            "recent_requests": self.list_requests(EnrollmentRequestFilters(limit=10))["items"],
        }

    def _requests_by_month(self, now: datetime) -> List[Dict[str, Any]]:
        # Bucketed in Python so the query stays portable across backends.
        since = now - timedelta(days=183)
        rows = (
            self.db.query(EnrollmentRequest.created_at)
            .filter(EnrollmentRequest.created_at >= since)
            .all()
        )
        buckets: Dict[str, int] = {}
        for (created_at,) in rows:
            month = created_at.strftime("%Y-%m")
            buckets[month] = buckets.get(month, 0) + 1
        months = sorted(buckets.items(), reverse=True)[:6]
        return [{"month": month, "count": count} for month, count in months]

    def _requests_by_course(self) -> List[Dict[str, Any]]:
        request_count = func.count(EnrollmentRequest.id).label("count")
        rows = (
            self.db.query(EnrollmentRequest.course_id, Course.title, request_count)
            .outerjoin(Course, EnrollmentRequest.course_id == Course.id)
            .group_by(EnrollmentRequest.course_id, Course.title)
            .order_by(request_count.desc(), EnrollmentRequest.course_id)
            .limit(10)
            .all()
        )
        return [
            {"course_id": course_id, "course_title": title or "Unknown Course", "count": count}
            for course_id, title, count in rows
        ]
