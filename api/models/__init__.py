# Import all models here so Base.metadata is complete for Alembic
from api.models.user import User
from api.models.course import Course
from api.models.enrollment import Enrollment
from api.models.enrollment_request import EnrollmentRequest, EnrollmentRequestStatus
from api.models.notification import Notification

__all__ = [
    "User",
    "Course",
    "Enrollment",
    "EnrollmentRequest",
    "EnrollmentRequestStatus",
    "Notification",
]
