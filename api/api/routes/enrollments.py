import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from typing import List, Optional
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from api.core.auth import require_admin, require_owner_or_admin, require_student
from api.core.database import get_db
from api.models.enrollment import Enrollment
from api.models.user import User, UserRole
from api.models.course import Course

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/Response schemas
class EnrollmentCreate(BaseModel):
    user_id: int
    course_id: int


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    course_id: int
    enrolled_at: datetime


class UserCourseResponse(BaseModel):
    enrollment_id: int
    course_id: int
    course_title: str
    course_description: Optional[str] = None
    enrolled_at: datetime


@router.post("/", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
def enroll_user(
    enrollment: EnrollmentCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Enroll a student directly, without an enrollment request. (Admin only)"""
    user = db.query(User).filter(User.id == enrollment.user_id).first()
    if not user or user.role != UserRole.student:
        raise HTTPException(status_code=404, detail="Student not found")

    course = db.query(Course).filter(Course.id == enrollment.course_id).first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    try:
        db_enrollment = Enrollment(**enrollment.model_dump())
        db.add(db_enrollment)
        db.commit()
        db.refresh(db_enrollment)
        logger.info("Admin %s enrolled user %s in course %s", admin.id, user.id, course.id)
        return db_enrollment
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Student is already enrolled in this course")
    except SQLAlchemyError as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.delete("/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
def unenroll_user(
    enrollment_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Remove a student from a course. Enrollment requests are left as they are. (Admin only)"""
    enrollment = db.query(Enrollment).filter(Enrollment.id == enrollment_id).first()
    if not enrollment:
        raise HTTPException(status_code=404, detail="Enrollment not found")

    try:
        db.delete(enrollment)
        db.commit()
        logger.info("Admin %s removed enrollment %s", admin.id, enrollment_id)
    except SQLAlchemyError as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.get("/user/{user_id}/courses", response_model=List[UserCourseResponse])
def get_user_enrollments(user_id: int, viewer_user_id: int, db: Session = Depends(get_db)):
    """Get all courses a student is enrolled in. Admins or the student only."""
    require_owner_or_admin(viewer_user_id, user_id, db)
    require_student(user_id, db)

    enrollments = (
        db.query(Enrollment, Course)
        .join(Course, Enrollment.course_id == Course.id)
        .filter(Enrollment.user_id == user_id)
        .order_by(Enrollment.enrolled_at.desc())
        .all()
    )

    return [
        UserCourseResponse(
            enrollment_id=enrollment.id,
            course_id=course.id,
            course_title=course.title,
            course_description=course.description,
            enrolled_at=enrollment.enrolled_at,
        )
        for enrollment, course in enrollments
    ]
