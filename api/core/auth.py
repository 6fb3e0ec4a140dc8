from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from api.core.database import get_db
from api.models.user import User, UserRole


def require_admin(admin_user_id: int, db: Session = Depends(get_db)) -> User:
    """Resolve ``admin_user_id`` to an admin user or reject the call.

    TODO: Replace the query parameter with the identity from a validated JWT.
    """
    admin = db.query(User).filter(User.id == admin_user_id).first()
    if not admin or not admin.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return admin


def require_student(user_id: int, db: Session) -> User:
    """Return the user if they hold the student role."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user or user.role != UserRole.student:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only students can access this endpoint",
        )
    return user


def require_owner_or_admin(viewer_user_id: int, owner_id: int, db: Session) -> User:
    """Let the viewer through if they are an admin or the owning user."""
    viewer = db.query(User).filter(User.id == viewer_user_id).first()
    if not viewer or (not viewer.is_admin and viewer.id != owner_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return viewer
