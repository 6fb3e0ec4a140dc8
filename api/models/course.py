from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from api.core.database import Base


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships with cascades to avoid orphan rows
    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan")
    enrollment_requests = relationship("EnrollmentRequest", back_populates="course", cascade="all, delete-orphan")
    creator = relationship("User", foreign_keys=[created_by])
