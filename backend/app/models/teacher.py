"""
Teacher model - represents teachers who send classroom notifications.

Teachers are identified by email and are created out of band (seed data);
the API never inserts or updates them.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship
from app.database import Base


class Teacher(Base):
    """SQLAlchemy model for the teacher table."""
    __tablename__ = "teacher"

    email = Column(String(255), primary_key=True,
                   doc="Teacher email, matched exactly (no normalization)")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        doc="Timestamp when teacher record was created")

    relationships = relationship("TeacherStudentRelationship", back_populates="teacher")

    def __repr__(self):
        return f"<Teacher(email='{self.email}')>"
