"""
Student model - represents students who receive notifications.

Students are created implicitly the first time a teacher registers them.
The only mutation afterwards is suspension, which is one-way.
"""

from datetime import datetime, timezone
from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship
from app.database import Base


class Student(Base):
    """
    SQLAlchemy model for the student table.

    A suspended student never receives notifications, even when a teacher
    mentions them explicitly.
    """
    __tablename__ = "student"

    email = Column(String(255), primary_key=True,
                   doc="Student email, matched exactly (no normalization)")
    is_suspended = Column(Boolean, nullable=False, default=False,
                          doc="Suspended students are excluded from every recipient list")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        doc="Timestamp when student record was created")

    relationships = relationship("TeacherStudentRelationship", back_populates="student")

    def __repr__(self):
        return f"<Student(email='{self.email}', suspended={self.is_suspended})>"
