"""
Teacher-student relationship model.

A row grants a teacher's notifications visibility to a student. The pair
carries no uniqueness constraint; duplicate registration is rejected by the
relationship service before insert.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from app.database import Base


class TeacherStudentRelationship(Base):
    """SQLAlchemy model for the teacher_student_rs table."""
    __tablename__ = "teacher_student_rs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    teacher_email = Column(String(255), ForeignKey("teacher.email"), nullable=False,
                           doc="Teacher who registered the student")
    student_email = Column(String(255), ForeignKey("student.email"), nullable=False,
                           doc="Registered student")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        doc="Timestamp when the student was registered")

    teacher = relationship("Teacher", back_populates="relationships")
    student = relationship("Student", back_populates="relationships")

    __table_args__ = (
        Index("ix_teacher_student_rs_teacher_email", "teacher_email"),
        Index("ix_teacher_student_rs_student_email", "student_email"),
    )

    def __repr__(self):
        return f"<TeacherStudentRelationship(teacher='{self.teacher_email}', student='{self.student_email}')>"
