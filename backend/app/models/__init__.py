from app.models.teacher import Teacher
from app.models.student import Student
from app.models.relationship import TeacherStudentRelationship

__all__ = ["Teacher", "Student", "TeacherStudentRelationship"]
