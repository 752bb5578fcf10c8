"""
Relationship Store - persistence capability consumed by the relationship service.

`RelationshipStore` is the protocol the service depends on. The SQLAlchemy
implementation below is the only production backend; tests use an
in-memory implementation of the same protocol.

Mutations only flush. Committing is left to whoever owns the session (the
request handler), so a failed request leaves nothing behind.
"""

import functools
from typing import Iterable, List, Optional, Protocol, Set

from sqlalchemy import distinct, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.student import Student
from app.models.teacher import Teacher
from app.models.relationship import TeacherStudentRelationship
from app.logging_config import get_logger, log_with_context

logger = get_logger("db")


class StoreError(Exception):
    """Generic storage failure. The original cause is chained, not inspected."""


class RelationshipStore(Protocol):
    """Existence checks and mutations for teachers, students and relationships."""

    def teacher_exists(self, email: str) -> bool: ...

    def existing_teachers(self, emails: Iterable[str]) -> Set[str]: ...

    def student_exists(self, email: str) -> bool: ...

    def create_student(self, email: str) -> None: ...

    def get_student_suspension(self, email: str) -> Optional[bool]: ...

    def suspend_student(self, email: str) -> None: ...

    def existing_relationships(self, teacher_email: str, student_emails: Iterable[str]) -> List[str]: ...

    def create_relationship(self, teacher_email: str, student_email: str) -> None: ...

    def common_students(self, teacher_emails: Iterable[str]) -> List[str]: ...

    def active_recipients(self, teacher_email: str, mentioned_emails: Iterable[str]) -> List[str]: ...


def _storage_operation(method):
    """Translate SQLAlchemy failures raised by a store method into StoreError."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            log_with_context(logger, "ERROR",
                "Storage operation {} failed: {}".format(method.__name__, exc.__class__.__name__),
                context={"operation": method.__name__},
                exc_info=exc)
            raise StoreError(f"{method.__name__} failed") from exc
    return wrapper


class SqlAlchemyRelationshipStore:
    """RelationshipStore backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    @_storage_operation
    def teacher_exists(self, email: str) -> bool:
        count = self.db.scalar(
            select(func.count()).select_from(Teacher).where(Teacher.email == email)
        )
        return count > 0

    @_storage_operation
    def existing_teachers(self, emails: Iterable[str]) -> Set[str]:
        emails = list(emails)
        if not emails:
            return set()
        rows = self.db.scalars(select(Teacher.email).where(Teacher.email.in_(emails)))
        return set(rows)

    @_storage_operation
    def student_exists(self, email: str) -> bool:
        count = self.db.scalar(
            select(func.count()).select_from(Student).where(Student.email == email)
        )
        return count > 0

    @_storage_operation
    def create_student(self, email: str) -> None:
        self.db.add(Student(email=email, is_suspended=False))
        self.db.flush()

    @_storage_operation
    def get_student_suspension(self, email: str) -> Optional[bool]:
        suspended = self.db.scalar(select(Student.is_suspended).where(Student.email == email))
        return None if suspended is None else bool(suspended)

    @_storage_operation
    def suspend_student(self, email: str) -> None:
        self.db.execute(
            update(Student).where(Student.email == email).values(is_suspended=True)
        )
        self.db.flush()

    @_storage_operation
    def existing_relationships(self, teacher_email: str, student_emails: Iterable[str]) -> List[str]:
        student_emails = list(student_emails)
        if not student_emails:
            return []
        rows = self.db.scalars(
            select(TeacherStudentRelationship.student_email)
            .where(TeacherStudentRelationship.teacher_email == teacher_email)
            .where(TeacherStudentRelationship.student_email.in_(student_emails))
            .distinct()
        )
        linked = set(rows)
        # Report in request order
        return [email for email in dict.fromkeys(student_emails) if email in linked]

    @_storage_operation
    def create_relationship(self, teacher_email: str, student_email: str) -> None:
        self.db.add(TeacherStudentRelationship(
            teacher_email=teacher_email,
            student_email=student_email,
        ))
        self.db.flush()

    @_storage_operation
    def common_students(self, teacher_emails: Iterable[str]) -> List[str]:
        teachers = set(teacher_emails)
        if not teachers:
            return []
        query = (
            select(TeacherStudentRelationship.student_email)
            .where(TeacherStudentRelationship.teacher_email.in_(teachers))
            .group_by(TeacherStudentRelationship.student_email)
            .having(func.count(distinct(TeacherStudentRelationship.teacher_email)) == len(teachers))
        )
        return list(self.db.scalars(query))

    @_storage_operation
    def active_recipients(self, teacher_email: str, mentioned_emails: Iterable[str]) -> List[str]:
        mentioned = list(mentioned_emails)
        registered = (
            select(TeacherStudentRelationship.student_email)
            .where(TeacherStudentRelationship.teacher_email == teacher_email)
        )
        membership = Student.email.in_(registered)
        if mentioned:
            membership = or_(membership, Student.email.in_(mentioned))
        query = (
            select(Student.email)
            .where(Student.is_suspended.is_(False))
            .where(membership)
            .order_by(Student.email)
        )
        return list(self.db.scalars(query))
