"""Pytest configuration and shared fixtures.

Provides:
- An in-memory RelationshipStore for service tests
- A SQLAlchemy session on in-memory SQLite for store tests
- A FastAPI TestClient wired to the same database for API tests
"""

import os

# Must be set before anything imports app.database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Dict, Iterable, List, Optional, Set, Tuple

import pytest

from app.database import SessionLocal, create_tables, drop_tables
from app.models import Teacher
from app.services.store import StoreError


# =============================================================================
# In-memory store
# =============================================================================


class InMemoryRelationshipStore:
    """RelationshipStore kept in dicts and lists, with call recording."""

    def __init__(self, teachers: Iterable[str] = ()):
        self.teachers: Set[str] = set(teachers)
        self.students: Dict[str, bool] = {}
        self.relationships: List[Tuple[str, str]] = []
        self.calls: List[Tuple[str, tuple]] = []
        self.fail_on: Optional[str] = None

    def _record(self, name: str, *args):
        self.calls.append((name, args))
        if self.fail_on == name:
            raise StoreError(f"{name} failed")

    def called(self, name: str) -> List[tuple]:
        return [args for call, args in self.calls if call == name]

    def add_student(self, email: str, suspended: bool = False):
        self.students[email] = suspended

    def link(self, teacher_email: str, *student_emails: str):
        for email in student_emails:
            self.students.setdefault(email, False)
            self.relationships.append((teacher_email, email))

    def teacher_exists(self, email):
        self._record("teacher_exists", email)
        return email in self.teachers

    def existing_teachers(self, emails):
        self._record("existing_teachers", list(emails))
        return {email for email in emails if email in self.teachers}

    def student_exists(self, email):
        self._record("student_exists", email)
        return email in self.students

    def create_student(self, email):
        self._record("create_student", email)
        self.students[email] = False

    def get_student_suspension(self, email):
        self._record("get_student_suspension", email)
        return self.students.get(email)

    def suspend_student(self, email):
        self._record("suspend_student", email)
        self.students[email] = True

    def existing_relationships(self, teacher_email, student_emails):
        student_emails = list(student_emails)
        self._record("existing_relationships", teacher_email, student_emails)
        linked = {s for t, s in self.relationships if t == teacher_email}
        return [email for email in dict.fromkeys(student_emails) if email in linked]

    def create_relationship(self, teacher_email, student_email):
        self._record("create_relationship", teacher_email, student_email)
        self.relationships.append((teacher_email, student_email))

    def common_students(self, teacher_emails):
        teachers = set(teacher_emails)
        self._record("common_students", list(teacher_emails))
        rosters = [{s for t, s in self.relationships if t == teacher} for teacher in teachers]
        return sorted(set.intersection(*rosters)) if rosters else []

    def active_recipients(self, teacher_email, mentioned_emails):
        mentioned = list(mentioned_emails)
        self._record("active_recipients", teacher_email, mentioned)
        candidates = {s for t, s in self.relationships if t == teacher_email} | set(mentioned)
        return sorted(email for email in candidates if self.students.get(email) is False)


@pytest.fixture
def store():
    """In-memory store seeded with two teachers."""
    return InMemoryRelationshipStore(teachers=["teacherken@gmail.com", "teacherjoe@gmail.com"])


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db():
    """Session on a freshly created in-memory schema."""
    create_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_tables()


@pytest.fixture
def seed_teachers(db):
    """Insert teacher rows and commit."""
    def _seed(*emails):
        db.add_all([Teacher(email=email) for email in emails])
        db.commit()
    return _seed


@pytest.fixture
def client(db):
    """TestClient for the FastAPI app on the test database."""
    from fastapi.testclient import TestClient
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client
