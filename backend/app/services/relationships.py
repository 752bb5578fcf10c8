"""
Relationship Service - business rules between teachers and students.

Implements the four operations behind the API:
1. Register students under a teacher (strict: any existing link blocks the batch)
2. Find students common to every teacher in a list
3. Suspend a student (one-way, not idempotent)
4. Resolve notification recipients (active roster + active @-mentioned students)

The service holds no state and does no logging; it only orchestrates calls
to a RelationshipStore and raises ServiceError with a kind the HTTP layer
maps to a status code.
"""

import re
from contextlib import contextmanager
from typing import Iterable, List, Sequence

from app.errors import ServiceError
from app.services.store import RelationshipStore, StoreError

# A mention is an "@" marker directly followed by a full email address,
# e.g. "@studentagnes@gmail.com". The marker must start a token; a bare email
# or an "@" glued to a preceding word is not a mention.
MENTION_PATTERN = re.compile(r"(?<![\w@])@([A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,})")


def parse_mentions(notification: str) -> List[str]:
    """
    Extract mentioned student emails from notification text.

    Matches are non-overlapping and taken left to right; the leading "@"
    marker is stripped. Repeated mentions are collapsed, first one wins.

    Examples:
        "Hello @s1@x.com and @s2@x.com" -> ["s1@x.com", "s2@x.com"]
        "Contact s1@x.com"               -> []
    """
    if not notification:
        return []
    return list(dict.fromkeys(MENTION_PATTERN.findall(notification)))


@contextmanager
def _store_errors(message: str):
    """Surface any storage failure as an INTERNAL ServiceError."""
    try:
        yield
    except StoreError as exc:
        raise ServiceError.internal(message) from exc


class RelationshipService:
    """Register, common-students, suspend and notification-recipient operations."""

    def __init__(self, store: RelationshipStore):
        self.store = store

    def register(self, teacher_email: str, student_emails: Sequence[str]) -> None:
        """
        Register students under a teacher.

        Students seen for the first time are created (not suspended). Fails
        with CONFLICT, listing every offender, if any requested student is
        already registered to the teacher; nothing is created in that case.
        Repeats inside `student_emails` are not collapsed.
        """
        student_emails = list(student_emails)
        if not student_emails:
            raise ServiceError.invalid_input("At least one student email is required")

        with _store_errors("Failed to register students"):
            if not self.store.teacher_exists(teacher_email):
                raise ServiceError.not_found(
                    f"Teacher {teacher_email} not found", [teacher_email])

            already_registered = self.store.existing_relationships(teacher_email, student_emails)
            if already_registered:
                raise ServiceError.conflict(
                    "Student already registered: {}".format(", ".join(already_registered)),
                    already_registered)

            for student_email in student_emails:
                if not self.store.student_exists(student_email):
                    self.store.create_student(student_email)
                self.store.create_relationship(teacher_email, student_email)

    def find_common_students(self, teacher_emails: Sequence[str]) -> List[str]:
        """
        Return the students registered to every given teacher.

        A single teacher yields that teacher's full roster. The order of the
        result is not defined.
        """
        teacher_emails = list(teacher_emails)
        if not teacher_emails:
            raise ServiceError.invalid_input("At least one teacher email is required")

        with _store_errors("Failed to retrieve common students"):
            found = self.store.existing_teachers(teacher_emails)
            missing = [email for email in dict.fromkeys(teacher_emails) if email not in found]
            if missing:
                raise ServiceError.not_found(
                    "Teacher not found: {}".format(", ".join(missing)), missing)

            return _unique(self.store.common_students(teacher_emails))

    def suspend_student(self, student_email: str) -> None:
        """Suspend an active student. Suspending twice is a CONFLICT."""
        with _store_errors("Failed to suspend student"):
            suspended = self.store.get_student_suspension(student_email)
            if suspended is None:
                raise ServiceError.not_found(
                    f"Student {student_email} not found", [student_email])
            if suspended:
                raise ServiceError.conflict(
                    f"Student {student_email} is already suspended", [student_email])

            self.store.suspend_student(student_email)

    def resolve_notification_recipients(self, teacher_email: str, notification: str) -> List[str]:
        """
        Return the students who should receive a notification.

        Recipients are the teacher's active students plus any active student
        @-mentioned in the text, registered to the teacher or not. Suspended
        students are excluded even when mentioned; mentions of unknown
        students are dropped.
        """
        mentioned = parse_mentions(notification)

        with _store_errors("Failed to retrieve notification recipients"):
            if not self.store.teacher_exists(teacher_email):
                raise ServiceError.not_found(
                    f"Teacher {teacher_email} not found", [teacher_email])

            return _unique(self.store.active_recipients(teacher_email, mentioned))


def _unique(emails: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(emails))
