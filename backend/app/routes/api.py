"""
Teacher/student API routes.

Provides endpoints for:
- Registering students under a teacher
- Listing students common to a set of teachers
- Suspending a student
- Resolving the recipients of a notification

Routes only check request shape (required keys, email format). Business
rules live in RelationshipService; its ServiceError is turned into an HTTP
response by the handler registered in app.main.
"""

import re
import time
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import ServiceError
from app.services.relationships import RelationshipService
from app.services.store import SqlAlchemyRelationshipStore
from app.logging_config import get_logger, log_with_context

router = APIRouter(prefix="/api")
logger = get_logger("http")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


# ── Pydantic schemas ─────────────────────────────────────────

class RegisterRequest(BaseModel):
    """Schema for registering students under a teacher."""
    teacher: Optional[str] = Field(None, description="Teacher email")
    students: Optional[List[str]] = Field(None, description="Student emails to register")


class SuspendRequest(BaseModel):
    """Schema for suspending a student."""
    student: Optional[str] = Field(None, description="Student email")


class NotificationRequest(BaseModel):
    """Schema for resolving notification recipients."""
    teacher: Optional[str] = Field(None, description="Teacher email")
    notification: Optional[str] = Field(None, description="Notification text, may contain @mentions")


class CommonStudentsResponse(BaseModel):
    students: List[str]


class RecipientsResponse(BaseModel):
    recipients: List[str]


# ── Helpers ──────────────────────────────────────────────────

def _missing_key(key: str) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail=f"One of the following keys is missing or is empty in request body: '{key}'"
    )


def _require_email(value: str, role: str) -> str:
    if not EMAIL_PATTERN.match(value):
        raise HTTPException(status_code=400, detail=f"Invalid {role} email format: {value}")
    return value


def get_relationship_service(db: Session = Depends(get_db)) -> RelationshipService:
    """FastAPI dependency building the service over the request's session."""
    return RelationshipService(SqlAlchemyRelationshipStore(db))


def _commit(db: Session):
    """Commit the request's work; a failed commit is an internal error."""
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise ServiceError.internal("Failed to persist changes") from exc


# ── Routes ───────────────────────────────────────────────────

@router.post("/register", status_code=204)
def register(request: RegisterRequest,
             service: RelationshipService = Depends(get_relationship_service),
             db: Session = Depends(get_db)):
    """Register one or more students to a teacher."""
    if not request.teacher:
        raise _missing_key("teacher")
    if not request.students:
        raise _missing_key("students")
    _require_email(request.teacher, "teacher")
    for student in request.students:
        _require_email(student, "student")

    service.register(request.teacher, request.students)
    _commit(db)

    log_with_context(logger, "INFO",
        "Registered {} students to {}".format(len(request.students), request.teacher),
        context={"teacher": request.teacher})
    return Response(status_code=204)


@router.get("/commonstudents", response_model=CommonStudentsResponse)
def common_students(teacher: List[str] = Query(default=[], description="Teacher email, repeatable"),
                    service: RelationshipService = Depends(get_relationship_service)):
    """List the students registered to all of the given teachers."""
    start_time = time.time()

    teachers = [t for t in teacher if t]
    if not teachers:
        raise _missing_key("teacher")
    for email in teachers:
        _require_email(email, "teacher")

    students = service.find_common_students(teachers)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Found {} students common to {} teachers".format(len(students), len(teachers)),
        extra_data={"duration_ms": round(duration_ms, 2)})
    return CommonStudentsResponse(students=students)


@router.post("/suspend", status_code=204)
def suspend(request: SuspendRequest,
            service: RelationshipService = Depends(get_relationship_service),
            db: Session = Depends(get_db)):
    """Suspend a student."""
    if not request.student:
        raise _missing_key("student")
    _require_email(request.student, "student")

    service.suspend_student(request.student)
    _commit(db)

    log_with_context(logger, "INFO",
        "Student {} suspended".format(request.student),
        context={"student": request.student})
    return Response(status_code=204)


@router.post("/retrievefornotifications", response_model=RecipientsResponse)
def retrieve_for_notifications(request: NotificationRequest,
                               service: RelationshipService = Depends(get_relationship_service)):
    """List the students who can receive a notification from a teacher."""
    if not request.teacher:
        raise _missing_key("teacher")
    if request.notification is None:
        raise _missing_key("notification")
    _require_email(request.teacher, "teacher")

    recipients = service.resolve_notification_recipients(request.teacher, request.notification)

    log_with_context(logger, "INFO",
        "Resolved {} recipients for notification".format(len(recipients)),
        context={"teacher": request.teacher})
    return RecipientsResponse(recipients=recipients)
