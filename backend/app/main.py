"""
Teacher-Student Notification Registry - FastAPI Application Entry Point.

This is the main application module that:
1. Initializes the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Maps ServiceError kinds to HTTP status codes
5. Answers unknown paths with 404 "Invalid Path <url>"
6. Registers the API routes and health check endpoint

The application follows a modular architecture:
- routes/: API endpoint handlers (request shape validation)
- services/: Relationship rules and the storage adapter
- models/: SQLAlchemy ORM models
- errors.py: Tagged error type shared by every layer
- logging_config.py: Structured logging configuration
- database.py: Database connection management

Run locally from the backend/ directory:
    uvicorn app.main:app --reload --port 8000
"""

import time
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from app.errors import ErrorKind, ServiceError
from app.routes import api
from app.database import create_tables

# Import all models so they are registered with Base.metadata
from app.models import Teacher, Student, TeacherStudentRelationship  # noqa: F401

# ──────────────────────────────────────────────────────────────
# Initialize structured logging BEFORE anything else
# ──────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger("http")
db_logger = get_logger("db")

log_with_context(db_logger, "INFO", "Ensuring database tables exist")
create_tables()

VERSION = "1.0.0"

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.INTERNAL: 500,
}

app = FastAPI(
    title="Teacher-Student Notification Registry",
    description=(
        "Registers students under teachers, suspends students, lists students "
        "common to several teachers and resolves who receives a classroom notification."
    ),
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)


# ──────────────────────────────────────────────────────────────
# Request ID Middleware
#
# Generates a UUID per incoming request, stores it in a context variable
# for every log entry, returns it in X-Request-ID and logs latency.
# ──────────────────────────────────────────────────────────────
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    req_id = generate_request_id()
    request_id_var.set(req_id)

    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        context={"request_id": req_id},
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
            "query_params": dict(request.query_params)
        })

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        context={"request_id": req_id},
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "status_code": response.status_code
        })

    return response


# ──────────────────────────────────────────────────────────────
# ServiceError → HTTP response
# ──────────────────────────────────────────────────────────────
@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    status_code = STATUS_BY_KIND.get(exc.kind, 500)

    if exc.kind == ErrorKind.INTERNAL:
        log_with_context(logger, "ERROR",
            f"{request.method} {request.url.path} failed: {exc.message}",
            context={"kind": exc.kind.value},
            exc_info=exc.__cause__ or exc)
    else:
        log_with_context(logger, "WARNING",
            f"{request.method} {request.url.path} rejected: {exc.message}",
            context={"kind": exc.kind.value},
            extra_data={"emails": exc.emails})

    body = {"detail": exc.message}
    if exc.emails and exc.kind != ErrorKind.INTERNAL:
        body["emails"] = exc.emails
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(404)
async def invalid_path_handler(request: Request, exc):
    """Unknown routes answer with the path that was requested."""
    return JSONResponse(status_code=404, content={"detail": f"Invalid Path {request.url.path}"})


app.include_router(api.router, tags=["Relationships"])


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint for container health checks and monitoring."""
    return {
        "status": "healthy",
        "service": "teacher-student-registry",
        "version": VERSION,
        "time": datetime.now(timezone.utc).isoformat()
    }


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "Teacher-Student Notification Registry",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "register": "POST /api/register",
            "common_students": "GET /api/commonstudents?teacher=...",
            "suspend": "POST /api/suspend",
            "notification_recipients": "POST /api/retrievefornotifications"
        }
    }
