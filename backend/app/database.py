"""
Database connection and session management module.

Uses SQLAlchemy for ORM operations. Supports PostgreSQL or MySQL (production)
and SQLite (local development and tests).
Provides session factory and dependency injection for FastAPI routes.
"""

import os
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool

# Read database URL from environment
# Fallback to SQLite for local development
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "sqlite:///./teacher_student.db"
)

IN_MEMORY_SQLITE_URLS = ("sqlite://", "sqlite:///:memory:")

# SQLite does not support pool_size, max_overflow, or pool_pre_ping
engine_kwargs = {"echo": False}

if DATABASE_URL.startswith(("postgresql", "mysql")):
    engine_kwargs.update({
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
    })
elif DATABASE_URL.startswith("sqlite"):
    # SQLite needs check_same_thread=False for FastAPI (multi-threaded)
    engine_kwargs["connect_args"] = {"check_same_thread": False}
    if DATABASE_URL in IN_MEMORY_SQLITE_URLS:
        # One shared connection, otherwise every session gets an empty database
        engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, **engine_kwargs)

if DATABASE_URL.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def get_db():
    """
    FastAPI dependency that provides a database session.

    Yields a session and closes it after the request. Anything the route
    did not commit is rolled back on close.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create the teacher, student and relationship tables if missing."""
    Base.metadata.create_all(bind=engine)


def drop_tables():
    """Drop every table known to the ORM metadata."""
    Base.metadata.drop_all(bind=engine)
