"""
Data Loader Script - Seeds teachers and registers sample students.

Teachers are never created through the API, so they are inserted directly
into the database. Sample registrations are then sent through the API,
which exercises the same rules a real client hits.

Usage:
    python load_data.py                              # Seed teachers, register via default URL
    python load_data.py http://localhost:8000         # Custom API URL
    python load_data.py --teachers-only               # Only insert teacher rows
"""

import sys
import os

import httpx

from app.database import SessionLocal, create_tables
from app.models import Teacher

SAMPLE_TEACHERS = [
    "teacherken@gmail.com",
    "teacherjoe@gmail.com",
    "teachermary@gmail.com",
]

SAMPLE_REGISTRATIONS = [
    {
        "teacher": "teacherken@gmail.com",
        "students": ["studentjon@gmail.com", "studenthon@gmail.com", "commonstudent1@gmail.com"],
    },
    {
        "teacher": "teacherjoe@gmail.com",
        "students": ["commonstudent1@gmail.com", "commonstudent2@gmail.com"],
    },
]


def seed_teachers(emails):
    """Insert teacher rows that do not exist yet. Returns the number inserted."""
    create_tables()
    db = SessionLocal()
    try:
        existing = {t.email for t in db.query(Teacher).filter(Teacher.email.in_(emails)).all()}
        new_teachers = [Teacher(email=email) for email in emails if email not in existing]
        db.add_all(new_teachers)
        db.commit()
        return len(new_teachers)
    finally:
        db.close()


def register_samples(api_url):
    """POST the sample registrations, skipping ones already registered."""
    register_url = f"{api_url}/api/register"
    with httpx.Client(timeout=30.0) as client:
        for payload in SAMPLE_REGISTRATIONS:
            resp = client.post(register_url, json=payload)
            if resp.status_code == 409:
                print(f"  {payload['teacher']}: already registered ({resp.json().get('detail')})")
                continue
            resp.raise_for_status()
            print(f"  {payload['teacher']}: registered {len(payload['students'])} students")


def main():
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    teachers_only = "--teachers-only" in sys.argv
    api_url = args[0] if args else os.getenv("API_URL", "http://localhost:8000")

    inserted = seed_teachers(SAMPLE_TEACHERS)
    print(f"Inserted {inserted} teachers ({len(SAMPLE_TEACHERS) - inserted} already present)")

    if teachers_only:
        return

    print(f"Registering sample students via {api_url} ...")
    try:
        register_samples(api_url)
    except httpx.HTTPError as e:
        print(f"Registration failed: {e}")
        sys.exit(1)

    print("Done.")


if __name__ == "__main__":
    main()
