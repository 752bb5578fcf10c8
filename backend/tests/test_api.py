"""HTTP tests for the teacher/student API through FastAPI's TestClient."""

from unittest.mock import patch

import pytest
from sqlalchemy import select

from app.models import Student, TeacherStudentRelationship
from app.services.store import SqlAlchemyRelationshipStore, StoreError

KEN = "teacherken@gmail.com"
JOE = "teacherjoe@gmail.com"


@pytest.fixture
def teachers(seed_teachers):
    seed_teachers(KEN, JOE)


def _register(client, teacher, *students):
    return client.post("/api/register", json={"teacher": teacher, "students": list(students)})


class TestRegisterEndpoint:

    def test_register_success(self, client, teachers, db):
        resp = _register(client, KEN, "studentjon@gmail.com", "studenthon@gmail.com")

        assert resp.status_code == 204
        rows = db.scalars(
            select(TeacherStudentRelationship.student_email)
            .where(TeacherStudentRelationship.teacher_email == KEN)
        ).all()
        assert set(rows) == {"studentjon@gmail.com", "studenthon@gmail.com"}

    def test_register_missing_teacher(self, client, teachers):
        resp = client.post("/api/register", json={"teacher": "", "students": ["studentjon@gmail.com"]})

        assert resp.status_code == 400
        assert resp.json() == {
            "detail": "One of the following keys is missing or is empty in request body: 'teacher'"
        }

    def test_register_missing_students(self, client, teachers):
        resp = client.post("/api/register", json={"teacher": KEN, "students": []})

        assert resp.status_code == 400
        assert resp.json()["detail"].endswith("'students'")

    def test_register_null_students(self, client, teachers):
        resp = client.post("/api/register", json={"teacher": KEN, "students": None})

        assert resp.status_code == 400
        assert resp.json() == {
            "detail": "One of the following keys is missing or is empty in request body: 'students'"
        }

    def test_register_invalid_student_email(self, client, teachers):
        resp = _register(client, KEN, "not-an-email")

        assert resp.status_code == 400
        assert resp.json() == {"detail": "Invalid student email format: not-an-email"}

    def test_register_unknown_teacher(self, client, teachers):
        resp = _register(client, "nobody@gmail.com", "studentjon@gmail.com")

        assert resp.status_code == 404
        assert resp.json()["emails"] == ["nobody@gmail.com"]

    def test_register_conflict_creates_nothing(self, client, teachers, db):
        assert _register(client, KEN, "a@school.com").status_code == 204

        resp = _register(client, KEN, "b@school.com", "a@school.com")

        assert resp.status_code == 409
        assert resp.json()["emails"] == ["a@school.com"]
        assert db.scalar(select(Student.email).where(Student.email == "b@school.com")) is None

    def test_register_store_failure_rolls_back(self, client, teachers, db):
        """A failure mid-loop leaves no student rows from that request."""
        original = SqlAlchemyRelationshipStore.create_relationship
        calls = []

        def flaky(self, teacher_email, student_email):
            calls.append(student_email)
            if len(calls) == 2:
                raise StoreError("create_relationship failed")
            return original(self, teacher_email, student_email)

        with patch.object(SqlAlchemyRelationshipStore, "create_relationship", flaky):
            resp = _register(client, KEN, "a@school.com", "b@school.com")

        assert resp.status_code == 500
        assert "emails" not in resp.json()
        assert db.scalars(select(Student.email)).all() == []


class TestCommonStudentsEndpoint:

    def test_common_students_two_teachers(self, client, teachers):
        _register(client, KEN, "a@school.com", "b@school.com", "c@school.com")
        _register(client, JOE, "b@school.com", "c@school.com", "d@school.com")

        resp = client.get("/api/commonstudents", params=[("teacher", KEN), ("teacher", JOE)])

        assert resp.status_code == 200
        assert set(resp.json()["students"]) == {"b@school.com", "c@school.com"}

    def test_common_students_single_teacher(self, client, teachers):
        _register(client, KEN, "a@school.com", "b@school.com")

        resp = client.get("/api/commonstudents", params={"teacher": KEN})

        assert resp.status_code == 200
        assert set(resp.json()["students"]) == {"a@school.com", "b@school.com"}

    def test_common_students_missing_param(self, client, teachers):
        resp = client.get("/api/commonstudents")

        assert resp.status_code == 400
        assert resp.json()["detail"].endswith("'teacher'")

    def test_common_students_invalid_email(self, client, teachers):
        resp = client.get("/api/commonstudents", params={"teacher": "test"})

        assert resp.status_code == 400
        assert resp.json() == {"detail": "Invalid teacher email format: test"}

    def test_common_students_unknown_teachers(self, client, teachers):
        resp = client.get("/api/commonstudents",
                          params=[("teacher", KEN), ("teacher", "x@gmail.com"), ("teacher", "y@gmail.com")])

        assert resp.status_code == 404
        assert resp.json()["emails"] == ["x@gmail.com", "y@gmail.com"]


class TestSuspendEndpoint:

    def test_suspend_then_suspend_again(self, client, teachers):
        _register(client, KEN, "a@school.com")

        first = client.post("/api/suspend", json={"student": "a@school.com"})
        second = client.post("/api/suspend", json={"student": "a@school.com"})

        assert first.status_code == 204
        assert second.status_code == 409

    def test_suspend_unknown_student(self, client, teachers):
        resp = client.post("/api/suspend", json={"student": "ghost@school.com"})

        assert resp.status_code == 404

    def test_suspend_missing_student(self, client, teachers):
        resp = client.post("/api/suspend", json={})

        assert resp.status_code == 400
        assert resp.json()["detail"].endswith("'student'")


class TestNotificationEndpoint:

    def test_recipients_roster_and_mentions(self, client, teachers):
        _register(client, KEN, "s3@x.com")
        _register(client, JOE, "s1@x.com", "s2@x.com")
        client.post("/api/suspend", json={"student": "s1@x.com"})

        resp = client.post("/api/retrievefornotifications",
                           json={"teacher": KEN, "notification": "Hello @s1@x.com @s2@x.com"})

        assert resp.status_code == 200
        assert set(resp.json()["recipients"]) == {"s2@x.com", "s3@x.com"}

    def test_recipients_without_mentions(self, client, teachers):
        _register(client, KEN, "a@school.com", "b@school.com")
        client.post("/api/suspend", json={"student": "a@school.com"})

        resp = client.post("/api/retrievefornotifications",
                           json={"teacher": KEN, "notification": ""})

        assert resp.status_code == 200
        assert resp.json() == {"recipients": ["b@school.com"]}

    def test_recipients_missing_teacher(self, client, teachers):
        resp = client.post("/api/retrievefornotifications",
                           json={"notification": "Hello @s1@x.com"})

        assert resp.status_code == 400
        assert resp.json()["detail"].endswith("'teacher'")

    def test_recipients_unknown_teacher(self, client, teachers):
        resp = client.post("/api/retrievefornotifications",
                           json={"teacher": "nobody@gmail.com", "notification": "Hi"})

        assert resp.status_code == 404


class TestServiceEndpoints:

    def test_health(self, client):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"
        assert "X-Request-ID" in resp.headers

    def test_root_lists_endpoints(self, client):
        resp = client.get("/")

        assert resp.status_code == 200
        assert resp.json()["endpoints"]["register"] == "POST /api/register"

    def test_unknown_path(self, client):
        resp = client.get("/api/nothing-here")

        assert resp.status_code == 404
        assert resp.json() == {"detail": "Invalid Path /api/nothing-here"}
