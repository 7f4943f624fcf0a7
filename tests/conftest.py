import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_gradeflow.db")

import pytest  # noqa: E402
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from gradeflow.core.deps import get_db, get_grader, get_object_store
from gradeflow.core.security import hash_password
from gradeflow.db.base import Base
from gradeflow.main import app
from gradeflow.models.ai_grading_log import AIGradingLog
from gradeflow.models.assignment import Assignment
from gradeflow.models.course import Course
from gradeflow.models.enrollment import Enrollment
from gradeflow.models.submission import Submission
from gradeflow.models.user import User
from gradeflow.services.grading_client import GradingResult
from gradeflow.services.storage import LocalObjectStore

TEST_DB_FILE = "test_gradeflow.db"
TEST_DB_URL = f"sqlite:///./{TEST_DB_FILE}"

PASSWORD = "password123"
# bcrypt is slow on purpose; hash once for every seeded user
PASSWORD_HASH = hash_password(PASSWORD)

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeGrader:
    """Stands in for the grading function. Set ``result`` or ``error``."""

    def __init__(self):
        self.result = GradingResult(score=72, feedback="Solid answer, mention Okazaki fragments.")
        self.error = None
        self.calls = []

    def grade(self, request, access_token=None):
        self.calls.append((request, access_token))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create a fresh schema once for the whole test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if os.path.exists(TEST_DB_FILE):
        os.remove(TEST_DB_FILE)


@pytest.fixture(autouse=True)
def seed_data():
    """Seed a clean minimal dataset for each test and yield the ids."""
    db = TestingSessionLocal()
    try:
        # Clear tables (child -> parent)
        db.query(AIGradingLog).delete()
        db.query(Submission).delete()
        db.query(Enrollment).delete()
        db.query(Assignment).delete()
        db.query(Course).delete()
        db.query(User).delete()
        db.commit()

        student = User(
            email="student1@example.com",
            full_name="Student One",
            role="student",
            hashed_password=PASSWORD_HASH,
        )
        other_student = User(
            email="student2@example.com",
            full_name="Student Two",
            role="student",
            hashed_password=PASSWORD_HASH,
        )
        lecturer = User(
            email="lecturer1@example.com",
            full_name="Lecturer One",
            role="lecturer",
            hashed_password=PASSWORD_HASH,
        )
        other_lecturer = User(
            email="lecturer2@example.com",
            full_name="Lecturer Two",
            role="lecturer",
            hashed_password=PASSWORD_HASH,
        )
        db.add_all([student, other_student, lecturer, other_lecturer])
        db.commit()

        course = Course(title="Molecular Biology", course_code="BIO201", lecturer_id=lecturer.id)
        db.add(course)
        db.commit()

        db.add_all(
            [
                Enrollment(course_id=course.id, student_id=student.id),
                Enrollment(course_id=course.id, student_id=other_student.id),
            ]
        )

        assignment = Assignment(
            course_id=course.id,
            lecturer_id=lecturer.id,
            title="DNA Replication",
            description="Explain how DNA is replicated.",
            max_score=100,
            grading_rubric="Mentions helicase, polymerase and Okazaki fragments.",
            allow_file_upload=True,
        )
        db.add(assignment)
        db.commit()

        yield {
            "student_id": student.id,
            "other_student_id": other_student.id,
            "lecturer_id": lecturer.id,
            "other_lecturer_id": other_lecturer.id,
            "course_id": course.id,
            "assignment_id": assignment.id,
        }
    finally:
        db.close()


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def grader():
    return FakeGrader()


@pytest.fixture()
def store(tmp_path):
    return LocalObjectStore(root=tmp_path / "objects", public_url="http://testserver/files")


@pytest.fixture()
def client(grader, store):
    """Test client wired to the test DB, the fake grader and a temp object store."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_grader] = lambda: grader
    app.dependency_overrides[get_object_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

