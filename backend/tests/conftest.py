import os
import shutil
import tempfile
from pathlib import Path

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

# The app creates its tables at import time, so point it at a throwaway
# database before any test module imports it.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="student-service-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'students.db'}"

from student_service import models  # noqa: E402
from student_service.database import create_db_and_tables, engine  # noqa: E402
from student_service.repositories import InMemoryStudentRepository  # noqa: E402
from student_service.services import StudentService  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def reset_db():
    """Drop the throwaway database once the test session ends."""
    yield
    engine.dispose()
    shutil.rmtree(_TMP_DIR, ignore_errors=True)


class CountingStore(InMemoryStudentRepository):
    """In-memory store that records how often it was written to."""

    def __init__(self, students=None):
        self.save_calls = 0
        self.delete_calls = []
        super().__init__(students)

    def save(self, student):
        self.save_calls += 1
        return super().save(student)

    def delete_by_id(self, student_id):
        self.delete_calls.append(student_id)
        return super().delete_by_id(student_id)


def make_student(student_id=1000, name="John", password="1234", scores=None):
    return models.Student(id=student_id, name=name, password=password, scores=dict(scores or {}))


@pytest.fixture
def store():
    s = CountingStore([make_student()])
    s.save_calls = 0
    return s


@pytest.fixture
def service(store):
    return StudentService(store)


@pytest.fixture
def session():
    """Session on a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    create_db_and_tables(engine)
    with Session(engine) as s:
        yield s
