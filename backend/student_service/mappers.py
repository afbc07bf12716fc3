"""Conversions between the `Student` entity and its transfer objects."""

from . import models
from .schemas import StudentCredentials, StudentView


def to_view(student: models.Student) -> StudentView:
    return StudentView(id=student.id, name=student.name, scores=dict(student.scores or {}))


def to_credentials(student: models.Student) -> StudentCredentials:
    return StudentCredentials(id=student.id, name=student.name, password=student.password)


def from_credentials(credentials: StudentCredentials) -> models.Student:
    """Build a new, score-less `Student` from submitted credentials."""
    return models.Student(id=credentials.id, name=credentials.name, password=credentials.password, scores={})
