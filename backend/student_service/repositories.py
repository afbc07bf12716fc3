"""Repository classes encapsulating student persistence.

`StudentStore` is the contract the service layer depends on. Two
implementations are provided: `StudentRepository` works against a
SQLModel session and `InMemoryStudentRepository` keeps plain copies in
a dict, which makes it handy for tests and local experiments.
"""

import threading
from typing import Dict, Iterable, List, Optional, Protocol

from sqlalchemy import func
from sqlmodel import Session, select

from . import models


def is_addressable_exam_name(exam_name: str) -> bool:
    """True if `exam_name` can be used as a JSON path key in a query."""
    return '"' not in exam_name and '\\' not in exam_name


class StudentStore(Protocol):
    """Operations the service layer needs from a student store."""

    def exists_by_id(self, student_id: int) -> bool: ...

    def find_by_id(self, student_id: int) -> Optional[models.Student]: ...

    def save(self, student: models.Student) -> models.Student: ...

    def delete_by_id(self, student_id: int) -> None: ...

    def find_by_name_ignore_case(self, name: str) -> List[models.Student]: ...

    def find_by_exam_score_at_least(self, exam_name: str, score: int) -> List[models.Student]: ...

    def count_by_name_in_ignore_case(self, names: Iterable[str]) -> int: ...


class StudentRepository:
    """CRUD operations for `Student` rows."""
    def __init__(self, session: Session):
        self.session = session

    def exists_by_id(self, student_id: int) -> bool:
        """Return True if a student with `student_id` is stored."""
        stmt = select(models.Student.id).where(models.Student.id == student_id)
        return self.session.exec(stmt).first() is not None

    def find_by_id(self, student_id: int) -> Optional[models.Student]:
        """Get a `Student` by primary key or `None` if not found."""
        return self.session.get(models.Student, student_id)

    def save(self, student: models.Student) -> models.Student:
        """Insert or update `student` and return the managed instance."""
        student.name_key = models.fold_name(student.name)
        managed = self.session.merge(student)
        self.session.commit()
        self.session.refresh(managed)
        return managed

    def delete_by_id(self, student_id: int) -> None:
        """Delete the student if present; missing ids are ignored."""
        student = self.session.get(models.Student, student_id)
        if student is None:
            return
        self.session.delete(student)
        self.session.commit()

    def find_by_name_ignore_case(self, name: str) -> List[models.Student]:
        """Return students whose name equals `name` ignoring case."""
        stmt = (
            select(models.Student)
            .where(models.Student.name_key == models.fold_name(name))
            .order_by(models.Student.id)
        )
        return list(self.session.exec(stmt).all())

    def find_by_exam_score_at_least(self, exam_name: str, score: int) -> List[models.Student]:
        """Return students with a score for `exam_name` of at least `score`.

        The lookup goes through the JSON column, so students without an
        entry for the exam never match. Names containing `"` or `\\` cannot
        be addressed by a JSON path key and never carry a score.
        """
        if not is_addressable_exam_name(exam_name):
            return []
        exam_score = models.Student.scores[exam_name].as_integer()
        stmt = (
            select(models.Student)
            .where(exam_score.is_not(None), exam_score >= score)
            .order_by(models.Student.id)
        )
        return list(self.session.exec(stmt).all())

    def count_by_name_in_ignore_case(self, names: Iterable[str]) -> int:
        """Count students whose name matches any of `names` ignoring case."""
        keys = sorted({models.fold_name(n) for n in names})
        if not keys:
            return 0
        stmt = select(func.count()).select_from(models.Student).where(
            models.Student.name_key.in_(keys)
        )
        return int(self.session.exec(stmt).one())


class InMemoryStudentRepository:
    """Dict backed store keeping detached copies of each student.

    Every read returns a fresh `Student`, so mutating a returned object
    has no effect until it is passed back to `save`.
    """

    def __init__(self, students: Optional[Iterable[models.Student]] = None):
        self._rows: Dict[int, dict] = {}
        self._lock = threading.Lock()
        for s in students or ():
            self.save(s)

    @staticmethod
    def _snapshot(student: models.Student) -> dict:
        return {
            "id": student.id,
            "name": student.name,
            "password": student.password,
            "scores": dict(student.scores or {}),
        }

    @staticmethod
    def _restore(row: dict) -> models.Student:
        return models.Student(
            id=row["id"], name=row["name"], password=row["password"], scores=dict(row["scores"])
        )

    def exists_by_id(self, student_id: int) -> bool:
        with self._lock:
            return student_id in self._rows

    def find_by_id(self, student_id: int) -> Optional[models.Student]:
        with self._lock:
            row = self._rows.get(student_id)
        return self._restore(row) if row is not None else None

    def save(self, student: models.Student) -> models.Student:
        row = self._snapshot(student)
        with self._lock:
            self._rows[row["id"]] = row
        return self._restore(row)

    def delete_by_id(self, student_id: int) -> None:
        with self._lock:
            self._rows.pop(student_id, None)

    def _select(self, predicate) -> List[models.Student]:
        with self._lock:
            rows = [r for r in self._rows.values() if predicate(r)]
        return [self._restore(r) for r in rows]

    def find_by_name_ignore_case(self, name: str) -> List[models.Student]:
        wanted = models.fold_name(name)
        return self._select(lambda r: models.fold_name(r["name"]) == wanted)

    def find_by_exam_score_at_least(self, exam_name: str, score: int) -> List[models.Student]:
        return self._select(lambda r: exam_name in r["scores"] and r["scores"][exam_name] >= score)

    def count_by_name_in_ignore_case(self, names: Iterable[str]) -> int:
        keys = {models.fold_name(n) for n in names}
        return len(self._select(lambda r: models.fold_name(r["name"]) in keys))
