"""Business logic services used by HTTP controllers.

`StudentService` coordinates a `StudentStore` and the mapping helpers.
It is intentionally thin: it performs existence checks, applies the
score and update rules and persists through the store. Lookups by id
that find nothing raise `StudentNotFoundError`; declined operations
(duplicate id, duplicate exam) return False instead.
"""

import logging
from typing import Iterable, List

from pydantic import ValidationError

from . import mappers
from .repositories import StudentStore
from .schemas import Score, StudentCredentials, StudentUpdate, StudentView

logger = logging.getLogger("student_service.services")


class StudentNotFoundError(LookupError):
    """Raised when no student exists for the requested id."""
    def __init__(self, student_id: int):
        super().__init__(f"student not found: {student_id}")
        self.student_id = student_id


class StudentService:
    """Student CRUD and score tracking on top of a `StudentStore`."""
    def __init__(self, store: StudentStore):
        self.store = store

    def _get(self, student_id: int):
        student = self.store.find_by_id(student_id)
        if student is None:
            raise StudentNotFoundError(student_id)
        return student

    def add_student(self, credentials: StudentCredentials) -> bool:
        """Create a student with no scores.

        Returns False without writing anything if the id is already taken.
        """
        if self.store.exists_by_id(credentials.id):
            logger.debug("add_student declined, id %s exists", credentials.id)
            return False
        self.store.save(mappers.from_credentials(credentials))
        logger.info("student %s added", credentials.id)
        return True

    def find_student(self, student_id: int) -> StudentView:
        return mappers.to_view(self._get(student_id))

    def remove_student(self, student_id: int) -> StudentView:
        """Delete a student and return the view captured before deletion."""
        view = mappers.to_view(self._get(student_id))
        self.store.delete_by_id(student_id)
        logger.info("student %s removed", student_id)
        return view

    def update_student(self, student_id: int, update: StudentUpdate) -> StudentCredentials:
        """Overwrite name and/or password with the non-empty values given.

        Fields that are None or empty strings keep their stored value.
        """
        student = self._get(student_id)
        if update.name:
            student.name = update.name
        if update.password:
            student.password = update.password
        saved = self.store.save(student)
        logger.info("student %s updated", student_id)
        return mappers.to_credentials(saved)

    def add_score(self, student_id: int, score: Score) -> bool:
        """Record a score for an exam the student has no score for yet.

        An existing score for the same exam is never replaced; in that
        case nothing is saved and False is returned.
        """
        student = self._get(student_id)
        if not student.add_score(score.exam_name, score.score):
            logger.debug("add_score declined, student %s already has %r", student_id, score.exam_name)
            return False
        self.store.save(student)
        logger.info("score for %r added to student %s", score.exam_name, student_id)
        return True

    def find_students_by_name(self, name: str) -> List[StudentView]:
        return [mappers.to_view(s) for s in self.store.find_by_name_ignore_case(name)]

    def count_students_by_names(self, names: Iterable[str]) -> int:
        return self.store.count_by_name_in_ignore_case(set(names))

    def find_students_by_exam_name_min_score(self, exam_name: str, min_score: int) -> List[StudentView]:
        students = self.store.find_by_exam_score_at_least(exam_name, min_score)
        return [mappers.to_view(s) for s in students]


class ImportService:
    """Bulk-load students, and their scores, through a `StudentService`."""
    def __init__(self, students: StudentService):
        self.students = students

    def import_items(self, items: list, dry_run: bool = False) -> dict:
        """Add every student item and return a summary.

        Each item is an object with `id`, `name`, `password` and an
        optional `scores` mapping. Items whose id already exists are
        counted as skipped. Validation failures are collected per index
        and do not stop the import. With `dry_run` nothing is written but
        the counts predict what a real run would report.
        """
        created = 0
        skipped = 0
        errors = []
        planned = set()
        for idx, item in enumerate(items):
            try:
                creds, scores = self._parse_item(item)
            except (ValueError, ValidationError) as e:
                errors.append({'index': idx, 'error': str(e)})
                continue
            if dry_run:
                if creds.id in planned or self.students.store.exists_by_id(creds.id):
                    skipped += 1
                else:
                    planned.add(creds.id)
                    created += 1
                continue
            if not self.students.add_student(creds):
                skipped += 1
                continue
            for s in scores:
                self.students.add_score(creds.id, s)
            created += 1
        logger.info("import finished: %d created, %d skipped, %d errors", created, skipped, len(errors))
        return {'created': created, 'skipped': skipped, 'errors': errors}

    def _parse_item(self, item):
        """Validate a raw item and raise ValueError on error."""
        if not isinstance(item, dict):
            raise ValueError('student item must be an object')
        raw_scores = item.get('scores') or {}
        if not isinstance(raw_scores, dict):
            raise ValueError('scores must be an object of exam name to score')
        creds = StudentCredentials(id=item.get('id'), name=item.get('name'), password=item.get('password'))
        scores = [Score(exam_name=k, score=v) for k, v in raw_scores.items()]
        return creds, scores
