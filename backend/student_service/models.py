"""SQLModel data models.

This module defines the application's database tables using SQLModel.
A student is stored as a single row whose exam scores live in a JSON
document column, so each record reads and writes as one document.
"""

from typing import Dict
from sqlalchemy import Column, JSON
from sqlalchemy.ext.mutable import MutableDict
from sqlmodel import SQLModel, Field


class Student(SQLModel, table=True):
    """A learner and their exam scores.

    Fields:
    - `id`: caller-assigned identifier, never generated by the database
    - `name`: display name, matched case-insensitively by searches
    - `password`: credential string returned only in credential views
    - `scores`: exam name -> integer score, one entry per exam
    - `name_key`: case-folded `name`, kept in sync by the repository on save
    """
    id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    name: str
    name_key: str = Field(default="", index=True)
    password: str
    scores: Dict[str, int] = Field(
        default_factory=dict,
        sa_column=Column(MutableDict.as_mutable(JSON), nullable=False),
    )

    def has_score(self, exam_name: str) -> bool:
        return exam_name in self.scores

    def add_score(self, exam_name: str, score: int) -> bool:
        """Record `score` for `exam_name` unless the exam already has one.

        Returns True when the score was inserted.
        """
        if self.has_score(exam_name):
            return False
        self.scores[exam_name] = score
        return True


def fold_name(name: str) -> str:
    """Key used for case-insensitive name matching (full Unicode case folding)."""
    return name.casefold()
