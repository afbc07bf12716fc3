"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. None of the read views carry a password.
"""

from pydantic import BaseModel, Field
from typing import Annotated, Dict, Optional

# Integers are stored as signed 64-bit values.
INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1

StudentId = Annotated[int, Field(ge=INT64_MIN, le=INT64_MAX)]
ScoreValue = Annotated[int, Field(ge=INT64_MIN, le=INT64_MAX)]
# `"` and `\` cannot appear in a JSON path key, so exam names exclude them.
EXAM_NAME_PATTERN = r'^[^"\\]+$'


class StudentCredentials(BaseModel):
    """Full credentials of a student: payload for add, result of update."""
    id: StudentId
    name: str
    password: str


class StudentView(BaseModel):
    """Read view of a student returned by lookups and searches."""
    id: int
    name: str
    scores: Dict[str, int] = Field(default_factory=dict)


class StudentUpdate(BaseModel):
    """Partial update; unset or empty fields leave the stored value as is."""
    name: Optional[str] = None
    password: Optional[str] = None


class Score(BaseModel):
    """A single exam result submitted for a student."""
    exam_name: str = Field(min_length=1, pattern=EXAM_NAME_PATTERN)
    score: ScoreValue
