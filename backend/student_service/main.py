"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the student records backend.
Controllers are intentionally thin: they accept requests, delegate to
`StudentService`, and return JSON responses.

Endpoints implemented:
- POST /student
- GET /student/{student_id}
- DELETE /student/{student_id}
- PATCH /student/{student_id}
- PATCH /score/student/{student_id}
- GET /students/name/{name}
- POST /quantity/students
- GET /students/exam/{exam_name}/minscore/{min_score}
- GET /health
"""

from fastapi import FastAPI, Body, Depends, HTTPException, Path, Request
from fastapi.responses import Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
from typing import Annotated, List, Set
import json
import logging
import time
import uuid
from .database import create_db_and_tables, get_session
from .repositories import StudentRepository
from .schemas import INT64_MAX, INT64_MIN, Score, StudentCredentials, StudentUpdate, StudentView
from .services import StudentNotFoundError, StudentService
from .config import settings

app = FastAPI(title="Student Records API")
logger = logging.getLogger("student_service.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()

StudentIdPath = Annotated[int, Path(ge=INT64_MIN, le=INT64_MAX)]
MinScorePath = Annotated[int, Path(ge=INT64_MIN, le=INT64_MAX)]


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    fields = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
    }
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        fields["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception("request_failed %s", json.dumps(fields, ensure_ascii=True))
        raise
    response.headers["X-Request-ID"] = req_id
    fields["status_code"] = response.status_code
    fields["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info("request_done %s", json.dumps(fields, ensure_ascii=True))
    return response


def get_student_service(db: Session = Depends(get_session)) -> StudentService:
    """Build a `StudentService` bound to the request's database session."""
    return StudentService(StudentRepository(db))


def _not_found(e: StudentNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


@app.get('/health')
def health():
    return {'status': 'ok'}


@app.post('/student')
def add_student(payload: StudentCredentials, svc: StudentService = Depends(get_student_service)) -> bool:
    """Create a student; returns false if the id is already taken."""
    return svc.add_student(payload)


@app.get('/student/{student_id}', response_model=StudentView)
def find_student(student_id: StudentIdPath, svc: StudentService = Depends(get_student_service)):
    try:
        return svc.find_student(student_id)
    except StudentNotFoundError as e:
        raise _not_found(e)


@app.delete('/student/{student_id}', response_model=StudentView)
def remove_student(student_id: StudentIdPath, svc: StudentService = Depends(get_student_service)):
    """Delete a student and return its last state."""
    try:
        return svc.remove_student(student_id)
    except StudentNotFoundError as e:
        raise _not_found(e)


@app.patch('/student/{student_id}', response_model=StudentCredentials)
def update_student(student_id: StudentIdPath, payload: StudentUpdate, svc: StudentService = Depends(get_student_service)):
    """Update name and/or password; omitted or empty fields are kept."""
    try:
        return svc.update_student(student_id, payload)
    except StudentNotFoundError as e:
        raise _not_found(e)


@app.patch('/score/student/{student_id}')
def add_score(student_id: StudentIdPath, payload: Score, svc: StudentService = Depends(get_student_service)) -> bool:
    """Record an exam score; returns false if the exam already has one."""
    try:
        return svc.add_score(student_id, payload)
    except StudentNotFoundError as e:
        raise _not_found(e)


@app.get('/students/name/{name}', response_model=List[StudentView])
def find_students_by_name(name: str, svc: StudentService = Depends(get_student_service)):
    return svc.find_students_by_name(name)


@app.post('/quantity/students')
def count_students_by_names(names: Set[str] = Body(...), svc: StudentService = Depends(get_student_service)) -> int:
    """Count students whose name matches any of the posted names, ignoring case."""
    return svc.count_students_by_names(names)


@app.get('/students/exam/{exam_name}/minscore/{min_score}', response_model=List[StudentView])
def find_students_by_exam_name_min_score(exam_name: str, min_score: MinScorePath, svc: StudentService = Depends(get_student_service)):
    return svc.find_students_by_exam_name_min_score(exam_name, min_score)
