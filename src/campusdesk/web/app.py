from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass
from typing import Any

from fastapi import Depends, FastAPI, File, Header, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from campusdesk.application.services.exam_service import ExamService
from campusdesk.application.services.project_service import ProjectService
from campusdesk.application.services.school_service import SchoolService
from campusdesk.application.services.score_service import ScoreEntry, ScoreService
from campusdesk.application.services.student_service import StudentDraft, StudentService
from campusdesk.core.config import AppPaths, AppSettings, load_settings
from campusdesk.core.errors import (
    CampusError,
    HeaderMappingError,
    NotFoundError,
    PersistenceError,
    SpreadsheetDecodeError,
    ValidationError,
)
from campusdesk.core.numbers import parse_positive_int
from campusdesk.domain.models.ingestion import ScoreUploadRejected
from campusdesk.domain.models.school import Principal, Role
from campusdesk.infrastructure.db.repos.exam_repo import ExamRepo
from campusdesk.infrastructure.db.repos.school_repo import SchoolRepo
from campusdesk.infrastructure.db.repos.score_repo import ScoreRepo
from campusdesk.infrastructure.db.repos.student_repo import StudentRepo
from campusdesk.infrastructure.importers.table_reader import read_table

logger = logging.getLogger(__name__)

WRITE_ROLES = (Role.ADMIN, Role.STAFF)
READ_ROLES = (Role.ADMIN, Role.STAFF, Role.TEACHER)


class SchoolCreateRequest(BaseModel):
    name: str
    state: str = ""
    district: str = ""


class ExamCreateRequest(BaseModel):
    class_label: str = ""
    title: str = ""
    term: str = ""
    exam_date: str = ""


class ScoreItemRequest(BaseModel):
    student_id: str
    subject: str
    score: float = Field(allow_inf_nan=False)
    max_score: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    grade: str = ""


class StudentCreateRequest(BaseModel):
    full_name: str = ""
    class_label: str = ""
    roll_number: int | str = ""
    date_of_birth: str = ""
    house: str = ""
    parent_phone: str = ""
    admission_year: int | str | None = None


def _jsonable(value: Any) -> Any:
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return value


def _http_error(exc: CampusError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (ValidationError, SpreadsheetDecodeError, HeaderMappingError)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, PersistenceError):
        logger.error("storage failure: %s", exc)
        return HTTPException(status_code=500, detail="internal storage error")
    return HTTPException(status_code=400, detail=str(exc))


def get_principal(
    x_user_id: str | None = Header(default=None),
    x_school_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Principal:
    """Read the caller resolved by the authenticating gateway in front of us."""
    user_id = (x_user_id or "").strip()
    role_raw = (x_user_role or "").strip().lower()
    if not user_id or not role_raw:
        raise HTTPException(status_code=401, detail="unauthorized")
    try:
        role = Role(role_raw)
    except ValueError as exc:
        raise HTTPException(status_code=403, detail="forbidden") from exc
    return Principal(user_id=user_id, school_id=(x_school_id or "").strip(), role=role)


def require_roles(principal: Principal, *roles: Role) -> str:
    """Check the caller's role and return the school it is scoped to."""
    if not principal.has_role(*roles):
        raise HTTPException(status_code=403, detail="forbidden")
    if not principal.school_id:
        raise HTTPException(status_code=403, detail="school scope required")
    return principal.school_id


def create_app(paths: AppPaths, settings: AppSettings | None = None) -> FastAPI:
    app = FastAPI(title="Campus Desk", version="0.1.0")
    settings = settings or load_settings()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    project_service = ProjectService(paths)
    project_service.init_project()

    def get_school_service() -> SchoolService:
        return SchoolService(SchoolRepo(paths.db_path))

    def get_exam_service() -> ExamService:
        return ExamService(ExamRepo(paths.db_path))

    def get_student_service() -> StudentService:
        return StudentService(StudentRepo(paths.db_path), school_repo=SchoolRepo(paths.db_path))

    def get_score_service() -> ScoreService:
        return ScoreService(
            exam_repo=ExamRepo(paths.db_path),
            student_repo=StudentRepo(paths.db_path),
            score_repo=ScoreRepo(paths.db_path),
        )

    async def _read_upload(file: UploadFile | None) -> tuple[str, bytes]:
        if file is None:
            raise HTTPException(status_code=400, detail="file is required")
        data = await file.read(settings.max_upload_bytes + 1)
        if len(data) > settings.max_upload_bytes:
            raise HTTPException(status_code=413, detail="file too large")
        return file.filename or "", data

    @app.get("/healthz")
    def healthz() -> dict[str, Any]:
        return {"ok": True, "env": settings.env, "initialized": project_service.is_initialized()}

    @app.post("/api/v1/schools", status_code=201)
    def api_create_school(req: SchoolCreateRequest, principal: Principal = Depends(get_principal)) -> dict[str, Any]:
        if not principal.has_role(Role.SUPER_ADMIN):
            raise HTTPException(status_code=403, detail="forbidden")
        try:
            school = get_school_service().create_school(req.name, state=req.state, district=req.district)
        except CampusError as exc:
            raise _http_error(exc) from exc
        return _jsonable(school)

    @app.get("/api/v1/schools")
    def api_list_schools(
        limit: int = Query(default=200, ge=1, le=1000),
        principal: Principal = Depends(get_principal),
    ) -> dict[str, Any]:
        if not principal.has_role(Role.SUPER_ADMIN):
            raise HTTPException(status_code=403, detail="forbidden")
        try:
            schools = get_school_service().list_schools(limit=limit)
        except CampusError as exc:
            raise _http_error(exc) from exc
        return {"count": len(schools), "schools": _jsonable(schools)}

    @app.post("/api/v1/exams", status_code=201)
    def api_create_exam(req: ExamCreateRequest, principal: Principal = Depends(get_principal)) -> dict[str, Any]:
        school_id = require_roles(principal, *WRITE_ROLES)
        try:
            exam = get_exam_service().create_exam(
                school_id,
                class_label=req.class_label,
                title=req.title,
                term=req.term,
                exam_date=req.exam_date,
            )
        except CampusError as exc:
            raise _http_error(exc) from exc
        return _jsonable(exam)

    @app.get("/api/v1/exams")
    def api_list_exams(principal: Principal = Depends(get_principal)) -> dict[str, Any]:
        school_id = require_roles(principal, *READ_ROLES)
        try:
            exams = get_exam_service().list_exams(school_id)
        except CampusError as exc:
            raise _http_error(exc) from exc
        return {"count": len(exams), "exams": _jsonable(exams)}

    @app.get("/api/v1/exams/{exam_id}")
    def api_get_exam(exam_id: str, principal: Principal = Depends(get_principal)) -> dict[str, Any]:
        school_id = require_roles(principal, *READ_ROLES)
        try:
            exam = get_exam_service().get_exam(school_id, exam_id)
        except CampusError as exc:
            raise _http_error(exc) from exc
        return _jsonable(exam)

    @app.get("/api/v1/exams/{exam_id}/scores")
    def api_exam_scores(exam_id: str, principal: Principal = Depends(get_principal)) -> dict[str, Any]:
        school_id = require_roles(principal, *READ_ROLES)
        try:
            scores = get_score_service().list_scores_for_exam(school_id, exam_id)
        except CampusError as exc:
            raise _http_error(exc) from exc
        return {"count": len(scores), "scores": _jsonable(scores)}

    @app.post("/api/v1/exams/{exam_id}/scores", status_code=201)
    def api_add_scores(
        exam_id: str,
        items: list[ScoreItemRequest],
        principal: Principal = Depends(get_principal),
    ) -> dict[str, Any]:
        school_id = require_roles(principal, *WRITE_ROLES)
        entries = [
            ScoreEntry(
                student_id=item.student_id,
                subject=item.subject,
                score=item.score,
                max_score=item.max_score,
                grade=item.grade,
            )
            for item in items
        ]
        try:
            records = get_score_service().add_scores(school_id, exam_id, entries)
        except CampusError as exc:
            raise _http_error(exc) from exc
        return {"inserted": len(records), "scores": _jsonable(records)}

    @app.post("/api/v1/exams/{exam_id}/scores/upload")
    @app.post("/api/v1/exams/{exam_id}/scores/csv")
    async def api_upload_scores(
        exam_id: str,
        file: UploadFile | None = File(default=None),
        principal: Principal = Depends(get_principal),
    ) -> JSONResponse:
        school_id = require_roles(principal, *WRITE_ROLES)
        filename, data = await _read_upload(file)
        try:
            outcome = get_score_service().upload_scores(school_id, exam_id, filename, data)
        except CampusError as exc:
            raise _http_error(exc) from exc
        if isinstance(outcome, ScoreUploadRejected):
            return JSONResponse(status_code=400, content={"inserted": 0, "errors": outcome.errors})
        return JSONResponse(status_code=201, content={"inserted": outcome.inserted, "errors": []})

    @app.get("/api/v1/students/lookup")
    def api_lookup_student(
        class_label: str = Query(default="", alias="class"),
        roll: str = Query(default=""),
        principal: Principal = Depends(get_principal),
    ) -> dict[str, Any]:
        school_id = require_roles(principal, *READ_ROLES)
        if not class_label.strip() or not roll.strip():
            raise HTTPException(status_code=400, detail="class and roll required")
        roll_number = parse_positive_int(roll)
        if roll_number is None:
            raise HTTPException(status_code=400, detail="invalid roll")
        try:
            student = get_student_service().lookup(school_id, class_label.strip(), roll_number)
        except CampusError as exc:
            raise _http_error(exc) from exc
        return _jsonable(student)

    @app.get("/api/v1/students/{student_id}/scores")
    def api_student_scores(student_id: str, principal: Principal = Depends(get_principal)) -> dict[str, Any]:
        school_id = require_roles(principal, *READ_ROLES)
        try:
            scores = get_score_service().list_scores_for_student(school_id, student_id)
        except CampusError as exc:
            raise _http_error(exc) from exc
        return {"count": len(scores), "scores": _jsonable(scores)}

    @app.get("/api/v1/students")
    def api_list_students(
        class_label: str | None = Query(default=None, alias="class"),
        limit: int = Query(default=500, ge=1, le=500),
        principal: Principal = Depends(get_principal),
    ) -> dict[str, Any]:
        school_id = require_roles(principal, *READ_ROLES)
        try:
            students = get_student_service().list_students(school_id, class_label=class_label, limit=limit)
        except CampusError as exc:
            raise _http_error(exc) from exc
        return {"count": len(students), "students": _jsonable(students)}

    @app.post("/api/v1/students", status_code=201)
    def api_create_student(req: StudentCreateRequest, principal: Principal = Depends(get_principal)) -> dict[str, Any]:
        school_id = require_roles(principal, *WRITE_ROLES)
        draft = StudentDraft(
            full_name=req.full_name,
            class_label=req.class_label,
            roll_number=str(req.roll_number),
            date_of_birth=req.date_of_birth,
            house=req.house,
            parent_phone=req.parent_phone,
            admission_year="" if req.admission_year is None else str(req.admission_year),
        )
        try:
            student = get_student_service().create_student(school_id, draft)
        except CampusError as exc:
            raise _http_error(exc) from exc
        return _jsonable(student)

    @app.post("/api/v1/students/upload")
    async def api_upload_students(
        file: UploadFile | None = File(default=None),
        principal: Principal = Depends(get_principal),
    ) -> dict[str, Any]:
        school_id = require_roles(principal, *WRITE_ROLES)
        filename, data = await _read_upload(file)
        try:
            table = read_table(filename, data)
            summary = get_student_service().upload_students(school_id, table)
        except CampusError as exc:
            raise _http_error(exc) from exc
        return {
            "inserted": summary.inserted_count,
            "failed": summary.failed_count,
            "errors": summary.errors,
        }

    return app
