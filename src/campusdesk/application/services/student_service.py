from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from campusdesk.application.services.header_mapper import plan_student_headers
from campusdesk.core.errors import (
    DuplicateRecordError,
    IngestionCancelledError,
    NotFoundError,
    ValidationError,
)
from campusdesk.core.ids import new_uuid
from campusdesk.core.numbers import parse_int, parse_positive_int
from campusdesk.core.time import current_year, now_utc_iso, parse_calendar_date
from campusdesk.domain.models.ingestion import (
    HeaderIndex,
    RawTable,
    StudentRow,
    StudentUploadSummary,
    row_error,
)
from campusdesk.domain.models.student import Student
from campusdesk.infrastructure.db.repos.school_repo import SchoolRepo
from campusdesk.infrastructure.db.repos.student_repo import StudentRepo

logger = logging.getLogger(__name__)

_DIGITS_RE = re.compile(r"[0-9]+")

INVALID_PHONE_MESSAGE = "parent_phone must be 10 digits, 91XXXXXXXXXX, or +91XXXXXXXXXX"
DUPLICATE_MESSAGE = "duplicate class+roll already exists"

# Blank-row detection looks only at the identifying columns.
STUDENT_KEY_FIELDS = ("full_name", "class_label", "roll_number", "date_of_birth")


def normalize_parent_phone(value: str | None) -> str:
    """Normalize an Indian mobile number or raise ValidationError.

    Accepted: empty, ``+91`` plus 10 digits, ``91`` plus 10 digits (gets a
    ``+`` prefix), or a bare 10-digit number.
    """
    text = str(value or "").strip()
    if not text:
        return ""
    if text.startswith("+91"):
        digits = text[3:]
        if len(digits) == 10 and _DIGITS_RE.fullmatch(digits):
            return text
        raise ValidationError(INVALID_PHONE_MESSAGE)
    if len(text) == 12 and text.startswith("91") and _DIGITS_RE.fullmatch(text):
        return "+" + text
    if len(text) == 10 and _DIGITS_RE.fullmatch(text):
        return text
    raise ValidationError(INVALID_PHONE_MESSAGE)


@dataclass(slots=True)
class StudentDraft:
    """Unvalidated student fields, as typed into a form or read from a sheet."""

    full_name: str = ""
    class_label: str = ""
    roll_number: str = ""
    date_of_birth: str = ""
    house: str = ""
    parent_phone: str = ""
    admission_year: str = ""


class StudentService:
    def __init__(self, student_repo: StudentRepo, school_repo: SchoolRepo | None = None) -> None:
        self.student_repo = student_repo
        self.school_repo = school_repo

    def create_student(self, school_id: str, draft: StudentDraft) -> Student:
        self._require_school(school_id)
        row = self.validate_draft(school_id, draft)
        if self.student_repo.get_by_class_roll(school_id, row.class_label, row.roll_number) is not None:
            raise ValidationError(DUPLICATE_MESSAGE)
        try:
            return self._insert(row)
        except DuplicateRecordError as exc:
            raise ValidationError(DUPLICATE_MESSAGE) from exc

    def list_students(self, school_id: str, class_label: str | None = None, limit: int = 500) -> list[Student]:
        return self.student_repo.list_by_school(school_id, class_label=class_label or None, limit=limit)

    def lookup(self, school_id: str, class_label: str, roll_number: int) -> Student:
        student = self.student_repo.get_by_class_roll(school_id, class_label, roll_number)
        if student is None:
            raise NotFoundError("student not found")
        return student

    def upload_students(
        self,
        school_id: str,
        table: RawTable,
        *,
        cancellation_check: Callable[[], bool] | None = None,
    ) -> StudentUploadSummary:
        """Validate and insert each row on its own.

        A bad row is recorded and the next row is processed; rows committed
        before a failure stay committed. Because every good row is written
        before the next is validated, a class+roll repeated later in the same
        file is reported as a duplicate.
        """
        self._require_school(school_id)

        index = plan_student_headers(table.headers)
        summary = StudentUploadSummary()

        for row_number, record in table.numbered_rows():
            if cancellation_check is not None and bool(cancellation_check()):
                raise IngestionCancelledError(
                    f"student upload cancelled before row {row_number} "
                    f"({summary.inserted_count} inserted, {summary.failed_count} failed)"
                )
            if _is_blank(index, record):
                continue

            try:
                row = self.validate_draft(school_id, _draft_from_record(index, record))
            except ValidationError as exc:
                summary.errors.append(row_error(row_number, str(exc)))
                continue

            if self.student_repo.get_by_class_roll(school_id, row.class_label, row.roll_number) is not None:
                summary.errors.append(row_error(row_number, DUPLICATE_MESSAGE))
                continue
            try:
                student = self._insert(row)
            except DuplicateRecordError:
                summary.errors.append(row_error(row_number, DUPLICATE_MESSAGE))
                continue
            summary.inserted.append(student)

        logger.info(
            "students.bulk_upload school_id=%s inserted=%d failed=%d",
            school_id,
            summary.inserted_count,
            summary.failed_count,
        )
        return summary

    def validate_draft(self, school_id: str, draft: StudentDraft) -> StudentRow:
        roll_number = parse_positive_int(draft.roll_number)
        if roll_number is None:
            raise ValidationError("invalid roll_number")
        try:
            date_of_birth = parse_calendar_date(draft.date_of_birth)
        except ValueError as exc:
            raise ValidationError("date_of_birth must be YYYY-MM-DD") from exc

        full_name = draft.full_name.strip()
        class_label = draft.class_label.strip()
        if not full_name or not class_label:
            raise ValidationError("full_name and class_label required")

        parent_phone = normalize_parent_phone(draft.parent_phone)

        # Absent or non-positive years fall back to the current year.
        admission_year = current_year()
        if draft.admission_year.strip():
            parsed_year = parse_int(draft.admission_year)
            if parsed_year is None:
                raise ValidationError("invalid admission_year")
            if parsed_year > 0:
                admission_year = parsed_year

        return StudentRow(
            school_id=school_id,
            full_name=full_name,
            class_label=class_label,
            roll_number=roll_number,
            date_of_birth=date_of_birth.isoformat(),
            house=draft.house.strip(),
            parent_phone=parent_phone,
            admission_year=admission_year,
        )

    def _require_school(self, school_id: str) -> None:
        if self.school_repo is not None and self.school_repo.get_by_id(school_id) is None:
            raise NotFoundError(f"school not found: {school_id}")

    def _insert(self, row: StudentRow) -> Student:
        student = Student(
            id=new_uuid(),
            school_id=row.school_id,
            full_name=row.full_name,
            class_label=row.class_label,
            roll_number=row.roll_number,
            date_of_birth=row.date_of_birth,
            house=row.house,
            parent_phone=row.parent_phone,
            admission_year=row.admission_year,
            created_at=now_utc_iso(),
        )
        self.student_repo.insert(student)
        return student


def _draft_from_record(index: HeaderIndex, record: Sequence[str]) -> StudentDraft:
    return StudentDraft(
        full_name=index.value(record, "full_name"),
        class_label=index.value(record, "class_label"),
        roll_number=index.value(record, "roll_number"),
        date_of_birth=index.value(record, "date_of_birth"),
        house=index.value(record, "house"),
        parent_phone=index.value(record, "parent_phone"),
        admission_year=index.value(record, "admission_year"),
    )


def _is_blank(index: HeaderIndex, record: Sequence[str]) -> bool:
    return not any(index.value(record, field) for field in STUDENT_KEY_FIELDS)


