from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from campusdesk.application.services.header_mapper import plan_score_headers
from campusdesk.core.errors import NotFoundError, ValidationError
from campusdesk.core.ids import new_uuid
from campusdesk.core.numbers import parse_finite_float, parse_positive_int
from campusdesk.core.time import now_utc_iso
from campusdesk.domain.models.exam import Exam, Score
from campusdesk.domain.models.ingestion import (
    RawTable,
    ScoreHeaderPlan,
    ScoreLayout,
    ScoreRow,
    ScoreUploadCommitted,
    ScoreUploadOutcome,
    ScoreUploadRejected,
    row_error,
)
from campusdesk.infrastructure.db.repos.exam_repo import ExamRepo
from campusdesk.infrastructure.db.repos.score_repo import ScoreRepo
from campusdesk.infrastructure.db.repos.student_repo import StudentRepo
from campusdesk.infrastructure.importers.table_reader import read_table

logger = logging.getLogger(__name__)

DEFAULT_MAX_SCORE = 100.0


@dataclass(slots=True)
class ScoreEntry:
    """One manually entered score, as posted to the scores endpoint."""

    student_id: str
    subject: str
    score: float
    max_score: float | None = None
    grade: str = ""


class ScoreService:
    def __init__(self, exam_repo: ExamRepo, student_repo: StudentRepo, score_repo: ScoreRepo) -> None:
        self.exam_repo = exam_repo
        self.student_repo = student_repo
        self.score_repo = score_repo

    def add_scores(self, school_id: str, exam_id: str, entries: Sequence[ScoreEntry]) -> list[Score]:
        exam = self._require_exam(school_id, exam_id)
        if not entries:
            raise ValidationError("scores required")

        rows: list[ScoreRow] = []
        for entry in entries:
            student = self.student_repo.get_by_id(entry.student_id)
            if student is None or student.school_id != school_id:
                raise ValidationError(f"student not found: {entry.student_id}")
            subject = entry.subject.strip()
            if not subject:
                raise ValidationError("subject required")
            if not math.isfinite(entry.score):
                raise ValidationError("invalid score")
            max_score = DEFAULT_MAX_SCORE
            if entry.max_score is not None:
                if not math.isfinite(entry.max_score) or entry.max_score <= 0:
                    raise ValidationError("invalid max_score")
                max_score = float(entry.max_score)
            rows.append(
                ScoreRow(
                    exam_id=exam.id,
                    student_id=student.id,
                    subject=subject,
                    score=float(entry.score),
                    max_score=max_score,
                    grade=entry.grade.strip(),
                )
            )

        records = self._persist(rows)
        logger.info(
            "scores.created school_id=%s exam_id=%s count=%d",
            school_id,
            exam.id,
            len(records),
        )
        return records

    def list_scores_for_student(self, school_id: str, student_id: str) -> list[Score]:
        student = self.student_repo.get_by_id(student_id)
        if student is None or student.school_id != school_id:
            raise NotFoundError("student not found")
        return self.score_repo.list_by_student(student.id)

    def list_scores_for_exam(self, school_id: str, exam_id: str) -> list[Score]:
        exam = self._require_exam(school_id, exam_id)
        return self.score_repo.list_by_exam(exam.id)

    def upload_scores(self, school_id: str, exam_id: str, filename: str | None, data: bytes) -> ScoreUploadOutcome:
        """Decode a score sheet and write it all-or-nothing.

        The exam is resolved before the file is decoded, so an unknown exam
        never costs a parse.
        """
        exam = self._require_exam(school_id, exam_id)
        table = read_table(filename, data)
        return self.ingest_table(exam, table)

    def ingest_table(self, exam: Exam, table: RawTable) -> ScoreUploadOutcome:
        plan = plan_score_headers(table.headers)
        rows, errors = self.build_score_rows(exam, plan, table)
        if errors:
            logger.info(
                "scores.upload_rejected school_id=%s exam_id=%s errors=%d",
                exam.school_id,
                exam.id,
                len(errors),
            )
            return ScoreUploadRejected(errors=errors)

        records = self._persist(rows)
        logger.info(
            "scores.created.bulk school_id=%s exam_id=%s layout=%s count=%d",
            exam.school_id,
            exam.id,
            plan.layout.value,
            len(records),
        )
        return ScoreUploadCommitted(records=records)

    def build_score_rows(
        self, exam: Exam, plan: ScoreHeaderPlan, table: RawTable
    ) -> tuple[list[ScoreRow], list[str]]:
        """Validate every data row; returns the good rows and every row error."""
        rows: list[ScoreRow] = []
        errors: list[str] = []
        index = plan.index

        for row_number, record in table.numbered_rows():
            roll_raw = index.value(record, "roll_number")
            if plan.layout is ScoreLayout.ROW_BASED:
                subject = index.value(record, "subject")
                score_raw = index.value(record, "score")
                if not roll_raw and not subject and not score_raw:
                    continue
            else:
                cells = [(column.subject, RawTable.cell(record, column.position)) for column in plan.subject_columns]
                if not roll_raw and not any(value for _, value in cells):
                    continue

            if not roll_raw:
                errors.append(row_error(row_number, "missing roll_number"))
                continue
            roll_number = parse_positive_int(roll_raw)
            if roll_number is None:
                errors.append(row_error(row_number, "invalid roll_number"))
                continue

            student = self.student_repo.get_by_class_roll(exam.school_id, exam.class_label, roll_number)
            if student is None:
                errors.append(row_error(row_number, "student not found"))
                continue

            if plan.layout is ScoreLayout.ROW_BASED:
                if not subject or not score_raw:
                    errors.append(row_error(row_number, "subject and score required"))
                    continue
                score = parse_finite_float(score_raw)
                if score is None:
                    errors.append(row_error(row_number, "invalid score"))
                    continue
                max_score = DEFAULT_MAX_SCORE
                max_raw = index.value(record, "max_score")
                if max_raw:
                    parsed_max = parse_finite_float(max_raw)
                    if parsed_max is None:
                        errors.append(row_error(row_number, "invalid max_score"))
                        continue
                    max_score = parsed_max
                rows.append(
                    ScoreRow(
                        exam_id=exam.id,
                        student_id=student.id,
                        subject=subject,
                        score=score,
                        max_score=max_score,
                        grade=index.value(record, "grade"),
                    )
                )
                continue

            for subject_label, value in cells:
                if not value:
                    continue
                score = parse_finite_float(value)
                if score is None:
                    errors.append(row_error(row_number, f"invalid score for {subject_label}"))
                    continue
                rows.append(
                    ScoreRow(
                        exam_id=exam.id,
                        student_id=student.id,
                        subject=subject_label,
                        score=score,
                    )
                )

        return rows, errors

    def _require_exam(self, school_id: str, exam_id: str) -> Exam:
        exam = self.exam_repo.get_for_school(school_id, exam_id)
        if exam is None:
            raise NotFoundError("exam not found")
        return exam

    def _persist(self, rows: Sequence[ScoreRow]) -> list[Score]:
        created_at = now_utc_iso()
        records = [
            Score(
                id=new_uuid(),
                exam_id=row.exam_id,
                student_id=row.student_id,
                subject=row.subject,
                score=row.score,
                max_score=row.max_score,
                grade=row.grade,
                created_at=created_at,
            )
            for row in rows
        ]
        self.score_repo.insert_many(records)
        return records
