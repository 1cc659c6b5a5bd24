from __future__ import annotations

from campusdesk.core.errors import NotFoundError, ValidationError
from campusdesk.core.ids import new_uuid
from campusdesk.core.time import now_utc_iso, parse_calendar_date
from campusdesk.domain.models.exam import Exam
from campusdesk.infrastructure.db.repos.exam_repo import ExamRepo


class ExamService:
    def __init__(self, exam_repo: ExamRepo) -> None:
        self.exam_repo = exam_repo

    def create_exam(
        self,
        school_id: str,
        *,
        class_label: str,
        title: str,
        exam_date: str,
        term: str = "",
    ) -> Exam:
        if not str(exam_date or "").strip():
            raise ValidationError("date required")
        try:
            parsed_date = parse_calendar_date(exam_date)
        except ValueError as exc:
            raise ValidationError("invalid date") from exc
        if not class_label.strip() or not title.strip():
            raise ValidationError("class and title required")

        exam = Exam(
            id=new_uuid(),
            school_id=school_id,
            class_label=class_label.strip(),
            title=title.strip(),
            term=term.strip(),
            exam_date=parsed_date.isoformat(),
            created_at=now_utc_iso(),
        )
        self.exam_repo.insert(exam)
        return exam

    def get_exam(self, school_id: str, exam_id: str) -> Exam:
        exam = self.exam_repo.get_for_school(school_id, exam_id)
        if exam is None:
            raise NotFoundError("exam not found")
        return exam

    def list_exams(self, school_id: str, limit: int = 200) -> list[Exam]:
        return self.exam_repo.list_by_school(school_id, limit=limit)
