from __future__ import annotations

from pathlib import Path

from campusdesk.domain.models.exam import Exam
from campusdesk.infrastructure.db.sqlite import get_connection, storage_errors


class ExamRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def insert(self, exam: Exam) -> None:
        with storage_errors("insert exam"), get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO exams (id, school_id, class_label, title, term, exam_date, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    exam.id,
                    exam.school_id,
                    exam.class_label,
                    exam.title,
                    exam.term,
                    exam.exam_date,
                    exam.created_at,
                ),
            )
            conn.commit()

    def get_for_school(self, school_id: str, exam_id: str) -> Exam | None:
        with storage_errors("load exam"), get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM exams WHERE id = ? AND school_id = ?",
                (exam_id, school_id),
            ).fetchone()
        return self._to_exam(row) if row else None

    def list_by_school(self, school_id: str, limit: int = 200) -> list[Exam]:
        with storage_errors("list exams"), get_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT * FROM exams
                WHERE school_id = ?
                ORDER BY exam_date DESC, created_at DESC
                LIMIT ?
                """,
                (school_id, limit),
            ).fetchall()
        return [self._to_exam(row) for row in rows]

    @staticmethod
    def _to_exam(row) -> Exam:
        return Exam(
            id=row["id"],
            school_id=row["school_id"],
            class_label=row["class_label"],
            title=row["title"],
            term=row["term"],
            exam_date=row["exam_date"],
            created_at=row["created_at"],
        )
