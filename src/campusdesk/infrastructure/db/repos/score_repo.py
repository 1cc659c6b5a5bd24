from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from campusdesk.domain.models.exam import Score
from campusdesk.infrastructure.db.sqlite import get_connection, storage_errors


class ScoreRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def insert_many(self, scores: Sequence[Score]) -> None:
        """Insert every score in one transaction; nothing is kept on failure."""
        if not scores:
            return
        with storage_errors("insert score batch"), get_connection(self.db_path) as conn:
            conn.executemany(
                """
                INSERT INTO scores (id, exam_id, student_id, subject, score, max_score, grade, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (s.id, s.exam_id, s.student_id, s.subject, s.score, s.max_score, s.grade, s.created_at)
                    for s in scores
                ],
            )
            conn.commit()

    def list_by_student(self, student_id: str) -> list[Score]:
        with storage_errors("list scores"), get_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT * FROM scores
                WHERE student_id = ?
                ORDER BY created_at DESC
                """,
                (student_id,),
            ).fetchall()
        return [self._to_score(row) for row in rows]

    def list_by_exam(self, exam_id: str) -> list[Score]:
        with storage_errors("list scores"), get_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT * FROM scores
                WHERE exam_id = ?
                ORDER BY subject ASC, created_at ASC
                """,
                (exam_id,),
            ).fetchall()
        return [self._to_score(row) for row in rows]

    @staticmethod
    def _to_score(row) -> Score:
        return Score(
            id=row["id"],
            exam_id=row["exam_id"],
            student_id=row["student_id"],
            subject=row["subject"],
            score=float(row["score"]),
            max_score=float(row["max_score"]),
            grade=row["grade"],
            created_at=row["created_at"],
        )
