from __future__ import annotations

from pathlib import Path

from campusdesk.domain.models.school import School
from campusdesk.infrastructure.db.sqlite import get_connection, storage_errors


class SchoolRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def insert(self, school: School) -> None:
        with storage_errors("insert school"), get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO schools (id, name, state, district, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (school.id, school.name, school.state, school.district, school.created_at),
            )
            conn.commit()

    def get_by_id(self, school_id: str) -> School | None:
        with storage_errors("load school"), get_connection(self.db_path) as conn:
            row = conn.execute("SELECT * FROM schools WHERE id = ?", (school_id,)).fetchone()
        return self._to_school(row) if row else None

    def list(self, limit: int = 200) -> list[School]:
        with storage_errors("list schools"), get_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM schools ORDER BY name ASC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._to_school(row) for row in rows]

    @staticmethod
    def _to_school(row) -> School:
        return School(
            id=row["id"],
            name=row["name"],
            state=row["state"],
            district=row["district"],
            created_at=row["created_at"],
        )
