from __future__ import annotations

from pathlib import Path

from campusdesk.domain.models.student import Student
from campusdesk.infrastructure.db.sqlite import get_connection, storage_errors


class StudentRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def insert(self, student: Student) -> None:
        with storage_errors("insert student"), get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO students (
                    id,
                    school_id,
                    full_name,
                    class_label,
                    roll_number,
                    date_of_birth,
                    house,
                    parent_phone,
                    admission_year,
                    created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    student.id,
                    student.school_id,
                    student.full_name,
                    student.class_label,
                    student.roll_number,
                    student.date_of_birth,
                    student.house,
                    student.parent_phone,
                    student.admission_year,
                    student.created_at,
                ),
            )
            conn.commit()

    def get_by_id(self, student_id: str) -> Student | None:
        with storage_errors("load student"), get_connection(self.db_path) as conn:
            row = conn.execute("SELECT * FROM students WHERE id = ?", (student_id,)).fetchone()
        return self._to_student(row) if row else None

    def get_by_class_roll(self, school_id: str, class_label: str, roll_number: int) -> Student | None:
        with storage_errors("look up student by class and roll"), get_connection(self.db_path) as conn:
            row = conn.execute(
                """
                SELECT * FROM students
                WHERE school_id = ? AND class_label = ? AND roll_number = ?
                """,
                (school_id, class_label, roll_number),
            ).fetchone()
        return self._to_student(row) if row else None

    def list_by_school(self, school_id: str, class_label: str | None = None, limit: int = 500) -> list[Student]:
        with storage_errors("list students"), get_connection(self.db_path) as conn:
            if class_label:
                rows = conn.execute(
                    """
                    SELECT * FROM students
                    WHERE school_id = ? AND class_label = ?
                    ORDER BY class_label ASC, roll_number ASC
                    LIMIT ?
                    """,
                    (school_id, class_label, limit),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT * FROM students
                    WHERE school_id = ?
                    ORDER BY class_label ASC, roll_number ASC
                    LIMIT ?
                    """,
                    (school_id, limit),
                ).fetchall()
        return [self._to_student(row) for row in rows]

    @staticmethod
    def _to_student(row) -> Student:
        return Student(
            id=row["id"],
            school_id=row["school_id"],
            full_name=row["full_name"],
            class_label=row["class_label"],
            roll_number=int(row["roll_number"]),
            date_of_birth=row["date_of_birth"],
            house=row["house"],
            parent_phone=row["parent_phone"],
            admission_year=int(row["admission_year"]),
            created_at=row["created_at"],
        )
