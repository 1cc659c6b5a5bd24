from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Exam:
    id: str
    school_id: str
    class_label: str
    title: str
    term: str
    exam_date: str
    created_at: str


@dataclass(slots=True)
class Score:
    id: str
    exam_id: str
    student_id: str
    subject: str
    score: float
    max_score: float
    grade: str
    created_at: str
