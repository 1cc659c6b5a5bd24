from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Student:
    id: str
    school_id: str
    full_name: str
    class_label: str
    roll_number: int
    date_of_birth: str
    house: str
    parent_phone: str
    admission_year: int
    created_at: str
