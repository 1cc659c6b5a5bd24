from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    STAFF = "staff"
    TEACHER = "teacher"
    PARENT = "parent"


@dataclass(slots=True)
class School:
    id: str
    name: str
    state: str
    district: str
    created_at: str


@dataclass(frozen=True, slots=True)
class Principal:
    """An already-authenticated caller, scoped to one school."""

    user_id: str
    school_id: str
    role: Role

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles
