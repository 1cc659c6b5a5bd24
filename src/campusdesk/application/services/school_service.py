from __future__ import annotations

from campusdesk.core.errors import NotFoundError, ValidationError
from campusdesk.core.ids import new_uuid
from campusdesk.core.time import now_utc_iso
from campusdesk.domain.models.school import School
from campusdesk.infrastructure.db.repos.school_repo import SchoolRepo


class SchoolService:
    def __init__(self, school_repo: SchoolRepo) -> None:
        self.school_repo = school_repo

    def create_school(self, name: str, state: str = "", district: str = "") -> School:
        clean_name = name.strip()
        if not clean_name:
            raise ValidationError("school name is required")
        school = School(
            id=new_uuid(),
            name=clean_name,
            state=state.strip(),
            district=district.strip(),
            created_at=now_utc_iso(),
        )
        self.school_repo.insert(school)
        return school

    def get_school(self, school_id: str) -> School:
        school = self.school_repo.get_by_id(school_id)
        if school is None:
            raise NotFoundError(f"school not found: {school_id}")
        return school

    def list_schools(self, limit: int = 200) -> list[School]:
        return self.school_repo.list(limit=limit)
