from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType

from campusdesk.core.errors import HeaderMappingError
from campusdesk.domain.models.ingestion import (
    HeaderIndex,
    ScoreHeaderPlan,
    ScoreLayout,
    SubjectColumn,
)

AliasTable = Mapping[str, tuple[str, ...]]

SCORE_HEADER_ALIASES: AliasTable = MappingProxyType(
    {
        "roll_number": ("roll", "roll_no", "roll_number", "roll number", "rollnumber"),
        "student_name": ("name", "student_name", "full_name", "student"),
        "subject": ("subject", "subject_name"),
        "score": ("score", "marks", "marks_obtained", "obtained"),
        "max_score": ("max_score", "max_marks", "out_of", "maximum", "max"),
        "grade": ("grade",),
    }
)

STUDENT_HEADER_ALIASES: AliasTable = MappingProxyType(
    {
        "full_name": ("full_name", "name", "student_name"),
        "class_label": ("class_label", "class"),
        "roll_number": ("roll_number", "roll", "roll_no"),
        "date_of_birth": ("date_of_birth", "dob", "birth_date"),
        "house": ("house",),
        "parent_phone": ("parent_phone", "phone", "parent_mobile"),
        "admission_year": ("admission_year", "admission"),
    }
)

# Columns that identify the student in a wide score sheet rather than name a subject.
WIDE_LAYOUT_EXCLUDED_FIELDS = ("roll_number", "student_name")

STUDENT_REQUIRED_FIELDS = ("full_name", "class_label", "roll_number", "date_of_birth")


def normalize_header(value: str) -> str:
    """Case-fold a header and drop spaces and underscores: ``"Roll No"`` -> ``"rollno"``."""
    normalized = str(value or "").strip().lower()
    return normalized.replace(" ", "").replace("_", "")


class HeaderMapper:
    """Resolves raw header text to canonical field names using a fixed alias table."""

    def __init__(self, aliases: AliasTable) -> None:
        lookup: dict[str, str] = {}
        for canonical, spellings in aliases.items():
            for spelling in (canonical, *spellings):
                key = normalize_header(spelling)
                existing = lookup.get(key)
                if existing is not None and existing != canonical:
                    raise ValueError(f"Header alias {spelling!r} maps to both {existing} and {canonical}")
                lookup[key] = canonical
        self._lookup: Mapping[str, str] = MappingProxyType(lookup)

    def canonical_for(self, raw_header: str) -> str | None:
        return self._lookup.get(normalize_header(raw_header))

    def build_index(self, headers: Sequence[str]) -> HeaderIndex:
        positions: dict[str, int] = {}
        for position, raw in enumerate(headers):
            canonical = self.canonical_for(raw)
            if canonical is None or canonical in positions:
                continue
            positions[canonical] = position
        return HeaderIndex(positions)

    def require(self, index: HeaderIndex, fields: Sequence[str]) -> None:
        for canonical in fields:
            if canonical not in index:
                raise HeaderMappingError(f"missing required column: {canonical}")


def plan_score_headers(headers: Sequence[str], aliases: AliasTable = SCORE_HEADER_ALIASES) -> ScoreHeaderPlan:
    """Map a score sheet's header row and pick its layout.

    A ``subject`` column selects the row-based layout (one score per row).
    Without it the sheet is wide: every other non-identifying column is a
    subject whose cell holds that subject's score.
    """
    mapper = HeaderMapper(aliases)
    index = mapper.build_index(headers)
    mapper.require(index, ("roll_number",))

    if "subject" in index:
        mapper.require(index, ("score",))
        return ScoreHeaderPlan(index=index, layout=ScoreLayout.ROW_BASED)

    subject_columns: list[SubjectColumn] = []
    for position, raw in enumerate(headers):
        label = str(raw).strip()
        if not label:
            continue
        if mapper.canonical_for(label) in WIDE_LAYOUT_EXCLUDED_FIELDS:
            continue
        subject_columns.append(SubjectColumn(position=position, subject=label))
    return ScoreHeaderPlan(index=index, layout=ScoreLayout.WIDE, subject_columns=tuple(subject_columns))


def plan_student_headers(headers: Sequence[str], aliases: AliasTable = STUDENT_HEADER_ALIASES) -> HeaderIndex:
    mapper = HeaderMapper(aliases)
    index = mapper.build_index(headers)
    mapper.require(index, STUDENT_REQUIRED_FIELDS)
    return index
