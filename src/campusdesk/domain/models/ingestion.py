from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from campusdesk.domain.models.exam import Score
from campusdesk.domain.models.student import Student

# The header occupies row 1, so the first data row is row 2.
FIRST_DATA_ROW_NUMBER = 2


@dataclass(frozen=True, slots=True)
class RawTable:
    """Decoded upload: a header row plus data rows of trimmed cell strings.

    Data rows may be shorter or longer than the header; ``cell`` never raises
    for an out-of-range position.
    """

    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]

    @classmethod
    def from_records(cls, records: Sequence[Sequence[str]]) -> RawTable:
        if not records:
            raise ValueError("RawTable requires at least a header record")
        headers = tuple(str(v).strip() for v in records[0])
        rows = tuple(tuple(str(v).strip() for v in record) for record in records[1:])
        return cls(headers=headers, rows=rows)

    @staticmethod
    def cell(row: Sequence[str], position: int | None) -> str:
        if position is None or position < 0 or position >= len(row):
            return ""
        return str(row[position]).strip()

    def numbered_rows(self):
        for offset, row in enumerate(self.rows):
            yield offset + FIRST_DATA_ROW_NUMBER, row


@dataclass(frozen=True, slots=True)
class HeaderIndex:
    """Canonical field name to column position, immutable once built."""

    positions: Mapping[str, int]

    def __post_init__(self) -> None:
        object.__setattr__(self, "positions", MappingProxyType(dict(self.positions)))

    def __contains__(self, canonical: object) -> bool:
        return canonical in self.positions

    def position(self, canonical: str) -> int | None:
        return self.positions.get(canonical)

    def value(self, row: Sequence[str], canonical: str) -> str:
        return RawTable.cell(row, self.position(canonical))


class ScoreLayout(str, Enum):
    ROW_BASED = "row_based"
    WIDE = "wide"


@dataclass(frozen=True, slots=True)
class SubjectColumn:
    position: int
    subject: str


@dataclass(frozen=True, slots=True)
class ScoreHeaderPlan:
    """Everything the score validator needs to know about the header row."""

    index: HeaderIndex
    layout: ScoreLayout
    subject_columns: tuple[SubjectColumn, ...] = ()


@dataclass(frozen=True, slots=True)
class ScoreRow:
    exam_id: str
    student_id: str
    subject: str
    score: float
    max_score: float = 100.0
    grade: str = ""


@dataclass(frozen=True, slots=True)
class StudentRow:
    school_id: str
    full_name: str
    class_label: str
    roll_number: int
    date_of_birth: str
    house: str
    parent_phone: str
    admission_year: int


def row_error(row_number: int, message: str) -> str:
    return f"row {row_number}: {message}"


@dataclass(slots=True)
class ScoreUploadCommitted:
    """Every row validated; the whole batch was written in one transaction."""

    records: list[Score]

    @property
    def inserted(self) -> int:
        return len(self.records)


@dataclass(slots=True)
class ScoreUploadRejected:
    """At least one row failed validation; nothing was written."""

    errors: list[str]

    @property
    def inserted(self) -> int:
        return 0


ScoreUploadOutcome = ScoreUploadCommitted | ScoreUploadRejected


@dataclass(slots=True)
class StudentUploadSummary:
    """Per-row commit result: partial success is a normal outcome."""

    inserted: list[Student] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def inserted_count(self) -> int:
        return len(self.inserted)

    @property
    def failed_count(self) -> int:
        return len(self.errors)
