from __future__ import annotations

from pathlib import Path

import pytest

from campusdesk.application.services.school_service import SchoolService
from campusdesk.application.services.student_service import (
    StudentDraft,
    StudentService,
    normalize_parent_phone,
)
from campusdesk.core.errors import IngestionCancelledError, NotFoundError, PersistenceError, ValidationError
from campusdesk.core.time import current_year
from campusdesk.infrastructure.db.repos.school_repo import SchoolRepo
from campusdesk.infrastructure.db.repos.student_repo import StudentRepo
from campusdesk.infrastructure.db.sqlite import initialize_schema
from campusdesk.infrastructure.importers.table_reader import read_table


def _schema_path() -> Path:
    return (
        Path(__file__).resolve().parents[2]
        / "src"
        / "campusdesk"
        / "infrastructure"
        / "db"
        / "schema.sql"
    )


def _setup(tmp_path: Path) -> tuple[StudentService, str]:
    db_path = tmp_path / "campusdesk.db"
    initialize_schema(db_path, _schema_path())
    school = SchoolService(SchoolRepo(db_path)).create_school("Kendriya Vidyalaya No. 2", state="Rajasthan")
    return StudentService(StudentRepo(db_path), school_repo=SchoolRepo(db_path)), school.id


def test_duplicate_row_fails_alone_and_other_rows_commit(tmp_path: Path) -> None:
    service, school_id = _setup(tmp_path)
    table = read_table(
        "roster.csv",
        (
            b"Name,Class,Roll No,DOB,Phone\n"
            b"Asha Rao,8A,1,2012-04-01,9876543210\n"
            b"Ravi Kumar,8A,2,2012-05-11,\n"
            b"Asha R,8A,1,2012-04-01,\n"
            b"Meena Iyer,8A,3,2012-01-20,919876543210\n"
            b"Kabir Shah,8B,1,2012-09-30,+919812345678\n"
        ),
    )

    summary = service.upload_students(school_id, table)

    assert summary.inserted_count == 4
    assert summary.failed_count == 1
    assert summary.errors == ["row 4: duplicate class+roll already exists"]
    stored = service.list_students(school_id)
    assert [(s.class_label, s.roll_number) for s in stored] == [("8A", 1), ("8A", 2), ("8A", 3), ("8B", 1)]
    phones = {s.full_name: s.parent_phone for s in stored}
    assert phones["Meena Iyer"] == "+919876543210"
    assert phones["Kabir Shah"] == "+919812345678"
    assert phones["Asha Rao"] == "9876543210"


def test_blank_rows_are_skipped_and_not_counted(tmp_path: Path) -> None:
    service, school_id = _setup(tmp_path)
    table = read_table(
        "roster.csv",
        b"full_name,class_label,roll_number,date_of_birth,house\n,,,,Red\nAsha,7C,4,2013-02-02,Blue\n",
    )

    summary = service.upload_students(school_id, table)

    assert summary.inserted_count == 1
    assert summary.errors == []


def test_row_validation_messages(tmp_path: Path) -> None:
    service, school_id = _setup(tmp_path)
    table = read_table(
        "roster.csv",
        (
            b"full_name,class,roll,dob,phone,admission_year\n"
            b"Asha,8A,abc,2012-04-01,,\n"
            b"Ravi,8A,2,01/05/2012,,\n"
            b",8A,3,2012-04-01,,\n"
            b"Meena,8A,4,2012-04-01,12345,\n"
            b"Kabir,8A,5,2012-04-01,,twenty\n"
            b"Isha,8A,6,2012-04-01,,2019\n"
        ),
    )

    summary = service.upload_students(school_id, table)

    assert summary.errors == [
        "row 2: invalid roll_number",
        "row 3: date_of_birth must be YYYY-MM-DD",
        "row 4: full_name and class_label required",
        "row 5: parent_phone must be 10 digits, 91XXXXXXXXXX, or +91XXXXXXXXXX",
        "row 6: invalid admission_year",
    ]
    assert summary.inserted_count == 1
    assert summary.inserted[0].admission_year == 2019


def test_admission_year_defaults_to_current_year(tmp_path: Path) -> None:
    service, school_id = _setup(tmp_path)

    blank = service.create_student(
        school_id, StudentDraft(full_name="Asha", class_label="6B", roll_number="1", date_of_birth="2014-03-03")
    )
    zero = service.create_student(
        school_id,
        StudentDraft(
            full_name="Ravi", class_label="6B", roll_number="2", date_of_birth="2014-06-03", admission_year="0"
        ),
    )

    assert blank.admission_year == current_year()
    assert zero.admission_year == current_year()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("", ""),
        ("  ", ""),
        ("9876543210", "9876543210"),
        ("919876543210", "+919876543210"),
        ("+919876543210", "+919876543210"),
        (" +919876543210 ", "+919876543210"),
    ],
)
def test_normalize_parent_phone_accepts(raw: str, expected: str) -> None:
    assert normalize_parent_phone(raw) == expected


@pytest.mark.parametrize("raw", ["12345", "+91987654321", "+9198765432100", "98765-43210", "929876543210", "+44987654321"])
def test_normalize_parent_phone_rejects(raw: str) -> None:
    with pytest.raises(ValidationError):
        normalize_parent_phone(raw)


def test_create_student_rejects_duplicates_and_lookup_finds_by_class_roll(tmp_path: Path) -> None:
    service, school_id = _setup(tmp_path)
    draft = StudentDraft(full_name="Asha", class_label="9A", roll_number="12", date_of_birth="2011-11-11")

    created = service.create_student(school_id, draft)

    with pytest.raises(ValidationError, match="duplicate class\\+roll already exists"):
        service.create_student(school_id, draft)
    assert service.lookup(school_id, "9A", 12).id == created.id
    with pytest.raises(NotFoundError, match="student not found"):
        service.lookup(school_id, "9A", 13)


def test_upload_requires_existing_school(tmp_path: Path) -> None:
    service, _ = _setup(tmp_path)
    table = read_table("roster.csv", b"name,class,roll,dob\nAsha,8A,1,2012-04-01\n")

    with pytest.raises(NotFoundError, match="school not found"):
        service.upload_students("missing-school", table)


def test_cancellation_stops_between_rows_and_keeps_committed_rows(tmp_path: Path) -> None:
    service, school_id = _setup(tmp_path)
    table = read_table(
        "roster.csv",
        b"name,class,roll,dob\nA,8A,1,2012-04-01\nB,8A,2,2012-04-01\nC,8A,3,2012-04-01\n",
    )
    calls = {"count": 0}

    def cancel_after_two_rows() -> bool:
        calls["count"] += 1
        return calls["count"] > 2

    with pytest.raises(IngestionCancelledError, match="before row 4"):
        service.upload_students(school_id, table, cancellation_check=cancel_after_two_rows)

    assert [s.roll_number for s in service.list_students(school_id, class_label="8A")] == [1, 2]


def test_storage_failure_mid_upload_propagates_and_keeps_earlier_rows(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    service, school_id = _setup(tmp_path)
    table = read_table(
        "roster.csv",
        b"name,class,roll,dob\nA,8A,1,2012-04-01\nB,8A,2,2012-04-01\nC,8A,3,2012-04-01\n",
    )
    real_insert = service.student_repo.insert
    inserted = []

    def insert_then_fail(student) -> None:
        if inserted:
            raise PersistenceError("insert student: database or disk is full")
        real_insert(student)
        inserted.append(student)

    monkeypatch.setattr(service.student_repo, "insert", insert_then_fail)

    with pytest.raises(PersistenceError, match="disk is full"):
        service.upload_students(school_id, table)

    monkeypatch.undo()
    assert [s.roll_number for s in service.list_students(school_id)] == [1]
