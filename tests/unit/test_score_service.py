from __future__ import annotations

from pathlib import Path

import pytest

from campusdesk.application.services.exam_service import ExamService
from campusdesk.application.services.school_service import SchoolService
from campusdesk.application.services.score_service import ScoreEntry, ScoreService
from campusdesk.application.services.student_service import StudentDraft, StudentService
from campusdesk.core.errors import (
    HeaderMappingError,
    NotFoundError,
    PersistenceError,
    SpreadsheetDecodeError,
    ValidationError,
)
from campusdesk.domain.models.exam import Exam
from campusdesk.domain.models.ingestion import ScoreUploadCommitted, ScoreUploadRejected
from campusdesk.infrastructure.db.repos.exam_repo import ExamRepo
from campusdesk.infrastructure.db.repos.school_repo import SchoolRepo
from campusdesk.infrastructure.db.repos.score_repo import ScoreRepo
from campusdesk.infrastructure.db.repos.student_repo import StudentRepo
from campusdesk.infrastructure.db.sqlite import initialize_schema


def _schema_path() -> Path:
    return (
        Path(__file__).resolve().parents[2]
        / "src"
        / "campusdesk"
        / "infrastructure"
        / "db"
        / "schema.sql"
    )


def _setup(tmp_path: Path) -> tuple[ScoreService, Exam, list[str]]:
    db_path = tmp_path / "campusdesk.db"
    initialize_schema(db_path, _schema_path())

    school = SchoolService(SchoolRepo(db_path)).create_school("Govt Senior Secondary School", district="Jaipur")
    students = StudentService(StudentRepo(db_path), school_repo=SchoolRepo(db_path))
    student_ids = []
    for roll, name in ((1, "Asha Rao"), (2, "Ravi Kumar"), (3, "Meena Iyer")):
        student = students.create_student(
            school.id,
            StudentDraft(full_name=name, class_label="8A", roll_number=str(roll), date_of_birth="2012-04-0" + str(roll)),
        )
        student_ids.append(student.id)

    exam = ExamService(ExamRepo(db_path)).create_exam(
        school.id, class_label="8A", title="Unit Test 1", term="Term 1", exam_date="2025-07-14"
    )
    service = ScoreService(
        exam_repo=ExamRepo(db_path),
        student_repo=StudentRepo(db_path),
        score_repo=ScoreRepo(db_path),
    )
    return service, exam, student_ids


def test_one_bad_row_rejects_the_whole_batch(tmp_path: Path) -> None:
    service, exam, _ = _setup(tmp_path)
    data = b"roll,subject,score\n1,Maths,90\n2,Maths,80\n3,Maths,abc\n1,Science,70\n"

    outcome = service.upload_scores(exam.school_id, exam.id, "scores.csv", data)

    assert isinstance(outcome, ScoreUploadRejected)
    assert outcome.inserted == 0
    assert outcome.errors == ["row 4: invalid score"]
    assert service.score_repo.list_by_exam(exam.id) == []


def test_row_based_upload_commits_with_defaults(tmp_path: Path) -> None:
    service, exam, student_ids = _setup(tmp_path)
    data = b"Roll No,Subject,Marks,Out Of,Grade\n1,Maths,45,50,A\n2,Maths,38,,B\n"

    outcome = service.upload_scores(exam.school_id, exam.id, "scores.csv", data)

    assert isinstance(outcome, ScoreUploadCommitted)
    assert outcome.inserted == 2
    stored = {s.student_id: s for s in service.score_repo.list_by_exam(exam.id)}
    assert stored[student_ids[0]].max_score == 50.0
    assert stored[student_ids[0]].grade == "A"
    assert stored[student_ids[1]].max_score == 100.0
    assert stored[student_ids[1]].score == 38.0


def test_wide_layout_creates_one_score_per_filled_subject_cell(tmp_path: Path) -> None:
    service, exam, student_ids = _setup(tmp_path)
    data = b"Roll,Name,Maths,Science\n1,Asha Rao,90,85\n2,Ravi Kumar,,70\n"

    outcome = service.upload_scores(exam.school_id, exam.id, "scores.csv", data)

    assert isinstance(outcome, ScoreUploadCommitted)
    assert outcome.inserted == 3
    by_student = {}
    for score in outcome.records:
        by_student.setdefault(score.student_id, {})[score.subject] = score.score
        assert score.max_score == 100.0
        assert score.grade == ""
    assert by_student[student_ids[0]] == {"Maths": 90.0, "Science": 85.0}
    assert by_student[student_ids[1]] == {"Science": 70.0}


def test_wide_layout_reports_each_bad_cell(tmp_path: Path) -> None:
    service, exam, _ = _setup(tmp_path)
    data = b"Roll,Maths,Science,English\n1,abc,80,inf\n"

    outcome = service.upload_scores(exam.school_id, exam.id, "scores.csv", data)

    assert isinstance(outcome, ScoreUploadRejected)
    assert outcome.errors == ["row 2: invalid score for Maths", "row 2: invalid score for English"]


def test_row_errors_cover_roll_student_and_missing_fields(tmp_path: Path) -> None:
    service, exam, _ = _setup(tmp_path)
    data = (
        b"roll,subject,score,max_score\n"
        b",,,\n"
        b",Maths,50,\n"
        b"0,Maths,50,\n"
        b"9,Maths,50,\n"
        b"1,,50,\n"
        b"2,Maths,nan,\n"
        b"3,Maths,40,lots\n"
    )

    outcome = service.upload_scores(exam.school_id, exam.id, "scores.csv", data)

    assert isinstance(outcome, ScoreUploadRejected)
    assert outcome.errors == [
        "row 3: missing roll_number",
        "row 4: invalid roll_number",
        "row 5: student not found",
        "row 6: subject and score required",
        "row 7: invalid score",
        "row 8: invalid max_score",
    ]


def test_exam_is_resolved_before_the_file_is_decoded(tmp_path: Path) -> None:
    service, exam, _ = _setup(tmp_path)

    with pytest.raises(NotFoundError, match="exam not found"):
        service.upload_scores(exam.school_id, "no-such-exam", "scores.txt", b"")
    with pytest.raises(NotFoundError):
        service.upload_scores("other-school", exam.id, "scores.csv", b"roll,subject,score\n1,Maths,50\n")


def test_fatal_file_and_header_errors_propagate(tmp_path: Path) -> None:
    service, exam, _ = _setup(tmp_path)

    with pytest.raises(SpreadsheetDecodeError, match="supported file types"):
        service.upload_scores(exam.school_id, exam.id, "scores.txt", b"roll,score\n")
    with pytest.raises(HeaderMappingError, match="missing required column: roll_number"):
        service.upload_scores(exam.school_id, exam.id, "scores.csv", b"name,maths\nAsha,90\n")
    assert service.score_repo.list_by_exam(exam.id) == []


def test_add_scores_and_list_by_student(tmp_path: Path) -> None:
    service, exam, student_ids = _setup(tmp_path)

    with pytest.raises(ValidationError, match="scores required"):
        service.add_scores(exam.school_id, exam.id, [])
    with pytest.raises(ValidationError, match="student not found"):
        service.add_scores(exam.school_id, exam.id, [ScoreEntry(student_id="ghost", subject="Maths", score=1)])

    created = service.add_scores(
        exam.school_id,
        exam.id,
        [
            ScoreEntry(student_id=student_ids[2], subject="Maths", score=72, max_score=80, grade="B+"),
            ScoreEntry(student_id=student_ids[2], subject=" Hindi ", score=64),
        ],
    )

    assert [s.subject for s in created] == ["Maths", "Hindi"]
    listed = service.list_scores_for_student(exam.school_id, student_ids[2])
    assert {s.subject for s in listed} == {"Maths", "Hindi"}
    with pytest.raises(NotFoundError):
        service.list_scores_for_student("other-school", student_ids[2])


def test_wide_layout_skips_rows_with_no_roll_and_no_subject_cells(tmp_path: Path) -> None:
    service, exam, student_ids = _setup(tmp_path)
    data = b"Roll,Name,Maths\n1,Asha Rao,90\n,Someone,\n"

    outcome = service.upload_scores(exam.school_id, exam.id, "scores.csv", data)

    assert isinstance(outcome, ScoreUploadCommitted)
    assert outcome.inserted == 1
    assert outcome.records[0].student_id == student_ids[0]


def test_storage_failure_on_commit_propagates_instead_of_becoming_a_row_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    service, exam, _ = _setup(tmp_path)

    def failing_insert_many(scores) -> None:
        raise PersistenceError("insert score batch: disk I/O error")

    monkeypatch.setattr(service.score_repo, "insert_many", failing_insert_many)

    with pytest.raises(PersistenceError, match="disk I/O error"):
        service.upload_scores(exam.school_id, exam.id, "scores.csv", b"roll,subject,score\n1,Maths,90\n")


def test_add_scores_keeps_explicit_max_and_rejects_bad_numbers(tmp_path: Path) -> None:
    service, exam, student_ids = _setup(tmp_path)

    with pytest.raises(ValidationError, match="invalid max_score"):
        service.add_scores(
            exam.school_id, exam.id, [ScoreEntry(student_id=student_ids[0], subject="Maths", score=10, max_score=0)]
        )
    with pytest.raises(ValidationError, match="invalid score"):
        service.add_scores(
            exam.school_id, exam.id, [ScoreEntry(student_id=student_ids[0], subject="Maths", score=float("nan"))]
        )

    created = service.add_scores(
        exam.school_id,
        exam.id,
        [
            ScoreEntry(student_id=student_ids[0], subject="Maths", score=18, max_score=20),
            ScoreEntry(student_id=student_ids[1], subject="Maths", score=70),
        ],
    )

    assert [s.max_score for s in created] == [20.0, 100.0]


def test_list_scores_for_exam_is_scoped_to_the_school(tmp_path: Path) -> None:
    service, exam, _ = _setup(tmp_path)
    service.upload_scores(exam.school_id, exam.id, "scores.csv", b"roll,subject,score\n1,Maths,90\n2,Maths,60\n")

    scores = service.list_scores_for_exam(exam.school_id, exam.id)

    assert sorted(s.score for s in scores) == [60.0, 90.0]
    with pytest.raises(NotFoundError, match="exam not found"):
        service.list_scores_for_exam("other-school", exam.id)
