import pytest

from tracker.core.errors import NotFoundError, ValidationError
from tracker.services.grading_service import GradingService
from tracker.services.report_service import ReportService


async def _class_with_marks(repo, events, factory):
    """Tre studenti: Bob valutato 8.5 + 6, Alice con voti a zero, Carl senza voti."""
    bob = await factory.student(roll="CS002", name="Bob Wilson")
    alice = await factory.student(roll="CS001", name="Alice Brown")
    carl = await factory.student(roll="CS003", name="Carl Davis")
    teacher_id = await factory.teacher()
    ts = await factory.teacher_subject(teacher_id)
    task_id = (await factory.task(events, ts))["task"]["id"]

    bob_sub = await repo.get_submission_for(task_id=task_id, student_id=bob)
    alice_sub = await repo.get_submission_for(task_id=task_id, student_id=alice)
    await GradingService.save_marks(repo, events, [
        {"submissionId": bob_sub["id"], "questionNumber": 1, "marksObtained": 8.5,
         "comments": "Good", "markedBy": teacher_id},
        {"submissionId": bob_sub["id"], "questionNumber": 2, "marksObtained": 6,
         "comments": "Good", "markedBy": teacher_id},
    ])
    await GradingService.save_marks(repo, events, [
        {"submissionId": alice_sub["id"], "questionNumber": 1, "marksObtained": 0,
         "comments": None, "markedBy": teacher_id},
    ])
    return ts, task_id, {"alice": alice, "bob": bob, "carl": carl}


@pytest.mark.asyncio
async def test_teacher_dashboard_totals(repo, events, factory):
    ts, task_id, ids = await _class_with_marks(repo, events, factory)

    rows = await ReportService.teacher_dashboard(repo, semester=5, division="A", task_id=task_id)

    assert [(r["rollNumber"], r["studentName"], r["totalMarks"]) for r in rows] == [
        ("CS001", "Alice Brown", 0.0),
        ("CS002", "Bob Wilson", 14.5),
        ("CS003", "Carl Davis", 0.0),
    ]
    assert all(isinstance(r["totalMarks"], float) for r in rows)


@pytest.mark.asyncio
async def test_teacher_dashboard_subject_filter(repo, events, factory):
    ts, task_id, _ = await _class_with_marks(repo, events, factory)
    other = await factory.teacher_subject()

    same = await ReportService.teacher_dashboard(
        repo, semester=5, division="A", task_id=task_id, subject_id=ts["subjectId"]
    )
    none = await ReportService.teacher_dashboard(
        repo, semester=5, division="A", task_id=task_id, subject_id=other["subjectId"]
    )

    assert len(same) == 3
    assert none == []


@pytest.mark.asyncio
async def test_teacher_dashboard_requires_filters(repo):
    with pytest.raises(ValidationError):
        await ReportService.teacher_dashboard(repo, semester=5, division="A", task_id=None)


@pytest.mark.asyncio
async def test_students_list(repo, events, factory):
    _, task_id, ids = await _class_with_marks(repo, events, factory)

    rows = await ReportService.students_list(repo, semester=5, division="A", task_id=task_id)

    by_student = {r["studentId"]: r for r in rows}
    assert [r["rollNumber"] for r in rows] == ["CS001", "CS002", "CS003"]
    assert by_student[ids["bob"]]["totalMarks"] == 14.5
    assert by_student[ids["bob"]]["comments"] == "Good"
    assert by_student[ids["bob"]]["submission"]["status"] == "graded"
    assert by_student[ids["carl"]]["comments"] is None
    assert by_student[ids["carl"]]["submission"]["status"] == "pending"


@pytest.mark.asyncio
async def test_generate_report(repo, events, factory):
    _, task_id, _ = await _class_with_marks(repo, events, factory)

    rows = await ReportService.generate_report(repo, task_id)

    assert [(r["studentName"], r["questionNumber"], r["marksObtained"]) for r in rows] == [
        ("Alice Brown", 1, 0.0),
        ("Bob Wilson", 1, 8.5),
        ("Bob Wilson", 2, 6.0),
        ("Carl Davis", None, None),
    ]
    assert {r["totalMarks"] for r in rows} == {20}
    assert {r["taskTitle"] for r in rows} == {"Normalization"}


@pytest.mark.asyncio
async def test_generate_report_unknown_task(repo):
    with pytest.raises(NotFoundError):
        await ReportService.generate_report(repo, "missing")


# Fake repository con i soli metodi usati dal servizio
class FakeDashboardRepo:
    async def get_teacher_dashboard(self, **filters):
        self.filters = filters
        return [{"studentId": "s1", "rollNumber": "CS001", "studentName": "Alice", "totalMarks": None}]


@pytest.mark.asyncio
async def test_teacher_dashboard_coalesces_to_float():
    repo = FakeDashboardRepo()

    rows = await ReportService.teacher_dashboard(repo, semester=5, division="A", task_id="t1")

    assert rows[0]["totalMarks"] == 0.0
    assert repo.filters == {"semester": 5, "division": "A", "task_id": "t1", "subject_id": None}
