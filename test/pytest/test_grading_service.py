import pytest

from tracker.core.errors import NotFoundError, ValidationError
from tracker.services.event_service import MARKS_SAVED
from tracker.services.grading_service import GradingService


async def _graded_setup(repo, events, factory, total_marks=20):
    student_id = await factory.student(roll="CS001")
    teacher_id = await factory.teacher()
    ts = await factory.teacher_subject(teacher_id)
    result = await factory.task(events, ts, total_marks=total_marks)
    submission = await repo.get_submission_for(task_id=result["task"]["id"], student_id=student_id)
    return teacher_id, result["task"]["id"], submission["id"]


def _entry(submission_id, teacher_id, question, marks, comments=None):
    return {
        "submissionId": submission_id,
        "questionNumber": question,
        "marksObtained": marks,
        "comments": comments,
        "markedBy": teacher_id,
    }


@pytest.mark.asyncio
async def test_save_marks_replaces_previous_set(repo, events, factory):
    teacher_id, task_id, submission_id = await _graded_setup(repo, events, factory)

    await GradingService.save_marks(repo, events, [
        _entry(submission_id, teacher_id, 1, 5),
        _entry(submission_id, teacher_id, 2, 3),
    ])
    saved = await GradingService.save_marks(repo, events, [_entry(submission_id, teacher_id, 1, 7)])

    assert [(m["questionNumber"], m["marksObtained"]) for m in saved] == [(1, 7)]
    report = await repo.get_task_report(task_id)
    assert [(row["questionNumber"], row["marksObtained"]) for row in report] == [(1, 7.0)]


@pytest.mark.asyncio
async def test_save_marks_sets_status_graded(repo, events, factory):
    teacher_id, _, submission_id = await _graded_setup(repo, events, factory)

    await GradingService.save_marks(repo, events, [_entry(submission_id, teacher_id, 1, 8.5, "Good")])

    submission = await repo.get_submission(submission_id)
    assert submission["status"] == "graded"
    assert events.events[-1][0] == MARKS_SAVED
    assert events.events[-1][1]["score"] == 8.5


@pytest.mark.asyncio
async def test_save_marks_unknown_submission(repo, events, factory):
    teacher_id = await factory.teacher()

    with pytest.raises(NotFoundError):
        await GradingService.save_marks(repo, events, [_entry("missing", teacher_id, 1, 5)])


@pytest.mark.asyncio
async def test_save_marks_unknown_teacher_leaves_marks_untouched(repo, events, factory):
    teacher_id, task_id, submission_id = await _graded_setup(repo, events, factory)
    await GradingService.save_marks(repo, events, [_entry(submission_id, teacher_id, 1, 5)])

    with pytest.raises(NotFoundError):
        await GradingService.save_marks(repo, events, [_entry(submission_id, "ghost", 1, 9)])

    report = await repo.get_task_report(task_id)
    assert [(row["questionNumber"], row["marksObtained"]) for row in report] == [(1, 5.0)]


@pytest.mark.asyncio
async def test_save_marks_validation(repo, events, factory):
    teacher_id, _, submission_id = await _graded_setup(repo, events, factory, total_marks=10)

    with pytest.raises(ValidationError):
        await GradingService.save_marks(repo, events, [])
    with pytest.raises(ValidationError):
        await GradingService.save_marks(repo, events, [
            _entry(submission_id, teacher_id, 1, 2),
            _entry("other", teacher_id, 2, 2),
        ])
    with pytest.raises(ValidationError):
        await GradingService.save_marks(repo, events, [
            _entry(submission_id, teacher_id, 1, 2),
            _entry(submission_id, teacher_id, 1, 3),
        ])
    with pytest.raises(ValidationError):
        await GradingService.save_marks(repo, events, [_entry(submission_id, teacher_id, 1, -1)])
    with pytest.raises(ValidationError):
        await GradingService.save_marks(repo, events, [
            _entry(submission_id, teacher_id, 1, 6),
            _entry(submission_id, teacher_id, 2, 5),
        ])

    submission = await repo.get_submission(submission_id)
    assert submission["status"] == "pending"
