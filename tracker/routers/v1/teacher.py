# tracker/routers/v1/teacher.py
from typing import Optional
from fastapi import APIRouter
from tracker.core.deps import EventsDep, RepoDep
from tracker.schemas.envelope import ok
from tracker.schemas.payloads import SaveMarksRequest, TaskCreateRequest
from tracker.services.grading_service import GradingService
from tracker.services.report_service import ReportService
from tracker.services.task_service import TaskService

router = APIRouter()

@router.post("/teacher/addTask")
async def add_task(payload: TaskCreateRequest, repo: RepoDep, events: EventsDep):
    result = await TaskService.create_task(
        repo, events,
        teacher_subject_id=payload.teacherSubjectId,
        task_type=payload.taskType,
        title=payload.title,
        semester=payload.semester,
        due_date=payload.dueDate,
        total_marks=payload.totalMarks,
        division=payload.division,
    )
    return ok(result, "Task added successfully and pending submissions created")

@router.get("/teacher/dashboard")
async def teacher_dashboard(
    repo: RepoDep,
    semester: Optional[int] = None,
    subjectId: Optional[str] = None,
    division: Optional[str] = None,
    taskId: Optional[str] = None,
):
    return ok(await ReportService.teacher_dashboard(
        repo, semester=semester, division=division, task_id=taskId, subject_id=subjectId
    ))

@router.get("/teacher/tasks")
async def teacher_tasks(
    repo: RepoDep,
    semester: Optional[int] = None,
    subjectId: Optional[str] = None,
    division: Optional[str] = None,
):
    return ok(await TaskService.list_tasks(repo, semester=semester, subject_id=subjectId, division=division))

@router.get("/teacher/students-list")
async def students_list(
    repo: RepoDep,
    semester: Optional[int] = None,
    subjectId: Optional[str] = None,
    division: Optional[str] = None,
    taskId: Optional[str] = None,
):
    return ok(await ReportService.students_list(
        repo, semester=semester, division=division, task_id=taskId, subject_id=subjectId
    ))

@router.get("/teacher/generate-report/{task_id}")
async def generate_report(task_id: str, repo: RepoDep):
    return ok(await ReportService.generate_report(repo, task_id))

@router.post("/teacher/save-marks")
async def save_marks(payload: SaveMarksRequest, repo: RepoDep, events: EventsDep):
    saved = await GradingService.save_marks(repo, events, [mark.model_dump() for mark in payload.marks])
    return ok(saved, "Marks saved successfully")
