# tracker/routers/v1/student.py
from typing import Optional
from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import Response
from tracker.core.deps import EventsDep, RepoDep, StoreDep
from tracker.schemas.envelope import ok
from tracker.services.submission_service import SubmissionService

router = APIRouter()

@router.get("/student/dashboard/{user_id}")
async def student_dashboard(user_id: str, repo: RepoDep):
    return await SubmissionService.student_dashboard(repo, user_id)

@router.get("/student/tasks/{status}")
async def student_tasks(status: str, repo: RepoDep, studentId: Optional[str] = None):
    return ok(await SubmissionService.student_tasks(repo, student_id=studentId, status=status))

@router.post("/student/submission/upload")
async def upload_submission(
    repo: RepoDep,
    store: StoreDep,
    events: EventsDep,
    file: UploadFile = File(...),
    taskId: str = Form(...),
    studentId: str = Form(...),
):
    body = await file.read()
    key = await SubmissionService.upload(
        repo, store, events,
        task_id=taskId,
        student_id=studentId,
        body=body,
        content_type=file.content_type,
    )
    return ok({"key": key, "taskId": taskId, "studentId": studentId}, "Submission uploaded successfully")

@router.get("/student/file/{key}")
async def student_file(key: str, store: StoreDep):
    stored = await SubmissionService.download(store, key)
    return Response(content=stored.body, media_type=stored.content_type)
