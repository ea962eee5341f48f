# tracker/routers/v1/catalog.py
from typing import Optional
from fastapi import APIRouter
from tracker.core.deps import RepoDep
from tracker.schemas.envelope import ok
from tracker.schemas.payloads import SubjectCreateRequest, TeacherSubjectCreateRequest
from tracker.services.catalog_service import CatalogService
from tracker.services.submission_service import SubmissionService
from tracker.services.task_service import TaskService

router = APIRouter()

@router.post("/subjects", status_code=201)
async def create_subject(payload: SubjectCreateRequest, repo: RepoDep):
    subject = await CatalogService.create_subject(
        repo,
        subject_code=payload.subjectCode,
        subject_name=payload.subjectName,
        semester=payload.semester,
        year=payload.year,
    )
    return ok(subject, "Subject created successfully")

@router.post("/teacher-subjects", status_code=201)
async def create_teacher_subject(payload: TeacherSubjectCreateRequest, repo: RepoDep):
    assignment = await CatalogService.create_teacher_subject(
        repo,
        teacher_id=payload.teacherId,
        subject_id=payload.subjectId,
        division=payload.division,
        academic_year=payload.academicYear,
    )
    return ok(assignment, "Teacher assigned to subject successfully")

@router.get("/tasks/by-filters")
async def tasks_by_filters(
    repo: RepoDep,
    semester: Optional[int] = None,
    subjectId: Optional[str] = None,
    division: Optional[str] = None,
):
    return ok(await TaskService.list_tasks(repo, semester=semester, subject_id=subjectId, division=division))

@router.get("/submission/id-by-filepath/{file_path:path}")
async def submission_by_file_path(file_path: str, repo: RepoDep):
    return ok(await SubmissionService.find_by_file_path(repo, file_path))
