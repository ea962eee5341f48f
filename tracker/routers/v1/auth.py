# tracker/routers/v1/auth.py
from fastapi import APIRouter, File, UploadFile
from tracker.core.deps import RepoDep
from tracker.schemas.envelope import ok
from tracker.schemas.payloads import LoginRequest, TeacherRegisterRequest
from tracker.services.auth_service import AuthService

router = APIRouter()

@router.post("/auth/login")
async def login(payload: LoginRequest, repo: RepoDep):
    data = await AuthService.login(repo, email=payload.email, password=payload.password, role=payload.role)
    return ok(data, "Login successful")

@router.post("/auth/register-students-csv")
async def register_students_csv(repo: RepoDep, file: UploadFile = File(...)):
    result = await AuthService.register_students_csv(repo, await file.read())
    return ok(result, f"Imported {result['success']} students, {result['failed']} failed")

@router.post("/auth/register-teacher", status_code=201)
async def register_teacher(payload: TeacherRegisterRequest, repo: RepoDep):
    created = await AuthService.register_teacher(
        repo,
        email=payload.email,
        full_name=payload.fullName,
        department=payload.department,
        contact_number=payload.contactNumber,
        password=payload.password,
    )
    return ok(created, "Teacher registered successfully")
