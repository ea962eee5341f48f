from __future__ import annotations
from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field

TaskType = Literal["ISE1", "ISE2", "MSE"]
Role = Literal["student", "teacher", "admin"]
AcademicYearLabel = Literal["FE", "SE", "TE", "BE"]
SubmissionStatus = Literal["pending", "submitted", "graded"]

# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    role: Role

class TeacherRegisterRequest(BaseModel):
    email: str = Field(..., min_length=3)
    fullName: str = Field(..., min_length=1)
    department: str = Field(..., min_length=1)
    contactNumber: Optional[str] = None
    password: Optional[str] = None

# ---- Catalogo ----
class SubjectCreateRequest(BaseModel):
    subjectCode: str = Field(..., min_length=1)
    subjectName: str = Field(..., min_length=1)
    semester: int = Field(..., ge=1, le=8)
    year: AcademicYearLabel

class TeacherSubjectCreateRequest(BaseModel):
    teacherId: str = Field(..., min_length=1)
    subjectId: str = Field(..., min_length=1)
    division: str = Field(..., min_length=1)
    academicYear: str = Field(..., min_length=1)

# ---- Task ----
class TaskCreateRequest(BaseModel):
    teacherSubjectId: str = Field(..., min_length=1)
    taskType: TaskType
    title: str = Field(..., min_length=1)
    semester: int = Field(..., ge=1, le=8)
    dueDate: datetime
    totalMarks: int = Field(..., gt=0)
    division: str = Field(..., min_length=1)

# ---- Voti ----
class MarkEntry(BaseModel):
    submissionId: str = Field(..., min_length=1)
    questionNumber: int = Field(..., ge=1)
    marksObtained: float
    comments: Optional[str] = None
    markedBy: str = Field(..., min_length=1)

class SaveMarksRequest(BaseModel):
    marks: list[MarkEntry]
