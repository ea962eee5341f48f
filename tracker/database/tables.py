import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    MetaData, Table, Column, String, Integer, Float, Text,
    UniqueConstraint, DateTime, ForeignKey
)

metadata = MetaData()

def new_id() -> str:
    return uuid.uuid4().hex

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

users = Table(
    "users",
    metadata,
    Column("id", String(64), primary_key=True, default=new_id),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("full_name", String(255), nullable=False),
    Column("contact_number", String(32), nullable=True),
    Column("role", String(16), nullable=False),  # student | teacher | admin
    Column("created_at", DateTime(timezone=True), nullable=True, default=utcnow),
)

students = Table(
    "students",
    metadata,
    Column("id", String(64), primary_key=True, default=new_id),
    Column("user_id", String(64), ForeignKey("users.id"), nullable=False, index=True),
    Column("roll_number", String(64), nullable=False),
    Column("pid", String(64), nullable=False, unique=True),
    Column("current_semester", Integer, nullable=False),
    Column("current_year", String(4), nullable=False),  # FE | SE | TE | BE
    Column("division", String(16), nullable=False),
    Column("academic_year", String(16), nullable=False),  # es. 2024-2025
)

teachers = Table(
    "teachers",
    metadata,
    Column("id", String(64), primary_key=True, default=new_id),
    Column("user_id", String(64), ForeignKey("users.id"), nullable=False, index=True),
    Column("department", String(255), nullable=False),
)

subjects = Table(
    "subjects",
    metadata,
    Column("id", String(64), primary_key=True, default=new_id),
    Column("subject_code", String(64), nullable=False, unique=True),
    Column("subject_name", String(255), nullable=False),
    Column("semester", Integer, nullable=False),
    Column("year", String(4), nullable=False),
)

teacher_subjects = Table(
    "teacher_subjects",
    metadata,
    Column("id", String(64), primary_key=True, default=new_id),
    Column("teacher_id", String(64), ForeignKey("teachers.id"), nullable=False, index=True),
    Column("subject_id", String(64), ForeignKey("subjects.id"), nullable=False, index=True),
    Column("division", String(16), nullable=False),
    Column("academic_year", String(16), nullable=False),
    UniqueConstraint("teacher_id", "subject_id", "division", "academic_year", name="uq_teacher_subject"),
)

tasks = Table(
    "tasks",
    metadata,
    Column("id", String(64), primary_key=True, default=new_id),
    Column("teacher_subject_id", String(64), ForeignKey("teacher_subjects.id"), nullable=False, index=True),
    Column("task_type", String(8), nullable=False),  # ISE1 | ISE2 | MSE
    Column("title", String(255), nullable=False),
    Column("semester", Integer, nullable=False),
    Column("due_date", DateTime(timezone=True), nullable=False),
    Column("total_marks", Integer, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=True, default=utcnow),
)

submissions = Table(
    "submissions",
    metadata,
    Column("id", String(64), primary_key=True, default=new_id),
    Column("task_id", String(64), ForeignKey("tasks.id"), nullable=False, index=True),
    Column("student_id", String(64), ForeignKey("students.id"), nullable=False, index=True),
    Column("submission_file_path", String(255), nullable=False, index=True),
    Column("submission_date", DateTime(timezone=True), nullable=True, default=utcnow),
    Column("status", String(16), nullable=False),  # pending | submitted | graded
    UniqueConstraint("task_id", "student_id", name="uq_submission_task_student"),
)

marks = Table(
    "marks",
    metadata,
    Column("id", String(64), primary_key=True, default=new_id),
    Column("submission_id", String(64), ForeignKey("submissions.id"), nullable=False, index=True),
    Column("question_number", Integer, nullable=False),
    Column("marks_obtained", Float, nullable=False),
    Column("comments", Text, nullable=True),
    Column("marked_by", String(64), ForeignKey("teachers.id"), nullable=False),
    Column("marked_at", DateTime(timezone=True), nullable=True, default=utcnow),
    UniqueConstraint("submission_id", "question_number", name="uq_marks_submission_question"),
)
