from __future__ import annotations
from datetime import datetime
import logging
from typing import Mapping, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlalchemy import select, insert, update, delete, func, literal_column

from tracker.database.repository import TrackerRepository
from tracker.database.tables import (
    metadata, new_id, utcnow,
    users, students, teachers, subjects, teacher_subjects, tasks, submissions, marks,
)

logger = logging.getLogger("tracker.repository")

USER_FIELDS = {
    "id": users.c.id,
    "email": users.c.email,
    "fullName": users.c.full_name,
    "contactNumber": users.c.contact_number,
    "role": users.c.role,
    "createdAt": users.c.created_at,
}

STUDENT_FIELDS = {
    "id": students.c.id,
    "userId": students.c.user_id,
    "rollNumber": students.c.roll_number,
    "pid": students.c.pid,
    "currentSemester": students.c.current_semester,
    "currentYear": students.c.current_year,
    "division": students.c.division,
    "academicYear": students.c.academic_year,
}

TEACHER_FIELDS = {
    "id": teachers.c.id,
    "userId": teachers.c.user_id,
    "department": teachers.c.department,
}

SUBJECT_FIELDS = {
    "id": subjects.c.id,
    "subjectCode": subjects.c.subject_code,
    "subjectName": subjects.c.subject_name,
    "semester": subjects.c.semester,
    "year": subjects.c.year,
}

TEACHER_SUBJECT_FIELDS = {
    "id": teacher_subjects.c.id,
    "teacherId": teacher_subjects.c.teacher_id,
    "subjectId": teacher_subjects.c.subject_id,
    "division": teacher_subjects.c.division,
    "academicYear": teacher_subjects.c.academic_year,
}

TASK_FIELDS = {
    "id": tasks.c.id,
    "teacherSubjectId": tasks.c.teacher_subject_id,
    "taskType": tasks.c.task_type,
    "title": tasks.c.title,
    "semester": tasks.c.semester,
    "dueDate": tasks.c.due_date,
    "totalMarks": tasks.c.total_marks,
    "createdAt": tasks.c.created_at,
}

SUBMISSION_FIELDS = {
    "id": submissions.c.id,
    "taskId": submissions.c.task_id,
    "studentId": submissions.c.student_id,
    "filePath": submissions.c.submission_file_path,
    "submissionDate": submissions.c.submission_date,
    "status": submissions.c.status,
}

def _labelled(fields: Mapping) -> list:
    return [col.label(name) for name, col in fields.items()]

def _pick(row, fields: Mapping) -> dict:
    return {name: row[col] for name, col in fields.items()}


class SqlTrackerRepository(TrackerRepository):
    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)

    async def ensure_schema(self) -> None:
        logger.info("Ensuring schema for tracker tables")
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Schema ready")

    async def _one(self, stmt) -> Optional[dict]:
        async with self.session_factory() as session:
            row = (await session.execute(stmt)).mappings().first()
        return dict(row) if row is not None else None

    async def _all(self, stmt) -> list[dict]:
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).mappings().all()
        return [dict(r) for r in rows]

    def _concat_distinct(self, column):
        if self.engine.dialect.name == "postgresql":
            return func.string_agg(column.distinct(), literal_column("','"))
        return func.group_concat(column.distinct())

    # -----------------------------
    # Utenti e ruoli
    # -----------------------------
    async def get_user_by_email(self, email: str, *, case_insensitive: bool = False) -> Optional[dict]:
        condition = (
            func.lower(users.c.email) == email.lower() if case_insensitive else users.c.email == email
        )
        stmt = (
            select(*_labelled(USER_FIELDS), users.c.password_hash.label("passwordHash"))
            .where(condition)
            .limit(1)
        )
        return await self._one(stmt)

    async def get_student_by_user_id(self, user_id: str) -> Optional[dict]:
        stmt = select(*_labelled(STUDENT_FIELDS)).where(students.c.user_id == user_id).limit(1)
        return await self._one(stmt)

    async def get_student_profile(self, user_id: str) -> Optional[dict]:
        stmt = (
            select(*STUDENT_FIELDS.values(), *USER_FIELDS.values())
            .select_from(students.join(users, students.c.user_id == users.c.id))
            .where(students.c.user_id == user_id)
            .limit(1)
        )
        async with self.session_factory() as session:
            row = (await session.execute(stmt)).mappings().first()
        if row is None:
            return None
        return {"student": _pick(row, STUDENT_FIELDS), "user": _pick(row, USER_FIELDS)}

    async def get_teacher_by_user_id(self, user_id: str) -> Optional[dict]:
        stmt = select(*_labelled(TEACHER_FIELDS)).where(teachers.c.user_id == user_id).limit(1)
        return await self._one(stmt)

    async def get_teacher(self, teacher_id: str) -> Optional[dict]:
        stmt = select(*_labelled(TEACHER_FIELDS)).where(teachers.c.id == teacher_id).limit(1)
        return await self._one(stmt)

    async def list_teacher_subjects(self, teacher_id: str) -> list[dict]:
        stmt = (
            select(
                teacher_subjects.c.id.label("id"),
                teacher_subjects.c.subject_id.label("subjectId"),
                teacher_subjects.c.division.label("division"),
                teacher_subjects.c.academic_year.label("academicYear"),
                subjects.c.subject_name.label("subjectName"),
                subjects.c.subject_code.label("subjectCode"),
                subjects.c.semester.label("semester"),
                subjects.c.year.label("year"),
            )
            .select_from(teacher_subjects.join(subjects, teacher_subjects.c.subject_id == subjects.c.id))
            .where(teacher_subjects.c.teacher_id == teacher_id)
            .order_by(subjects.c.subject_code, teacher_subjects.c.division)
        )
        return await self._all(stmt)

    async def pid_exists(self, pid: str) -> bool:
        stmt = select(students.c.id).where(students.c.pid == pid).limit(1)
        return await self._one(stmt) is not None

    async def create_student(self, *, user: dict, student: dict) -> dict:
        user_id, student_id = new_id(), new_id()
        async with self.session_factory() as session:
            await session.execute(insert(users).values(id=user_id, created_at=utcnow(), **user))
            await session.execute(insert(students).values(id=student_id, user_id=user_id, **student))
            await session.commit()
        logger.debug("Student created", extra={"user_id": user_id, "student_id": student_id})
        return {"userId": user_id, "studentId": student_id}

    async def create_teacher(self, *, user: dict, teacher: dict) -> dict:
        user_id, teacher_id = new_id(), new_id()
        async with self.session_factory() as session:
            await session.execute(insert(users).values(id=user_id, created_at=utcnow(), **user))
            await session.execute(insert(teachers).values(id=teacher_id, user_id=user_id, **teacher))
            await session.commit()
        logger.debug("Teacher created", extra={"user_id": user_id, "teacher_id": teacher_id})
        return {"userId": user_id, "teacherId": teacher_id}

    # -----------------------------
    # Catalogo
    # -----------------------------
    async def get_subject(self, subject_id: str) -> Optional[dict]:
        stmt = select(*_labelled(SUBJECT_FIELDS)).where(subjects.c.id == subject_id).limit(1)
        return await self._one(stmt)

    async def get_subject_by_code(self, subject_code: str) -> Optional[dict]:
        stmt = select(*_labelled(SUBJECT_FIELDS)).where(subjects.c.subject_code == subject_code).limit(1)
        return await self._one(stmt)

    async def create_subject(self, *, subject_code: str, subject_name: str, semester: int, year: str) -> dict:
        row = {
            "id": new_id(),
            "subject_code": subject_code,
            "subject_name": subject_name,
            "semester": semester,
            "year": year,
        }
        async with self.session_factory() as session:
            await session.execute(insert(subjects).values(**row))
            await session.commit()
        logger.debug("Subject created", extra={"subject_id": row["id"], "subject_code": subject_code})
        return {name: row[col.name] for name, col in SUBJECT_FIELDS.items()}

    async def get_teacher_subject(self, teacher_subject_id: str) -> Optional[dict]:
        stmt = (
            select(*_labelled(TEACHER_SUBJECT_FIELDS))
            .where(teacher_subjects.c.id == teacher_subject_id)
            .limit(1)
        )
        return await self._one(stmt)

    async def find_teacher_subject(
        self, *, teacher_id: str, subject_id: str, division: str, academic_year: str
    ) -> Optional[dict]:
        stmt = (
            select(*_labelled(TEACHER_SUBJECT_FIELDS))
            .where(
                teacher_subjects.c.teacher_id == teacher_id,
                teacher_subjects.c.subject_id == subject_id,
                teacher_subjects.c.division == division,
                teacher_subjects.c.academic_year == academic_year,
            )
            .limit(1)
        )
        return await self._one(stmt)

    async def create_teacher_subject(
        self, *, teacher_id: str, subject_id: str, division: str, academic_year: str
    ) -> dict:
        row = {
            "id": new_id(),
            "teacher_id": teacher_id,
            "subject_id": subject_id,
            "division": division,
            "academic_year": academic_year,
        }
        async with self.session_factory() as session:
            await session.execute(insert(teacher_subjects).values(**row))
            await session.commit()
        logger.debug("Linked teacher↔subject", extra={"teacher_id": teacher_id, "subject_id": subject_id})
        return {name: row[col.name] for name, col in TEACHER_SUBJECT_FIELDS.items()}

    # -----------------------------
    # Task e fan-out
    # -----------------------------
    async def create_task_with_submissions(
        self, *, task: dict, division: str, batch_size: int
    ) -> tuple[dict, int]:
        row = {"id": new_id(), "created_at": utcnow(), **task}
        cohort_stmt = (
            select(students.c.id)
            .where(students.c.current_semester == row["semester"], students.c.division == division)
            .order_by(students.c.roll_number)
        )

        created = 0
        async with self.session_factory() as session:
            await session.execute(insert(tasks).values(**row))
            student_ids = (await session.execute(cohort_stmt)).scalars().all()

            pending = [
                {
                    "id": new_id(),
                    "task_id": row["id"],
                    "student_id": student_id,
                    "submission_file_path": "",
                    "submission_date": None,
                    "status": "pending",
                }
                for student_id in student_ids
            ]
            # insert multi-riga a blocchi: limite sui parametri per statement
            for start in range(0, len(pending), batch_size):
                batch = pending[start:start + batch_size]
                await session.execute(insert(submissions).values(batch))
                created += len(batch)
            await session.commit()

        logger.debug("Task created with pending submissions",
                     extra={"task_id": row["id"], "division": division, "submissions": created})
        return {name: row[col.name] for name, col in TASK_FIELDS.items()}, created

    async def get_task(self, task_id: str) -> Optional[dict]:
        stmt = select(*_labelled(TASK_FIELDS)).where(tasks.c.id == task_id).limit(1)
        return await self._one(stmt)

    async def list_tasks(self, *, semester: int, subject_id: str, division: str) -> list[dict]:
        stmt = (
            select(
                tasks.c.id.label("taskId"),
                tasks.c.teacher_subject_id.label("teacherSubjectId"),
                tasks.c.title.label("title"),
                tasks.c.task_type.label("taskType"),
                tasks.c.semester.label("semester"),
                tasks.c.due_date.label("dueDate"),
                tasks.c.total_marks.label("totalMarks"),
                tasks.c.created_at.label("createdAt"),
            )
            .select_from(tasks.join(teacher_subjects, tasks.c.teacher_subject_id == teacher_subjects.c.id))
            .where(
                tasks.c.semester == semester,
                teacher_subjects.c.subject_id == subject_id,
                teacher_subjects.c.division == division,
            )
            .order_by(tasks.c.created_at)
        )
        return await self._all(stmt)

    # -----------------------------
    # Submission e voti
    # -----------------------------
    async def get_submission(self, submission_id: str) -> Optional[dict]:
        stmt = (
            select(*_labelled(SUBMISSION_FIELDS), tasks.c.total_marks.label("totalMarks"))
            .select_from(submissions.join(tasks, submissions.c.task_id == tasks.c.id))
            .where(submissions.c.id == submission_id)
            .limit(1)
        )
        return await self._one(stmt)

    async def get_submission_for(self, *, task_id: str, student_id: str) -> Optional[dict]:
        stmt = (
            select(*_labelled(SUBMISSION_FIELDS))
            .where(submissions.c.task_id == task_id, submissions.c.student_id == student_id)
            .limit(1)
        )
        return await self._one(stmt)

    async def get_submission_by_file_path(self, file_path: str) -> Optional[dict]:
        stmt = (
            select(*_labelled(SUBMISSION_FIELDS))
            .where(submissions.c.submission_file_path == file_path)
            .limit(1)
        )
        return await self._one(stmt)

    async def mark_submission_submitted(
        self, *, task_id: str, student_id: str, file_path: str, submitted_at: datetime
    ) -> int:
        # una submission già valutata non torna indietro
        stmt = (
            update(submissions)
            .where(
                submissions.c.task_id == task_id,
                submissions.c.student_id == student_id,
                submissions.c.status != "graded",
            )
            .values(submission_file_path=file_path, status="submitted", submission_date=submitted_at)
        )
        async with self.session_factory() as session:
            updated = (await session.execute(stmt)).rowcount
            await session.commit()
        logger.debug("Submission marked submitted",
                     extra={"task_id": task_id, "student_id": student_id, "file_path": file_path})
        return updated

    async def replace_marks(self, *, submission_id: str, entries: Sequence[dict]) -> list[dict]:
        marked_at = utcnow()
        rows = [
            {
                "id": new_id(),
                "submission_id": submission_id,
                "question_number": entry["question_number"],
                "marks_obtained": entry["marks_obtained"],
                "comments": entry.get("comments"),
                "marked_by": entry["marked_by"],
                "marked_at": marked_at,
            }
            for entry in entries
        ]
        async with self.session_factory() as session:
            await session.execute(delete(marks).where(marks.c.submission_id == submission_id))
            if rows:
                await session.execute(insert(marks).values(rows))
                await session.execute(
                    update(submissions).where(submissions.c.id == submission_id).values(status="graded")
                )
            await session.commit()
        logger.debug("Marks replaced", extra={"submission_id": submission_id, "count": len(rows)})
        return [
            {
                "id": r["id"],
                "submissionId": r["submission_id"],
                "questionNumber": r["question_number"],
                "marksObtained": r["marks_obtained"],
                "comments": r["comments"],
                "markedBy": r["marked_by"],
                "markedAt": r["marked_at"],
            }
            for r in rows
        ]

    # -----------------------------
    # Report aggregati
    # -----------------------------
    async def list_student_tasks(self, *, student_id: str, status: str) -> list[dict]:
        group = [
            tasks.c.id.label("taskId"),
            tasks.c.title.label("title"),
            tasks.c.task_type.label("taskType"),
            tasks.c.due_date.label("dueDate"),
            tasks.c.total_marks.label("totalMarks"),
            subjects.c.subject_code.label("subjectCode"),
            subjects.c.subject_name.label("subjectName"),
            submissions.c.id.label("submissionId"),
            submissions.c.status.label("status"),
            submissions.c.submission_date.label("submissionDate"),
            submissions.c.submission_file_path.label("filePath"),
        ]
        stmt = (
            select(*group, func.coalesce(func.sum(marks.c.marks_obtained), 0).label("obtainedMarks"))
            .select_from(
                tasks.join(submissions, submissions.c.task_id == tasks.c.id)
                .join(teacher_subjects, tasks.c.teacher_subject_id == teacher_subjects.c.id)
                .join(subjects, teacher_subjects.c.subject_id == subjects.c.id)
                .outerjoin(marks, marks.c.submission_id == submissions.c.id)
            )
            .where(submissions.c.student_id == student_id, submissions.c.status == status)
            .group_by(*(col.element for col in group))
            .order_by(tasks.c.due_date)
        )
        return await self._all(stmt)

    def _roster_source(self, subject_id: Optional[str]):
        source = (
            students.join(users, students.c.user_id == users.c.id)
            .join(submissions, submissions.c.student_id == students.c.id)
        )
        if subject_id:
            source = (
                source.join(tasks, submissions.c.task_id == tasks.c.id)
                .join(teacher_subjects, tasks.c.teacher_subject_id == teacher_subjects.c.id)
            )
        return source.outerjoin(marks, marks.c.submission_id == submissions.c.id)

    def _roster_filters(self, *, semester: int, division: str, task_id: str, subject_id: Optional[str]) -> list:
        filters = [
            students.c.current_semester == semester,
            students.c.division == division,
            submissions.c.task_id == task_id,
        ]
        if subject_id:
            filters.append(teacher_subjects.c.subject_id == subject_id)
        return filters

    async def get_teacher_dashboard(
        self, *, semester: int, division: str, task_id: str, subject_id: Optional[str] = None
    ) -> list[dict]:
        group = [
            students.c.id.label("studentId"),
            students.c.roll_number.label("rollNumber"),
            users.c.full_name.label("studentName"),
        ]
        stmt = (
            select(*group, func.coalesce(func.sum(marks.c.marks_obtained), 0).label("totalMarks"))
            .select_from(self._roster_source(subject_id))
            .where(*self._roster_filters(semester=semester, division=division,
                                         task_id=task_id, subject_id=subject_id))
            .group_by(*(col.element for col in group))
            .order_by(students.c.roll_number)
        )
        return await self._all(stmt)

    async def list_task_students(
        self, *, semester: int, division: str, task_id: str, subject_id: Optional[str] = None
    ) -> list[dict]:
        group = [
            students.c.id.label("studentId"),
            students.c.roll_number.label("rollNumber"),
            users.c.full_name.label("studentName"),
            submissions.c.id.label("submissionId"),
            submissions.c.status.label("status"),
            submissions.c.submission_date.label("submissionDate"),
            submissions.c.submission_file_path.label("filePath"),
        ]
        stmt = (
            select(
                *group,
                func.coalesce(func.sum(marks.c.marks_obtained), 0).label("totalMarks"),
                self._concat_distinct(marks.c.comments).label("comments"),
            )
            .select_from(self._roster_source(subject_id))
            .where(*self._roster_filters(semester=semester, division=division,
                                         task_id=task_id, subject_id=subject_id))
            .group_by(*(col.element for col in group))
            .order_by(students.c.roll_number)
        )
        return await self._all(stmt)

    async def get_task_report(self, task_id: str) -> list[dict]:
        stmt = (
            select(
                users.c.full_name.label("studentName"),
                students.c.roll_number.label("rollNumber"),
                tasks.c.title.label("taskTitle"),
                tasks.c.task_type.label("taskType"),
                submissions.c.id.label("submissionId"),
                submissions.c.status.label("status"),
                submissions.c.submission_date.label("submissionDate"),
                marks.c.question_number.label("questionNumber"),
                marks.c.marks_obtained.label("marksObtained"),
                tasks.c.total_marks.label("totalMarks"),
                marks.c.comments.label("comments"),
            )
            .select_from(
                tasks.outerjoin(submissions, tasks.c.id == submissions.c.task_id)
                .outerjoin(marks, submissions.c.id == marks.c.submission_id)
                .outerjoin(students, submissions.c.student_id == students.c.id)
                .outerjoin(users, students.c.user_id == users.c.id)
            )
            .where(tasks.c.id == task_id)
            .order_by(users.c.full_name, marks.c.question_number)
        )
        return await self._all(stmt)
