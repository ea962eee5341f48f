"""
Dati demo del collegio: due docenti, due studenti, due materie, un task ISE1
con fan-out sulla divisione A e una consegna già valutata.

Uso: ``python -m tracker.database.seed``
"""
import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import create_async_engine

from tracker.core.config import settings
from tracker.core.logging import setup_logging
from tracker.database.repository import TrackerRepository
from tracker.database.sql_repository import SqlTrackerRepository
from tracker.services.auth_service import AuthService
from tracker.services.catalog_service import CatalogService
from tracker.services.event_service import NullEventPublisher
from tracker.services.grading_service import GradingService
from tracker.services.task_service import TaskService

logger = logging.getLogger("tracker.seed")

TEACHERS = [
    {"email": "john.teacher@college.edu", "full_name": "John Smith",
     "contact_number": "1234567890", "department": "Computer Science"},
    {"email": "mary.teacher@college.edu", "full_name": "Mary Johnson",
     "contact_number": "2345678901", "department": "Information Technology"},
]

STUDENTS_CSV = (
    b"pid,rollNumber,email,contactNumber,fullName\n"
    b"P2024001,CS2024001,alice.student@college.edu,3456789012,Alice Brown\n"
    b"P2024002,CS2024002,bob.student@college.edu,4567890123,Bob Wilson\n"
)

SUBJECTS = [
    {"subject_code": "CS301", "subject_name": "Database Management Systems", "semester": 5, "year": "TE"},
    {"subject_code": "CS302", "subject_name": "Web Technology", "semester": 5, "year": "TE"},
]


async def seed(repo: TrackerRepository) -> dict:
    if await repo.get_user_by_email(TEACHERS[0]["email"]):
        logger.info("Demo data already present, nothing to do")
        return {}

    events = NullEventPublisher()
    teacher_ids = []
    for teacher in TEACHERS:
        created = await AuthService.register_teacher(repo, **teacher)
        teacher_ids.append(created["teacherId"])

    imported = await AuthService.register_students_csv(
        repo, STUDENTS_CSV, semester=5, year="TE", division="A", academic_year="2024-2025"
    )

    assignments = []
    for teacher_id, subject in zip(teacher_ids, SUBJECTS):
        created = await CatalogService.create_subject(repo, **subject)
        assignments.append(await CatalogService.create_teacher_subject(
            repo, teacher_id=teacher_id, subject_id=created["id"], division="A", academic_year="2024-2025"
        ))

    result = await TaskService.create_task(
        repo, events,
        teacher_subject_id=assignments[0]["id"],
        task_type="ISE1",
        title="Database Normalization Assignment",
        semester=5,
        due_date=datetime(2024, 3, 15, tzinfo=timezone.utc),
        total_marks=20,
        division="A",
    )

    alice = await repo.get_user_by_email("alice.student@college.edu")
    student = await repo.get_student_by_user_id(alice["id"])
    submission = await repo.get_submission_for(task_id=result["task"]["id"], student_id=student["id"])
    await GradingService.save_marks(repo, events, [{
        "submissionId": submission["id"],
        "questionNumber": 1,
        "marksObtained": 8.5,
        "comments": "Good understanding of normalization concepts",
        "markedBy": teacher_ids[0],
    }])

    summary = {
        "teachers": len(teacher_ids),
        "students": imported["success"],
        "subjects": len(assignments),
        "submissions": result["submissionsCreated"],
    }
    logger.info("Demo data seeded", extra=summary)
    return summary


async def main() -> None:
    setup_logging(settings.log_level, settings.sql_echo)
    engine = create_async_engine(settings.database_url, echo=settings.sql_echo)
    try:
        repo = SqlTrackerRepository(engine)
        await repo.ensure_schema()
        await seed(repo)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
