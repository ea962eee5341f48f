# tracker/services/task_service.py
import logging
from datetime import datetime
from typing import Optional

from tracker.core.config import settings
from tracker.core.errors import NotFoundError, ValidationError, require_filters
from tracker.database.repository import TrackerRepository
from tracker.services.event_service import TASK_CREATED, EventPublisher

logger = logging.getLogger("tracker.tasks")

TASK_TYPES = ("ISE1", "ISE2", "MSE")


class TaskService:
    @staticmethod
    async def create_task(
        repo: TrackerRepository,
        events: EventPublisher,
        *,
        teacher_subject_id: str,
        task_type: str,
        title: str,
        semester: int,
        due_date: datetime,
        total_marks: int,
        division: str,
        batch_size: Optional[int] = None,
    ) -> dict:
        """
        Crea il task e una submission pending per ogni studente della coorte
        (semester, division). La coorte è fotografata al momento della creazione.
        """
        require_filters(
            teacherSubjectId=teacher_subject_id, taskType=task_type, title=title, semester=semester,
            dueDate=due_date, totalMarks=total_marks, division=division,
        )
        if task_type not in TASK_TYPES:
            raise ValidationError(f"Invalid taskType: {task_type}", details={"allowed": list(TASK_TYPES)})
        if total_marks <= 0:
            raise ValidationError("totalMarks must be positive")

        teacher_subject = await repo.get_teacher_subject(teacher_subject_id)
        if teacher_subject is None:
            raise NotFoundError("Teacher subject", teacher_subject_id)

        task, created = await repo.create_task_with_submissions(
            task={
                "teacher_subject_id": teacher_subject_id,
                "task_type": task_type,
                "title": title.strip(),
                "semester": semester,
                "due_date": due_date,
                "total_marks": total_marks,
            },
            division=division,
            batch_size=batch_size or settings.fanout_batch_size,
        )
        logger.info("Task created", extra={"task_id": task["id"], "submissions_created": created})

        await events.publish(TASK_CREATED, {
            "taskId": task["id"],
            "teacherId": teacher_subject["teacherId"],
            "teacherSubjectId": teacher_subject_id,
            "division": division,
            "submissionsCreated": created,
        })
        return {"task": task, "submissionsCreated": created}

    @staticmethod
    async def list_tasks(
        repo: TrackerRepository, *, semester: Optional[int], subject_id: Optional[str], division: Optional[str]
    ) -> list[dict]:
        require_filters(semester=semester, subjectId=subject_id, division=division)
        return await repo.list_tasks(semester=semester, subject_id=subject_id, division=division)
