# tracker/services/submission_service.py
import logging
import uuid
from typing import Optional

from tracker.core.config import settings
from tracker.core.errors import ConflictError, NotFoundError, ValidationError, require_filters
from tracker.database.repository import TrackerRepository
from tracker.database.tables import utcnow
from tracker.services.event_service import SUBMISSION_SUBMITTED, EventPublisher
from tracker.storage.object_store import ObjectStore, StoredObject

logger = logging.getLogger("tracker.submissions")

STATUSES = ("pending", "submitted", "graded")


def _shape_student_task(row: dict) -> dict:
    return {
        "taskId": row["taskId"],
        "title": row["title"],
        "taskType": row["taskType"],
        "dueDate": row["dueDate"],
        "totalMarks": row["totalMarks"],
        "subjectCode": row["subjectCode"],
        "subjectName": row["subjectName"],
        "submission": {
            "id": row["submissionId"],
            "status": row["status"],
            "submissionDate": row["submissionDate"],
            "filePath": row["filePath"],
        },
        "obtainedMarks": float(row["obtainedMarks"] or 0),
    }


class SubmissionService:
    @staticmethod
    async def upload(
        repo: TrackerRepository,
        store: ObjectStore,
        events: EventPublisher,
        *,
        task_id: str,
        student_id: str,
        body: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Salva il file nell'object store e porta la submission a ``submitted``.
        Un nuovo caricamento sostituisce il file precedente, che viene eliminato.
        Se l'aggiornamento della riga fallisce il blob appena scritto viene rimosso;
        una submission già ``graded`` non accetta nuovi file.
        """
        require_filters(taskId=task_id, studentId=student_id)
        if not body:
            raise ValidationError("Uploaded file is empty")

        submission = await repo.get_submission_for(task_id=task_id, student_id=student_id)
        if submission is None:
            raise NotFoundError("Submission", f"task={task_id} student={student_id}")
        if submission["status"] == "graded":
            raise ConflictError("Submission already graded",
                                details={"submissionId": submission["id"]})

        key = str(uuid.uuid4())
        await store.put(key, body, content_type or settings.default_content_type)
        submitted_at = utcnow()
        try:
            updated = await repo.mark_submission_submitted(
                task_id=task_id, student_id=student_id, file_path=key, submitted_at=submitted_at
            )
        except Exception:
            logger.exception("Submission update failed, removing orphan object", extra={"key": key})
            await store.delete(key)
            raise
        if not updated:
            # valutata tra la lettura e l'update
            await store.delete(key)
            raise ConflictError("Submission already graded",
                                details={"submissionId": submission["id"]})

        previous = submission["filePath"]
        if previous and previous != key:
            await store.delete(previous)
            logger.info("Replaced submission file", extra={"submission_id": submission["id"], "key": previous})

        logger.info("Submission uploaded",
                    extra={"submission_id": submission["id"], "task_id": task_id, "student_id": student_id})
        await events.publish(SUBMISSION_SUBMITTED, {
            "submissionId": submission["id"],
            "taskId": task_id,
            "studentId": student_id,
            "filePath": key,
            "submittedAt": submitted_at,
        })
        return key

    @staticmethod
    async def download(store: ObjectStore, key: str) -> StoredObject:
        require_filters(key=key)
        stored = await store.get(key)
        if stored is None:
            raise NotFoundError("File", key)
        return StoredObject(
            key=stored.key,
            body=stored.body,
            content_type=stored.content_type or settings.default_content_type,
        )

    @staticmethod
    async def find_by_file_path(repo: TrackerRepository, file_path: str) -> dict:
        require_filters(filePath=file_path)
        submission = await repo.get_submission_by_file_path(file_path)
        if submission is None:
            raise NotFoundError("Submission with file path", file_path)
        return submission

    @staticmethod
    async def student_dashboard(repo: TrackerRepository, user_id: str) -> dict:
        profile = await repo.get_student_profile(user_id)
        if profile is None:
            raise NotFoundError("Student", user_id)
        return profile

    @staticmethod
    async def student_tasks(repo: TrackerRepository, *, student_id: Optional[str], status: str) -> list[dict]:
        require_filters(studentId=student_id)
        if status not in STATUSES:
            raise ValidationError(f"Invalid status: {status}", details={"allowed": list(STATUSES)})
        rows = await repo.list_student_tasks(student_id=student_id, status=status)
        return [_shape_student_task(row) for row in rows]
