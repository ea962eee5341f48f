# tracker/services/grading_service.py
import logging
from typing import Sequence

from tracker.core.errors import NotFoundError, ValidationError
from tracker.database.repository import TrackerRepository
from tracker.services.event_service import MARKS_SAVED, EventPublisher

logger = logging.getLogger("tracker.grading")


class GradingService:
    @staticmethod
    async def save_marks(repo: TrackerRepository, events: EventPublisher, entries: Sequence[dict]) -> list[dict]:
        """
        Sostituisce tutti i voti di una submission con ``entries``.

        Le domande assenti dal nuovo payload vengono eliminate: non è un merge.
        Tutte le voci sono validate prima di qualsiasi scrittura.
        """
        if not entries:
            raise ValidationError("At least one mark entry is required")

        submission_ids = {entry["submissionId"] for entry in entries}
        if len(submission_ids) > 1:
            raise ValidationError("All mark entries must belong to the same submission",
                                  details={"submissionIds": sorted(submission_ids)})
        submission_id = entries[0]["submissionId"]

        questions = [entry["questionNumber"] for entry in entries]
        if len(set(questions)) != len(questions):
            raise ValidationError("Duplicate question numbers in marks payload")
        if any(entry["marksObtained"] < 0 for entry in entries):
            raise ValidationError("marksObtained cannot be negative")

        submission = await repo.get_submission(submission_id)
        if submission is None:
            raise NotFoundError("Submission", submission_id)
        for teacher_id in {entry["markedBy"] for entry in entries}:
            if await repo.get_teacher(teacher_id) is None:
                raise NotFoundError("Teacher", teacher_id)

        total = sum(entry["marksObtained"] for entry in entries)
        if total > submission["totalMarks"]:
            raise ValidationError(
                f"Total marks {total} exceed the task maximum of {submission['totalMarks']}",
                details={"total": total, "max": submission["totalMarks"]},
            )

        saved = await repo.replace_marks(
            submission_id=submission_id,
            entries=[
                {
                    "question_number": entry["questionNumber"],
                    "marks_obtained": entry["marksObtained"],
                    "comments": entry.get("comments"),
                    "marked_by": entry["markedBy"],
                }
                for entry in entries
            ],
        )
        logger.info("Marks saved", extra={"submission_id": submission_id, "questions": len(saved)})

        await events.publish(MARKS_SAVED, {
            "submissionId": submission_id,
            "taskId": submission["taskId"],
            "studentId": submission["studentId"],
            "score": total,
            "markedBy": entries[0]["markedBy"],
        })
        return saved
