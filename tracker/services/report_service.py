# tracker/services/report_service.py
from typing import Optional

from tracker.core.errors import NotFoundError, require_filters
from tracker.database.repository import TrackerRepository


class ReportService:
    @staticmethod
    async def teacher_dashboard(
        repo: TrackerRepository,
        *,
        semester: Optional[int],
        division: Optional[str],
        task_id: Optional[str],
        subject_id: Optional[str] = None,
    ) -> list[dict]:
        require_filters(semester=semester, division=division, taskId=task_id)
        rows = await repo.get_teacher_dashboard(
            semester=semester, division=division, task_id=task_id, subject_id=subject_id
        )
        return [{**row, "totalMarks": float(row["totalMarks"] or 0)} for row in rows]

    @staticmethod
    async def students_list(
        repo: TrackerRepository,
        *,
        semester: Optional[int],
        division: Optional[str],
        task_id: Optional[str],
        subject_id: Optional[str] = None,
    ) -> list[dict]:
        require_filters(semester=semester, division=division, taskId=task_id)
        rows = await repo.list_task_students(
            semester=semester, division=division, task_id=task_id, subject_id=subject_id
        )
        return [
            {
                "studentId": row["studentId"],
                "rollNumber": row["rollNumber"],
                "studentName": row["studentName"],
                "submission": {
                    "id": row["submissionId"],
                    "status": row["status"],
                    "submissionDate": row["submissionDate"],
                    "filePath": row["filePath"],
                },
                "totalMarks": float(row["totalMarks"] or 0),
                "comments": row["comments"],
            }
            for row in rows
        ]

    @staticmethod
    async def generate_report(repo: TrackerRepository, task_id: str) -> list[dict]:
        if await repo.get_task(task_id) is None:
            raise NotFoundError("Task", task_id)
        return await repo.get_task_report(task_id)
