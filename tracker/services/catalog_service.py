import logging

from tracker.core.errors import ConflictError, NotFoundError, ValidationError
from tracker.database.repository import TrackerRepository

logger = logging.getLogger("tracker.catalog")

YEAR_LABELS = ("FE", "SE", "TE", "BE")


class CatalogService:
    @staticmethod
    async def create_subject(
        repo: TrackerRepository, *, subject_code: str, subject_name: str, semester: int, year: str
    ) -> dict:
        if not subject_code or not subject_name or semester is None or not year:
            raise ValidationError("subjectCode, subjectName, semester and year are required")
        if year not in YEAR_LABELS:
            raise ValidationError(f"Invalid year: {year}", details={"allowed": list(YEAR_LABELS)})

        subject_code = subject_code.strip()
        if await repo.get_subject_by_code(subject_code):
            raise ConflictError(f"Subject code already exists: {subject_code}",
                                details={"subjectCode": subject_code})

        subject = await repo.create_subject(
            subject_code=subject_code,
            subject_name=subject_name.strip(),
            semester=semester,
            year=year,
        )
        logger.info("Subject created", extra={"subject_id": subject["id"], "subject_code": subject_code})
        return subject

    @staticmethod
    async def create_teacher_subject(
        repo: TrackerRepository, *, teacher_id: str, subject_id: str, division: str, academic_year: str
    ) -> dict:
        if not teacher_id or not subject_id or not division or not academic_year:
            raise ValidationError("teacherId, subjectId, division and academicYear are required")
        if await repo.get_teacher(teacher_id) is None:
            raise NotFoundError("Teacher", teacher_id)
        if await repo.get_subject(subject_id) is None:
            raise NotFoundError("Subject", subject_id)

        key = {
            "teacher_id": teacher_id,
            "subject_id": subject_id,
            "division": division,
            "academic_year": academic_year,
        }
        if await repo.find_teacher_subject(**key):
            raise ConflictError("Teacher is already assigned to this subject and division", details=key)

        assignment = await repo.create_teacher_subject(**key)
        logger.info("Teacher assigned to subject", extra={"teacher_subject_id": assignment["id"]})
        return assignment
