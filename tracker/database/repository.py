from __future__ import annotations
from datetime import datetime
from abc import ABC, abstractmethod
from typing import Optional, Sequence

class TrackerRepository(ABC):

    @abstractmethod
    async def ensure_schema(self) -> None:
        raise NotImplementedError

    # Utenti e ruoli
    @abstractmethod
    async def get_user_by_email(self, email: str, *, case_insensitive: bool = False) -> Optional[dict]:
        """Ritorna l'utente completo di passwordHash, oppure None."""
        raise NotImplementedError

    @abstractmethod
    async def get_student_by_user_id(self, user_id: str) -> Optional[dict]:
        raise NotImplementedError

    @abstractmethod
    async def get_student_profile(self, user_id: str) -> Optional[dict]:
        """Ritorna: { student, user } senza passwordHash"""
        raise NotImplementedError

    @abstractmethod
    async def get_teacher_by_user_id(self, user_id: str) -> Optional[dict]:
        raise NotImplementedError

    @abstractmethod
    async def get_teacher(self, teacher_id: str) -> Optional[dict]:
        raise NotImplementedError

    @abstractmethod
    async def list_teacher_subjects(self, teacher_id: str) -> list[dict]:
        raise NotImplementedError

    @abstractmethod
    async def pid_exists(self, pid: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def create_student(self, *, user: dict, student: dict) -> dict:
        """Crea User + Student nella stessa transazione. Ritorna: { userId, studentId }"""
        raise NotImplementedError

    @abstractmethod
    async def create_teacher(self, *, user: dict, teacher: dict) -> dict:
        """Crea User + Teacher nella stessa transazione. Ritorna: { userId, teacherId }"""
        raise NotImplementedError

    # Catalogo
    @abstractmethod
    async def get_subject(self, subject_id: str) -> Optional[dict]:
        raise NotImplementedError

    @abstractmethod
    async def get_subject_by_code(self, subject_code: str) -> Optional[dict]:
        raise NotImplementedError

    @abstractmethod
    async def create_subject(self, *, subject_code: str, subject_name: str, semester: int, year: str) -> dict:
        raise NotImplementedError

    @abstractmethod
    async def get_teacher_subject(self, teacher_subject_id: str) -> Optional[dict]:
        raise NotImplementedError

    @abstractmethod
    async def find_teacher_subject(
        self, *, teacher_id: str, subject_id: str, division: str, academic_year: str
    ) -> Optional[dict]:
        raise NotImplementedError

    @abstractmethod
    async def create_teacher_subject(
        self, *, teacher_id: str, subject_id: str, division: str, academic_year: str
    ) -> dict:
        raise NotImplementedError

    # Task e fan-out
    @abstractmethod
    async def create_task_with_submissions(
        self, *, task: dict, division: str, batch_size: int
    ) -> tuple[dict, int]:
        """Inserisce il task e una submission pending per ogni studente della coorte."""
        raise NotImplementedError

    @abstractmethod
    async def get_task(self, task_id: str) -> Optional[dict]:
        raise NotImplementedError

    @abstractmethod
    async def list_tasks(self, *, semester: int, subject_id: str, division: str) -> list[dict]:
        raise NotImplementedError

    # Submission e voti
    @abstractmethod
    async def get_submission(self, submission_id: str) -> Optional[dict]:
        """Ritorna la submission con il totalMarks del task."""
        raise NotImplementedError

    @abstractmethod
    async def get_submission_for(self, *, task_id: str, student_id: str) -> Optional[dict]:
        raise NotImplementedError

    @abstractmethod
    async def get_submission_by_file_path(self, file_path: str) -> Optional[dict]:
        raise NotImplementedError

    @abstractmethod
    async def mark_submission_submitted(
        self, *, task_id: str, student_id: str, file_path: str, submitted_at: datetime
    ) -> int:
        """Righe aggiornate; 0 se la submission manca o è già ``graded``."""
        raise NotImplementedError

    @abstractmethod
    async def replace_marks(self, *, submission_id: str, entries: Sequence[dict]) -> list[dict]:
        raise NotImplementedError

    # Report aggregati
    @abstractmethod
    async def list_student_tasks(self, *, student_id: str, status: str) -> list[dict]:
        raise NotImplementedError

    @abstractmethod
    async def get_teacher_dashboard(
        self, *, semester: int, division: str, task_id: str, subject_id: Optional[str] = None
    ) -> list[dict]:
        """Ritorna: { studentId, rollNumber, studentName, totalMarks }"""
        raise NotImplementedError

    @abstractmethod
    async def list_task_students(
        self, *, semester: int, division: str, task_id: str, subject_id: Optional[str] = None
    ) -> list[dict]:
        raise NotImplementedError

    @abstractmethod
    async def get_task_report(self, task_id: str) -> list[dict]:
        """Una riga per (studente, domanda)."""
        raise NotImplementedError
