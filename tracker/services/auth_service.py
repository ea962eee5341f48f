# tracker/services/auth_service.py
import io
import logging
from typing import Optional

import pandas as pd
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError

from tracker.core.config import settings
from tracker.core.errors import (
    ConflictError, InvalidCredentialError, NotFoundError, RoleMismatchError, ValidationError,
)
from tracker.database.repository import TrackerRepository

logger = logging.getLogger("tracker.auth")

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

REQUIRED_CSV_COLUMNS = ("pid", "rollNumber", "email", "contactNumber", "fullName")


def normalizer(string: str) -> str:
    return string.strip().lower() if isinstance(string, str) else string

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        # hash non riconosciuto da passlib
        return False

def default_password(contact_number: Optional[str]) -> str:
    """Credenziale iniziale: prime 8 cifre del numero di contatto."""
    return (contact_number or "")[:8]

def _read_csv(contents: bytes) -> pd.DataFrame:
    try:
        text = contents.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = contents.decode("latin-1")
    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False, header=0)
    except pd.errors.EmptyDataError:
        raise ValidationError("CSV file is empty")
    except pd.errors.ParserError as exc:
        raise ValidationError(f"Error reading CSV file: {exc}")
    df.columns = [str(col).strip() for col in df.columns]
    return df


class AuthService:
    @staticmethod
    async def login(
        repo: TrackerRepository,
        *,
        email: str,
        password: str,
        role: str,
        normalize_email: Optional[bool] = None,
    ) -> dict:
        if not email or not password or not role:
            raise ValidationError("Email, password and role are required")
        if normalize_email is None:
            normalize_email = settings.login_normalize_email

        lookup = normalizer(email) if normalize_email else email
        user = await repo.get_user_by_email(lookup)
        if user is None:
            raise NotFoundError("User", email)
        if user["role"] != role:
            raise RoleMismatchError("Invalid role for this user")
        if not verify_password(password, user["passwordHash"]):
            raise InvalidCredentialError("Invalid credentials")

        details = None
        teacher_subjects = None
        if role == "student":
            details = await repo.get_student_by_user_id(user["id"])
        elif role == "teacher":
            details = await repo.get_teacher_by_user_id(user["id"])
            if details:
                teacher_subjects = await repo.list_teacher_subjects(details["id"])

        logger.info("Login successful", extra={"user_id": user["id"], "role": role})
        user_data = {key: value for key, value in user.items() if key != "passwordHash"}
        return {"user": user_data, role: details, "teacherSubjects": teacher_subjects}

    @staticmethod
    async def register_teacher(
        repo: TrackerRepository,
        *,
        email: str,
        full_name: str,
        department: str,
        contact_number: Optional[str] = None,
        password: Optional[str] = None,
    ) -> dict:
        email = normalizer(email)
        if not email or not full_name or not department:
            raise ValidationError("email, fullName and department are required")
        credential = password or default_password(contact_number)
        if not credential:
            raise ValidationError("A password or a contact number is required")

        if await repo.get_user_by_email(email, case_insensitive=True):
            raise ConflictError(f"Email already registered: {email}", details={"email": email})

        created = await repo.create_teacher(
            user={
                "email": email,
                "password_hash": hash_password(credential),
                "full_name": full_name.strip(),
                "contact_number": contact_number,
                "role": "teacher",
            },
            teacher={"department": department.strip()},
        )
        logger.info("Teacher registered", extra=created)
        return created

    @staticmethod
    async def register_students_csv(
        repo: TrackerRepository,
        contents: bytes,
        *,
        semester: Optional[int] = None,
        year: Optional[str] = None,
        division: Optional[str] = None,
        academic_year: Optional[str] = None,
    ) -> dict:
        """
        Importa studenti da CSV. Ogni riga è indipendente: una riga non valida
        viene registrata in ``errors`` e l'import prosegue.
        """
        df = _read_csv(contents)
        missing_columns = [col for col in REQUIRED_CSV_COLUMNS if col not in df.columns]
        if missing_columns:
            raise ValidationError(
                f"Missing columns: {', '.join(missing_columns)}",
                details={"missing": missing_columns},
            )

        cohort = {
            "current_semester": semester if semester is not None else settings.import_semester,
            "current_year": year or settings.import_year,
            "division": division or settings.import_division,
            "academic_year": academic_year or settings.import_academic_year,
        }

        success = 0
        errors: list[dict] = []
        for index, row in df.iterrows():
            line = int(index) + 2  # la riga 1 è l'header
            record = {col: str(row[col]).strip() for col in REQUIRED_CSV_COLUMNS}
            record["email"] = normalizer(record["email"])

            empty = [col for col in REQUIRED_CSV_COLUMNS if not record[col]]
            if empty:
                errors.append({"row": line, "error": f"Missing required fields: {', '.join(empty)}"})
                continue
            if await repo.get_user_by_email(record["email"], case_insensitive=True):
                errors.append({"row": line, "error": f"Email already registered: {record['email']}"})
                continue
            if await repo.pid_exists(record["pid"]):
                errors.append({"row": line, "error": f"PID already registered: {record['pid']}"})
                continue

            try:
                await repo.create_student(
                    user={
                        "email": record["email"],
                        "password_hash": hash_password(default_password(record["contactNumber"])),
                        "full_name": record["fullName"],
                        "contact_number": record["contactNumber"],
                        "role": "student",
                    },
                    student={"roll_number": record["rollNumber"], "pid": record["pid"], **cohort},
                )
            except IntegrityError as exc:
                logger.warning("Student row rejected by database", extra={"row": line, "error": str(exc.orig)})
                errors.append({"row": line, "error": "Student conflicts with an existing record"})
                continue
            success += 1

        logger.info("Students CSV imported", extra={"success": success, "failed": len(errors)})
        return {"success": success, "failed": len(errors), "errors": errors}
