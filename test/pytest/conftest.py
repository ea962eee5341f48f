from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from tracker.database.sql_repository import SqlTrackerRepository
from tracker.services.auth_service import AuthService, hash_password
from tracker.services.catalog_service import CatalogService
from tracker.services.event_service import NullEventPublisher
from tracker.services.task_service import TaskService
from tracker.storage.object_store import ObjectStore, StoredObject

# hash unico per gli studenti di test: pbkdf2 è lento di proposito
STUDENT_PASSWORD = "12345678"
STUDENT_HASH = hash_password(STUDENT_PASSWORD)


class FakeObjectStore(ObjectStore):
    def __init__(self):
        self.objects: dict[str, StoredObject] = {}

    async def put(self, key, body, content_type=None):
        self.objects[key] = StoredObject(key=key, body=body, content_type=content_type)

    async def get(self, key):
        return self.objects.get(key)

    async def delete(self, key):
        self.objects.pop(key, None)


class RecordingPublisher(NullEventPublisher):
    def __init__(self):
        super().__init__()
        self.events: list[tuple[str, dict]] = []

    async def publish(self, routing_key, payload):
        self.events.append((routing_key, payload))


class Factory:
    """Costruisce docenti, studenti, materie e task per i test."""

    def __init__(self, repo):
        self.repo = repo
        self._n = 0

    def _next(self) -> int:
        self._n += 1
        return self._n

    async def teacher(self, email=None, department="Computer Science") -> str:
        n = self._next()
        created = await AuthService.register_teacher(
            self.repo,
            email=email or f"teacher{n}@college.edu",
            full_name=f"Teacher {n}",
            department=department,
            contact_number="9876543210",
        )
        return created["teacherId"]

    async def student(self, *, roll, name=None, semester=5, division="A", email=None) -> str:
        n = self._next()
        created = await self.repo.create_student(
            user={
                "email": email or f"student{n}@college.edu",
                "password_hash": STUDENT_HASH,
                "full_name": name or f"Student {roll}",
                "contact_number": "1234567890",
                "role": "student",
            },
            student={
                "roll_number": roll,
                "pid": f"P{n:05d}",
                "current_semester": semester,
                "current_year": "TE",
                "division": division,
                "academic_year": "2024-2025",
            },
        )
        return created["studentId"]

    async def teacher_subject(self, teacher_id=None, *, division="A") -> dict:
        teacher_id = teacher_id or await self.teacher()
        n = self._next()
        subject = await CatalogService.create_subject(
            self.repo, subject_code=f"CS{300 + n}", subject_name=f"Subject {n}", semester=5, year="TE"
        )
        return await CatalogService.create_teacher_subject(
            self.repo, teacher_id=teacher_id, subject_id=subject["id"], division=division, academic_year="2024-2025"
        )

    async def task(self, events, teacher_subject, *, semester=5, division="A", total_marks=20,
                   title="Normalization", due_date=None, batch_size=None) -> dict:
        return await TaskService.create_task(
            self.repo, events,
            teacher_subject_id=teacher_subject["id"],
            task_type="ISE1",
            title=title,
            semester=semester,
            due_date=due_date or datetime(2024, 3, 15, tzinfo=timezone.utc),
            total_marks=total_marks,
            division=division,
            batch_size=batch_size,
        )


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def repo(engine):
    repo = SqlTrackerRepository(engine)
    await repo.ensure_schema()
    return repo


@pytest.fixture
def store():
    return FakeObjectStore()


@pytest.fixture
def events():
    return RecordingPublisher()


@pytest.fixture
def factory(repo):
    return Factory(repo)
