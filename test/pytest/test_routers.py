import httpx
import pytest
import pytest_asyncio

from tracker.main import create_app


@pytest_asyncio.fixture
async def client(repo, store, events):
    app = create_app()
    app.state.repo = repo
    app.state.object_store = store
    app.state.publisher = events
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "events": "disabled"}


@pytest.mark.asyncio
async def test_create_subject_and_conflict(client):
    payload = {"subjectCode": "CS301", "subjectName": "DBMS", "semester": 5, "year": "TE"}

    created = await client.post("/subjects", json=payload)
    duplicate = await client.post("/subjects", json=payload)

    assert created.status_code == 201
    assert created.json()["success"] is True
    assert created.json()["data"]["subjectCode"] == "CS301"
    assert duplicate.status_code == 409
    assert duplicate.json()["success"] is False
    assert duplicate.json()["error"] == "CONFLICT"


@pytest.mark.asyncio
async def test_login_unknown_user(client):
    response = await client.post(
        "/auth/login", json={"email": "nobody@college.edu", "password": "x", "role": "student"}
    )

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_missing_and_malformed_filters(client):
    missing = await client.get("/teacher/tasks", params={"semester": 5, "division": "A"})
    malformed = await client.get("/teacher/dashboard", params={"semester": "abc"})

    assert missing.status_code == 400
    assert missing.json()["details"] == {"missing": ["subjectId"]}
    assert malformed.status_code == 400
    assert malformed.json()["error"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_add_task_upload_and_grade(client, repo, factory):
    student_id = await factory.student(roll="CS001")
    teacher_id = await factory.teacher()
    ts = await factory.teacher_subject(teacher_id)

    created = await client.post("/teacher/addTask", json={
        "teacherSubjectId": ts["id"],
        "taskType": "ISE1",
        "title": "Database Normalization Assignment",
        "semester": 5,
        "dueDate": "2024-03-15T00:00:00Z",
        "totalMarks": 20,
        "division": "A",
    })
    assert created.status_code == 200
    task_id = created.json()["data"]["task"]["id"]
    assert created.json()["data"]["submissionsCreated"] == 1

    uploaded = await client.post(
        "/student/submission/upload",
        data={"taskId": task_id, "studentId": student_id},
        files={"file": ("answer.pdf", b"%PDF-1.4 answer", "application/pdf")},
    )
    assert uploaded.status_code == 200
    key = uploaded.json()["data"]["key"]

    downloaded = await client.get(f"/student/file/{key}")
    assert downloaded.status_code == 200
    assert downloaded.content == b"%PDF-1.4 answer"
    assert downloaded.headers["content-type"] == "application/pdf"

    found = await client.get(f"/submission/id-by-filepath/{key}")
    submission_id = found.json()["data"]["id"]

    saved = await client.post("/teacher/save-marks", json={"marks": [
        {"submissionId": submission_id, "questionNumber": 1, "marksObtained": 8.5,
         "comments": "Good", "markedBy": teacher_id},
    ]})
    assert saved.status_code == 200

    graded = await client.get("/student/tasks/graded", params={"studentId": student_id})
    assert graded.json()["data"][0]["obtainedMarks"] == 8.5

    report = await client.get(f"/teacher/generate-report/{task_id}")
    assert [row["marksObtained"] for row in report.json()["data"]] == [8.5]


@pytest.mark.asyncio
async def test_download_missing_file(client):
    response = await client.get("/student/file/unknown")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_run_serves_app_with_uvicorn(monkeypatch):
    import tracker.main as main

    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    main.run()

    expected = {"host": main.default_settings.host, "port": main.default_settings.port, "log_config": None}
    assert calls == [("tracker.main:app", expected)]
