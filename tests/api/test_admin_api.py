"""
Tests for the admin sync endpoints and the directory endpoints.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from dogerek.api.v1.admin import get_sync_job_manager
from dogerek.core.auth import create_access_token
from dogerek.core.database import get_db
from dogerek.integrations.hemis.normalizer import format_student_data
from dogerek.main import app
from dogerek.models.student import Student
from dogerek.models.sync_run import StudentSyncRun, SyncRunStatus
from dogerek.models.user import User, UserRole
from dogerek.services.roster_writer import StudentRosterWriter
from dogerek.services.sync_jobs import SyncJobManager


FACULTY_A = {"id": 1, "name": "Fizika", "code": "FZ"}
FACULTY_B = {"id": 2, "name": "Biologiya", "code": "BL"}


@pytest.fixture
def registry_state(fake_registry, registry_pages):
    """Mutable holder so a test can swap the registry behind the manager."""
    return {"client": fake_registry(registry_pages(2))}


@pytest.fixture
def manager(session_factory, registry_state, no_sleep):
    return SyncJobManager(
        session_factory=session_factory,
        client_factory=lambda: registry_state["client"],
        sleep=no_sleep
    )


@pytest_asyncio.fixture
async def api_client(session_factory, manager):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sync_job_manager] = lambda: manager

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def create_user(db, role, username):
    user = User(username=username, hashed_password="x", role=role, full_name=username.title())
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin_headers(db_session):
    admin = await create_user(db_session, UserRole.UNIVERSITY_ADMIN, "admin")
    return {"Authorization": f"Bearer {create_access_token(admin.id, admin.role)}"}


@pytest_asyncio.fixture
async def tutor_headers(db_session):
    tutor = await create_user(db_session, UserRole.TUTOR, "tutor")
    return {"Authorization": f"Bearer {create_access_token(tutor.id, tutor.role)}"}


@pytest_asyncio.fixture
async def seeded_roster(db_session, student_item):
    items = [
        student_item(1, faculty=FACULTY_A, group={"id": 11, "name": "FZ-21"}),
        student_item(2, faculty=FACULTY_A, group={"id": 11, "name": "FZ-21"}),
        student_item(3, faculty=FACULTY_A, group={"id": 12, "name": "FZ-22"}),
        student_item(4, faculty=FACULTY_B, group={"id": 21, "name": "BL-21"}),
    ]
    await StudentRosterWriter(db_session).replace_all([format_student_data(i) for i in items])
    return items


class TestSyncTrigger:

    @pytest.mark.asyncio
    async def test_requires_token(self, api_client):
        response = await api_client.post("/api/admin/sync-hemis")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Token not provided"

    @pytest.mark.asyncio
    async def test_rejects_invalid_token(self, api_client):
        response = await api_client.post(
            "/api/admin/sync-hemis", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_requires_university_admin(self, api_client, tutor_headers, registry_state):
        response = await api_client.post("/api/admin/sync-hemis?wait=true", headers=tutor_headers)

        assert response.status_code == 403
        assert response.json()["message"] == "Permission denied"
        assert registry_state["client"].calls == []

    @pytest.mark.asyncio
    async def test_wait_returns_finished_run(self, api_client, admin_headers):
        response = await api_client.post("/api/admin/sync-hemis?wait=true", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Sync completed: 6 students updated"
        assert body["data"]["status"] == "completed"
        assert body["data"]["inserted_count"] == 6
        assert body["data"]["is_complete"] is True

    @pytest.mark.asyncio
    async def test_wait_reports_fatal_failure(self, api_client, admin_headers, registry_state,
                                              fake_registry, registry_pages):
        registry_state["client"] = fake_registry(registry_pages(2), failures={1: 1})

        response = await api_client.post("/api/admin/sync-hemis?wait=true", headers=admin_headers)

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["message"].startswith("Hemis sync failed: Failed to fetch initial data")

    @pytest.mark.asyncio
    async def test_background_trigger_returns_pending_run(self, api_client, admin_headers, manager):
        response = await api_client.post("/api/admin/sync-hemis", headers=admin_headers)

        assert response.status_code == 202
        body = response.json()
        assert body["message"] == "Hemis sync started"
        run_id = body["data"]["id"]
        assert body["data"]["status"] == "pending"

        task = manager._background_tasks.get(run_id)
        if task is not None:
            await task

        response = await api_client.get(f"/api/admin/sync-hemis/runs/{run_id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "completed"

    @pytest.mark.asyncio
    async def test_concurrent_trigger_conflicts(self, api_client, admin_headers, manager, db_session):
        running = await manager.start_background(db_session)

        response = await api_client.post("/api/admin/sync-hemis?wait=true", headers=admin_headers)

        assert response.status_code == 409
        assert str(running.id) in response.json()["message"]
        await manager._background_tasks[running.id]


class TestSyncRuns:

    @pytest.mark.asyncio
    async def test_lists_newest_first(self, api_client, admin_headers, db_session):
        db_session.add_all([
            StudentSyncRun(status=SyncRunStatus.COMPLETED),
            StudentSyncRun(status=SyncRunStatus.PARTIAL, skipped_pages=[4]),
        ])
        await db_session.commit()

        response = await api_client.get("/api/admin/sync-hemis/runs", headers=admin_headers)

        assert response.status_code == 200
        runs = response.json()["data"]
        assert [r["status"] for r in runs] == ["partial", "completed"]
        assert runs[0]["skipped_pages"] == [4]

    @pytest.mark.asyncio
    async def test_unknown_run(self, api_client, admin_headers):
        response = await api_client.get("/api/admin/sync-hemis/runs/999", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Sync run not found"


class TestStudentListing:

    @pytest.mark.asyncio
    async def test_paginates(self, api_client, admin_headers, seeded_roster):
        response = await api_client.get("/api/admin/students?page=2&limit=3", headers=admin_headers)

        data = response.json()["data"]
        assert data["pagination"] == {"total": 4, "page": 2, "limit": 3, "pages": 2}
        assert [s["full_name"] for s in data["students"]] == ["Student 00004"]
        assert "hashed_password" not in data["students"][0]
        assert data["students"][0]["birth_date_display"] == "01.01.2000"

    @pytest.mark.asyncio
    async def test_filters_by_faculty_and_group(self, api_client, admin_headers, seeded_roster):
        by_faculty = await api_client.get("/api/admin/students?faculty_id=1", headers=admin_headers)
        by_group = await api_client.get("/api/admin/students?group_id=12", headers=admin_headers)

        assert by_faculty.json()["data"]["pagination"]["total"] == 3
        assert [s["full_name"] for s in by_group.json()["data"]["students"]] == ["Student 00003"]

    @pytest.mark.asyncio
    async def test_search_by_id_number(self, api_client, admin_headers, seeded_roster):
        number = seeded_roster[1]["student_id_number"]

        response = await api_client.get(f"/api/admin/students?search={number}", headers=admin_headers)

        students = response.json()["data"]["students"]
        assert [s["student_id_number"] for s in students] == [number]

    @pytest.mark.asyncio
    async def test_busy_filter(self, api_client, admin_headers, seeded_roster, db_session):
        result = await db_session.execute(select(Student).where(Student.full_name == "Student 00002"))
        busy = result.scalar_one()
        busy.enrolled_clubs = [{"club": 3, "status": "approved"}]
        await db_session.commit()

        busy_response = await api_client.get("/api/admin/students?busy=true", headers=admin_headers)
        free_response = await api_client.get("/api/admin/students?busy=false", headers=admin_headers)

        busy_students = busy_response.json()["data"]["students"]
        assert [s["full_name"] for s in busy_students] == ["Student 00002"]
        assert busy_students[0]["is_busy"] is True
        assert free_response.json()["data"]["pagination"]["total"] == 3


class TestDirectoryEndpoints:

    @pytest.mark.asyncio
    async def test_faculties(self, api_client, tutor_headers, seeded_roster):
        response = await api_client.get("/api/common/faculties", headers=tutor_headers)

        assert response.status_code == 200
        assert response.json()["data"] == [
            {"id": 2, "name": "Biologiya", "code": "BL", "studentCount": 1},
            {"id": 1, "name": "Fizika", "code": "FZ", "studentCount": 3},
        ]

    @pytest.mark.asyncio
    async def test_groups_for_faculty(self, api_client, tutor_headers, seeded_roster):
        response = await api_client.get("/api/common/groups?faculty_id=1", headers=tutor_headers)

        groups = response.json()["data"]
        assert [(g["id"], g["name"], g["studentCount"]) for g in groups] == [
            (11, "FZ-21", 2),
            (12, "FZ-22", 1),
        ]
        assert all(g["facultyName"] == "Fizika" for g in groups)

    @pytest.mark.asyncio
    async def test_requires_token(self, api_client):
        response = await api_client.get("/api/common/faculties")
        assert response.status_code == 401


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, api_client):
        response = await api_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
