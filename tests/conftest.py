# tests/conftest.py
import asyncio
import json
import sys
from datetime import datetime
from typing import List
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from prayer_attendance.backend.api.dependencies import get_cache_client, get_sheet_client
from prayer_attendance.backend.api.utilities.limiter import limiter
from prayer_attendance.backend.config.config import settings
from prayer_attendance.backend.db.cache_client import CacheClient
from prayer_attendance.backend.main import app
from prayer_attendance.backend.models.domain_models import AttendanceRecord, AttendanceStatus, Student
from prayer_attendance.backend.modules.day_keys import school_timezone
from prayer_attendance.backend.modules.sheet_client import SheetClient

# This is the crucial fix for Windows asyncio issues with pytest.
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

TEST_ENDPOINT = "https://sheet.example.test/exec"


# ===== Fake Redis =====

def make_fake_redis() -> AsyncMock:
    """
    An AsyncMock standing in for redis.asyncio.Redis, backed by a plain dict
    (exposed as `.store`). Supports the get/set/delete calls the cache makes,
    including SET NX. Expiry is recorded but not enforced.
    """
    store = {}
    expiries = {}

    async def _get(key):
        return store.get(key)

    async def _set(key, value, nx=False, ex=None):
        if nx and key in store:
            return None
        store[key] = value
        if ex is not None:
            expiries[key] = ex
        return True

    async def _delete(*keys):
        removed = 0
        for key in keys:
            if store.pop(key, None) is not None:
                removed += 1
        return removed

    fake = AsyncMock()
    fake.get.side_effect = _get
    fake.set.side_effect = _set
    fake.delete.side_effect = _delete
    fake.store = store
    fake.expiries = expiries
    return fake


@pytest.fixture
def fake_redis() -> AsyncMock:
    return make_fake_redis()


@pytest.fixture
def cache_client(fake_redis) -> CacheClient:
    return CacheClient(fake_redis, prefix="test:")


# ===== Remote endpoint =====

class RecordingEndpoint:
    """Mock spreadsheet endpoint: serves canned GET payloads and records POST bodies."""

    def __init__(self, students=None, attendance=None, fail_reads: bool = False):
        self.students = students if students is not None else []
        self.attendance = attendance if attendance is not None else []
        self.fail_reads = fail_reads
        self.posts: List[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            self.posts.append(json.loads(request.content))
            return httpx.Response(200, text="ok")

        if self.fail_reads:
            raise httpx.ConnectError("endpoint unreachable", request=request)

        action = request.url.params.get("action")
        if action == "getStudents":
            return httpx.Response(200, json=self.students)
        if action == "getAttendance":
            return httpx.Response(200, json=self.attendance)
        return httpx.Response(400, json={"error": f"unknown action {action}"})


@pytest.fixture
def endpoint() -> RecordingEndpoint:
    return RecordingEndpoint()


@pytest_asyncio.fixture
async def http_client(endpoint):
    async with httpx.AsyncClient(transport=httpx.MockTransport(endpoint)) as client:
        yield client


@pytest.fixture
def sheet_client(http_client) -> SheetClient:
    return SheetClient(http_client, base_url=TEST_ENDPOINT, timeout=1)


# ===== Sample data =====

def create_sample_student(student_id: str = "1001", name: str = "AHMAD FAUZI", class_name: str = "IX A",
                          gender: str = "L", parent_phone: str = None) -> Student:
    return Student(id=student_id, name=name, class_name=class_name, gender=gender, parent_phone=parent_phone)


def create_sample_record(student: Student, day: str = "2024-01-15", hour: int = 12, minute: int = 5,
                         status: AttendanceStatus = AttendanceStatus.PRESENT, record_id: str = None) -> AttendanceRecord:
    moment = datetime(*map(int, day.split("-")), hour, minute, tzinfo=school_timezone())
    return AttendanceRecord(
        id=record_id or f"rec-{student.id}-{day}",
        student_id=student.id,
        student_name=student.name,
        class_name=student.class_name,
        date=day,
        timestamp=int(moment.timestamp() * 1000),
        operator_name="BU SITI",
        status=status,
    )


@pytest.fixture
def sample_students() -> List[Student]:
    return [
        create_sample_student("1001", "AHMAD FAUZI", "IX A", "L", "081234567890"),
        create_sample_student("1002", "BUNGA LESTARI", "IX A", "P"),
        create_sample_student("1003", "CAHYO NUGROHO", "IX B", "L"),
        create_sample_student("1004", "DEWI ANGGRAINI", "IX B", "P"),
    ]


# ===== API =====

@pytest_asyncio.fixture
async def api_client(fake_redis, sheet_client):
    """
    httpx client bound to the FastAPI app through ASGITransport. The cache is
    the fake Redis, the remote store the mock endpoint; the lifespan (real
    Redis, scheduler) does not run.
    """
    app.dependency_overrides[get_cache_client] = lambda: CacheClient(fake_redis, prefix="test:")
    app.dependency_overrides[get_sheet_client] = lambda: sheet_client
    limiter.enabled = False

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver/api/v1") as client:
        yield client

    await sheet_client.wait_pending()
    limiter.enabled = True
    app.dependency_overrides.clear()


async def login_headers(client: httpx.AsyncClient, **payload) -> dict:
    response = await client.post("/auth/login", json=payload)
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']['accessToken']}"}


async def admin_headers(client: httpx.AsyncClient) -> dict:
    return await login_headers(client, mode="STAFF", username=settings.ADMIN_USERNAME, password=settings.ADMIN_PASSWORD)


async def teacher_headers(client: httpx.AsyncClient, name: str = "BU SITI") -> dict:
    return await login_headers(client, mode="STAFF", username=name, password=settings.STAFF_PASSWORD)
