import json

import pytest
from unittest.mock import patch

from prayer_attendance.backend.config.config import settings
from prayer_attendance.backend.modules.sheet_client import SheetClient
from prayer_attendance.backend.tasks.cron import periodic_sync_task
from tests.conftest import RecordingEndpoint, create_sample_record, create_sample_student


@pytest.mark.asyncio
async def test_periodic_sync_task_fills_cache(fake_redis, endpoint: RecordingEndpoint, sheet_client: SheetClient):
    student = create_sample_student()
    endpoint.students = [student.to_wire()]
    endpoint.attendance = [create_sample_record(student).to_wire()]

    with patch("prayer_attendance.backend.tasks.cron.redis.Redis", return_value=fake_redis):
        await periodic_sync_task(redis_pool=object(), sheet_client=sheet_client)

    stored_students = json.loads(fake_redis.store[f"{settings.CACHE_KEY_PREFIX}students_cache"])
    stored_records = json.loads(fake_redis.store[f"{settings.CACHE_KEY_PREFIX}attendance_cache"])
    assert [s["id"] for s in stored_students] == [student.id]
    assert len(stored_records) == 1


@pytest.mark.asyncio
async def test_periodic_sync_task_survives_unreachable_store(fake_redis, endpoint: RecordingEndpoint, sheet_client: SheetClient):
    endpoint.fail_reads = True

    with patch("prayer_attendance.backend.tasks.cron.redis.Redis", return_value=fake_redis):
        await periodic_sync_task(redis_pool=object(), sheet_client=sheet_client)

    assert fake_redis.store == {}


@pytest.mark.asyncio
async def test_periodic_sync_task_logs_unexpected_errors(sheet_client: SheetClient):
    with patch("prayer_attendance.backend.tasks.cron.redis.Redis", side_effect=RuntimeError("pool closed")):
        with patch("prayer_attendance.backend.tasks.cron.logger") as mock_logger:
            await periodic_sync_task(redis_pool=object(), sheet_client=sheet_client)

    mock_logger.error.assert_called_once()
