from datetime import datetime

import pytest
from unittest.mock import MagicMock

from prayer_attendance.backend.db.cache_client import CacheClient
from prayer_attendance.backend.models.domain_models import AttendanceStatus
from prayer_attendance.backend.modules.day_keys import school_timezone
from prayer_attendance.backend.services.attendance_service import (
    AttendanceService,
    DuplicateAttendanceError,
    ScanIgnoredError,
    StudentNotFoundError,
)
from tests.conftest import create_sample_record, create_sample_student

NOON = datetime(2024, 1, 15, 12, 5, tzinfo=school_timezone())


@pytest.fixture
def mock_sheet_client() -> MagicMock:
    """The writer only calls the fire-and-forget methods, which are synchronous."""
    return MagicMock()


@pytest.fixture
def service(cache_client: CacheClient, mock_sheet_client) -> AttendanceService:
    return AttendanceService(cache_client=cache_client, sheet_client=mock_sheet_client)


@pytest.mark.asyncio
class TestAttendanceService:

    # --- record_attendance ---

    async def test_record_is_written_locally_then_pushed(self, service, cache_client, mock_sheet_client):
        student = create_sample_student()

        result = await service.record_attendance(student, "BU SITI", now=NOON)

        assert result.success is True
        record = result.record
        assert record.date == "2024-01-15"
        assert record.timestamp == int(NOON.timestamp() * 1000)
        assert record.student_name == student.name
        assert record.operator_name == "BU SITI"
        assert record.status is AttendanceStatus.PRESENT
        assert await cache_client.load_attendance() == [record]
        mock_sheet_client.push_attendance.assert_called_once_with(record)

    async def test_new_record_is_prepended(self, service, cache_client):
        student = create_sample_student("1001")
        older = create_sample_record(create_sample_student("1002"), "2024-01-15", hour=12, minute=0)
        await cache_client.save_attendance([older])

        result = await service.record_attendance(student, "BU SITI", now=NOON)

        assert [r.id for r in await cache_client.load_attendance()] == [result.record.id, older.id]

    async def test_duplicate_same_day_is_rejected_without_changes(self, service, cache_client, mock_sheet_client):
        student = create_sample_student()
        await service.record_attendance(student, "BU SITI", now=NOON)
        mock_sheet_client.reset_mock()
        before = await cache_client.load_attendance()

        with pytest.raises(DuplicateAttendanceError):
            await service.record_attendance(student, "PAK BUDI", AttendanceStatus.HAID, now=NOON)

        assert await cache_client.load_attendance() == before
        mock_sheet_client.push_attendance.assert_not_called()

    async def test_same_student_can_attend_next_day(self, service, cache_client):
        student = create_sample_student()
        await service.record_attendance(student, "BU SITI", now=NOON)
        await service.record_attendance(student, "BU SITI", now=NOON.replace(day=16))

        assert len(await cache_client.load_attendance()) == 2

    async def test_bulk_reports_duplicates_per_student(self, service):
        ahmad = create_sample_student("1001")
        bunga = create_sample_student("1002", "BUNGA LESTARI", gender="P")
        await service.record_attendance(ahmad, "BU SITI", now=NOON)

        result = await service.record_bulk([ahmad, bunga], "BU SITI", AttendanceStatus.HAID, now=NOON)

        assert result.success_count == 1
        assert [r.success for r in result.results] == [False, True]
        assert result.results[1].record.status is AttendanceStatus.HAID

    # --- update / delete ---

    async def test_update_status(self, service, cache_client, mock_sheet_client):
        record = (await service.record_attendance(create_sample_student(), "BU SITI", now=NOON)).record

        result = await service.update_attendance_status(record.id, AttendanceStatus.HAID)

        assert result.changed is True
        assert (await cache_client.load_attendance())[0].status is AttendanceStatus.HAID
        mock_sheet_client.update_attendance_status.assert_called_once_with(record.id, AttendanceStatus.HAID)

    async def test_update_unknown_id_changes_nothing(self, service, cache_client, mock_sheet_client, fake_redis):
        await service.record_attendance(create_sample_student(), "BU SITI", now=NOON)
        writes_before = fake_redis.set.await_count

        result = await service.update_attendance_status("missing", AttendanceStatus.HAID)

        assert result.changed is False
        assert fake_redis.set.await_count == writes_before
        mock_sheet_client.update_attendance_status.assert_not_called()

    async def test_delete_record(self, service, cache_client, mock_sheet_client):
        record = (await service.record_attendance(create_sample_student(), "BU SITI", now=NOON)).record

        result = await service.delete_attendance_record(record.id)

        assert result.changed is True
        assert await cache_client.load_attendance() == []
        mock_sheet_client.delete_attendance.assert_called_once_with(record.id)

    async def test_delete_unknown_id_leaves_cache_unchanged(self, service, mock_sheet_client, fake_redis):
        await service.record_attendance(create_sample_student(), "BU SITI", now=NOON)
        raw_before = fake_redis.store["test:attendance_cache"]

        result = await service.delete_attendance_record("missing")

        assert result.changed is False
        assert fake_redis.store["test:attendance_cache"] == raw_before
        mock_sheet_client.delete_attendance.assert_not_called()

    # --- scanning ---

    async def test_scan_matches_id_or_name(self, service, sample_students):
        by_id = await service.process_scan(" 1001 ", "BU SITI", sample_students, now=NOON)
        by_name = await service.process_scan("bunga lestari", "BU SITI", sample_students, debounce=False, now=NOON)

        assert by_id.student_id == "1001"
        assert by_name.student_id == "1002"

    async def test_repeated_scan_inside_window_is_ignored(self, service, sample_students):
        await service.process_scan("1001", "BU SITI", sample_students, now=NOON)

        with pytest.raises(ScanIgnoredError):
            await service.process_scan("1001", "BU SITI", sample_students, now=NOON)

    async def test_scan_without_debounce_reports_duplicate(self, service, sample_students):
        await service.process_scan("1001", "BU SITI", sample_students, debounce=False, now=NOON)

        with pytest.raises(DuplicateAttendanceError):
            await service.process_scan("1001", "BU SITI", sample_students, debounce=False, now=NOON)

    async def test_unknown_or_empty_code(self, service, sample_students):
        with pytest.raises(StudentNotFoundError):
            await service.process_scan("9999", "BU SITI", sample_students, now=NOON)
        with pytest.raises(StudentNotFoundError):
            await service.process_scan("   ", "BU SITI", sample_students, now=NOON)

    async def test_unknown_code_does_not_take_the_debounce_slot(self, service, sample_students, fake_redis):
        for _ in range(2):
            with pytest.raises(StudentNotFoundError):
                await service.process_scan("9999", "BU SITI", sample_students, now=NOON)

        assert "test:last_scan:9999" not in fake_redis.store
