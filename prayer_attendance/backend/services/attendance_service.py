import logging
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from ..config.config import settings
from ..db.cache_client import CacheClient
from ..models.domain_models import AttendanceRecord, AttendanceStatus, CamelModel, Student
from ..modules.day_keys import date_key, epoch_millis, local_now
from ..modules.sheet_client import SheetClient

logger = logging.getLogger(__name__)


# --- Service Layer Exceptions ---
class ServiceError(Exception):
    """General exception class for the service layer."""
    pass

class DuplicateAttendanceError(ServiceError):
    """The student already has a record for today in the local cache."""
    pass

class StudentNotFoundError(ServiceError):
    pass

class ScanIgnoredError(ServiceError):
    """The same code was scanned again inside the debounce window."""
    pass


# --- Results ---
class AttendanceResult(CamelModel):
    success: bool
    message: str
    student_id: str
    record: Optional[AttendanceRecord] = None

class BulkAttendanceResult(CamelModel):
    success_count: int
    results: List[AttendanceResult]

class MutationResult(CamelModel):
    changed: bool
    message: str
    record: Optional[AttendanceRecord] = None


class AttendanceService:
    """
    Writes attendance. Every change lands in the local cache first and is then
    sent to the remote store without waiting for (or being able to see) the
    outcome.

    The one-record-per-student-per-day rule is only checked against this
    device's cache; two devices marking the same student can still both write.
    """

    def __init__(self, cache_client: CacheClient, sheet_client: SheetClient):
        self.cache_client = cache_client
        self.sheet_client = sheet_client

    async def record_attendance(
        self,
        student: Student,
        operator_name: str,
        status: AttendanceStatus = AttendanceStatus.PRESENT,
        now: Optional[datetime] = None,
    ) -> AttendanceResult:
        """Marks `student` for today. Raises DuplicateAttendanceError if already marked."""
        now = now or local_now()
        today = date_key(now)

        cached = await self.cache_client.load_attendance() or []
        if any(r.student_id == student.id and r.date == today for r in cached):
            logger.info(f"Duplicate attendance rejected for student '{student.id}' on {today}.")
            raise DuplicateAttendanceError(f"{student.name} has already been recorded today.")

        record = AttendanceRecord(
            id=str(uuid4()),
            student_id=student.id,
            student_name=student.name,
            class_name=student.class_name,
            date=today,
            timestamp=epoch_millis(now),
            operator_name=operator_name,
            status=AttendanceStatus(status),
        )

        # Optimistic: the local copy is the source of truth until the next sync.
        await self.cache_client.save_attendance([record] + cached)
        self.sheet_client.push_attendance(record)

        logger.info(f"Attendance recorded: student '{student.id}' {record.status.value} by '{operator_name}'.")
        return AttendanceResult(
            success=True,
            message=f"{student.name} recorded as {record.status.value}.",
            student_id=student.id,
            record=record,
        )

    async def record_bulk(
        self,
        students: List[Student],
        operator_name: str,
        status: AttendanceStatus = AttendanceStatus.PRESENT,
        now: Optional[datetime] = None,
    ) -> BulkAttendanceResult:
        results = []
        for student in students:
            try:
                results.append(await self.record_attendance(student, operator_name, status, now=now))
            except DuplicateAttendanceError as e:
                results.append(AttendanceResult(success=False, message=str(e), student_id=student.id))

        success_count = sum(1 for r in results if r.success)
        return BulkAttendanceResult(success_count=success_count, results=results)

    async def update_attendance_status(self, record_id: str, status: AttendanceStatus) -> MutationResult:
        records = await self.cache_client.load_attendance() or []
        target = next((r for r in records if r.id == record_id), None)
        if target is None:
            return MutationResult(changed=False, message=f"Record '{record_id}' not found; nothing changed.")

        target.status = AttendanceStatus(status)
        await self.cache_client.save_attendance(records)
        self.sheet_client.update_attendance_status(record_id, target.status)

        logger.info(f"Attendance record '{record_id}' set to {target.status.value}.")
        return MutationResult(changed=True, message="Status updated.", record=target)

    async def delete_attendance_record(self, record_id: str) -> MutationResult:
        records = await self.cache_client.load_attendance() or []
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            return MutationResult(changed=False, message=f"Record '{record_id}' not found; nothing changed.")

        await self.cache_client.save_attendance(remaining)
        self.sheet_client.delete_attendance(record_id)

        logger.info(f"Attendance record '{record_id}' deleted.")
        return MutationResult(changed=True, message="Record deleted.")

    # ===== Scanning =====

    @staticmethod
    def find_student(code: str, students: List[Student]) -> Optional[Student]:
        """A scanned or typed code matches a student id, or a name case-insensitively."""
        code = code.strip()
        lowered = code.lower()
        return next((s for s in students if s.id == code or s.name.lower() == lowered), None)

    async def process_scan(
        self,
        code: str,
        operator_name: str,
        students: List[Student],
        status: AttendanceStatus = AttendanceStatus.PRESENT,
        debounce: bool = True,
        now: Optional[datetime] = None,
    ) -> AttendanceResult:
        code = code.strip()
        if not code:
            raise StudentNotFoundError("Empty scan code.")

        student = self.find_student(code, students)
        if student is None:
            logger.info(f"Scan code '{code}' did not match any student.")
            raise StudentNotFoundError(f"No student matches '{code}'.")

        # A camera keeps decoding the same QR code for as long as it is in view.
        # Only codes that matched a student take the debounce slot.
        if debounce and not await self.cache_client.claim_scan(code, settings.SCAN_DEBOUNCE_SECONDS):
            raise ScanIgnoredError(f"Code '{code}' was scanned moments ago; ignoring the repeat.")

        return await self.record_attendance(student, operator_name, status, now=now)
