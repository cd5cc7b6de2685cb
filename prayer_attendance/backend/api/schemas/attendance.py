from typing import List, Optional

from pydantic import Field

from ...models.domain_models import AttendanceRecord, AttendanceStatus, CamelModel


class ScanRequest(CamelModel):
    """A decoded QR payload or a typed code (student id or full name)."""
    code: str = Field(..., min_length=1)
    status: AttendanceStatus = AttendanceStatus.PRESENT
    debounce: bool = Field(True, description="Ignore the same code repeated within the debounce window")
    notify_parent: bool = False


class ManualAttendanceRequest(CamelModel):
    student_id: str = Field(..., min_length=1)
    status: AttendanceStatus = AttendanceStatus.PRESENT
    notify_parent: bool = False


class BulkAttendanceRequest(CamelModel):
    student_ids: List[str] = Field(..., min_length=1)
    status: AttendanceStatus = AttendanceStatus.PRESENT


class StatusUpdateRequest(CamelModel):
    status: AttendanceStatus


class AttendanceResponse(CamelModel):
    """Outcome of one marking, plus the guardian notification link when requested."""
    success: bool
    message: str
    student_id: str
    record: Optional[AttendanceRecord] = None
    whatsapp_url: Optional[str] = None
