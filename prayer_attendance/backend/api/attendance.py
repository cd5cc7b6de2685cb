from fastapi import APIRouter, Depends, HTTPException, status, Request
from typing import List

from ..models.cache_models import AuthSession
from ..models.domain_models import AttendanceRecord, Role, Student
from ..modules.day_keys import local_now
from ..modules.whatsapp import build_whatsapp_link
from ..services.attendance_service import (
    AttendanceResult,
    AttendanceService,
    BulkAttendanceResult,
    DuplicateAttendanceError,
    MutationResult,
    ScanIgnoredError,
    StudentNotFoundError,
)
from ..services.sync_service import SyncService
from .schemas.attendance import (
    AttendanceResponse,
    BulkAttendanceRequest,
    ManualAttendanceRequest,
    ScanRequest,
    StatusUpdateRequest,
)
from .auth import require_roles
from .dependencies import get_attendance_service, get_sync_service
from .utilities.limiter import limiter

router = APIRouter(prefix="/attendance", tags=["Attendance"])

staff_only = require_roles(Role.ADMIN, Role.TEACHER)


# --- Helpers ---

def _to_response(result: AttendanceResult, student: Student, notify_parent: bool) -> AttendanceResponse:
    whatsapp_url = None
    if notify_parent and result.record is not None:
        whatsapp_url = build_whatsapp_link(student, result.record.status, result.record.operator_name or "", local_now().date())
    return AttendanceResponse(**result.model_dump(), whatsapp_url=whatsapp_url)


# --- Endpoints ---

@router.get("", response_model=List[AttendanceRecord], summary="Attendance records held on this device")
@limiter.limit("120/minute")
async def list_attendance(
    request: Request,
    session: AuthSession = Depends(staff_only),
    sync_service: SyncService = Depends(get_sync_service)
):
    return await sync_service.cached_attendance()


@router.post("/scan", response_model=AttendanceResponse, summary="Record attendance from a scanned or typed code")
@limiter.limit("240/minute")
async def scan(
    request: Request,
    scan_request: ScanRequest,
    session: AuthSession = Depends(staff_only),
    service: AttendanceService = Depends(get_attendance_service),
    sync_service: SyncService = Depends(get_sync_service)
):
    students = await sync_service.cached_students()
    try:
        result = await service.process_scan(
            scan_request.code,
            operator_name=session.username,
            students=students,
            status=scan_request.status,
            debounce=scan_request.debounce,
        )
    except ScanIgnoredError as e:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(e))
    except StudentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DuplicateAttendanceError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    student = service.find_student(scan_request.code, students)
    return _to_response(result, student, scan_request.notify_parent)


@router.post("", response_model=AttendanceResponse, status_code=status.HTTP_201_CREATED, summary="Mark one student manually")
@limiter.limit("240/minute")
async def record_manual(
    request: Request,
    manual_request: ManualAttendanceRequest,
    session: AuthSession = Depends(staff_only),
    service: AttendanceService = Depends(get_attendance_service),
    sync_service: SyncService = Depends(get_sync_service)
):
    students = await sync_service.cached_students()
    student = next((s for s in students if s.id == manual_request.student_id), None)
    if student is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No student with id '{manual_request.student_id}'.")

    try:
        result = await service.record_attendance(student, session.username, manual_request.status)
    except DuplicateAttendanceError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _to_response(result, student, manual_request.notify_parent)


@router.post("/bulk", response_model=BulkAttendanceResult, summary="Mark several students at once")
@limiter.limit("60/minute")
async def record_bulk(
    request: Request,
    bulk_request: BulkAttendanceRequest,
    session: AuthSession = Depends(staff_only),
    service: AttendanceService = Depends(get_attendance_service),
    sync_service: SyncService = Depends(get_sync_service)
):
    students = {s.id: s for s in await sync_service.cached_students()}
    targets = [students[student_id] for student_id in bulk_request.student_ids if student_id in students]
    result = await service.record_bulk(targets, session.username, bulk_request.status)

    # Ids missing from the roster get a failed result of their own.
    result.results.extend(
        AttendanceResult(success=False, message="Unknown student.", student_id=student_id)
        for student_id in bulk_request.student_ids if student_id not in students
    )
    return result


@router.patch("/{record_id}", response_model=MutationResult, summary="Change the status of a record")
@limiter.limit("120/minute")
async def update_status(
    request: Request,
    record_id: str,
    update_request: StatusUpdateRequest,
    session: AuthSession = Depends(staff_only),
    service: AttendanceService = Depends(get_attendance_service)
):
    """An unknown id is reported as `changed: false`, not as an error."""
    return await service.update_attendance_status(record_id, update_request.status)


@router.delete("/{record_id}", response_model=MutationResult, summary="Delete a record")
@limiter.limit("120/minute")
async def delete_record(
    request: Request,
    record_id: str,
    session: AuthSession = Depends(staff_only),
    service: AttendanceService = Depends(get_attendance_service)
):
    return await service.delete_attendance_record(record_id)
