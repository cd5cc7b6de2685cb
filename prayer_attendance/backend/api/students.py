from fastapi import (
    APIRouter, Depends, HTTPException, status,
    Request, File, UploadFile
)
from typing import List

from ..models.cache_models import AuthSession
from ..models.domain_models import Role, Student
from ..modules.roster_import import RosterImportError, parse_roster_workbook
from ..services.attendance_service import MutationResult
from ..services.report_service import class_list
from ..services.roster_service import DuplicateStudentError, RosterService
from .schemas.student import ImportResponse
from .auth import get_current_session, require_roles
from .dependencies import get_roster_service
from .utilities.limiter import limiter

router = APIRouter(prefix="/students", tags=["Students"])

admin_only = require_roles(Role.ADMIN)


def _visible_students(students: List[Student], session: AuthSession) -> List[Student]:
    """A parent only ever sees their own child."""
    if session.role is Role.PARENT:
        child_id = session.student_data.id if session.student_data else None
        return [s for s in students if s.id == child_id]
    return students


@router.get("", response_model=List[Student], summary="The roster held on this device")
@limiter.limit("120/minute")
async def list_students(
    request: Request,
    session: AuthSession = Depends(get_current_session),
    service: RosterService = Depends(get_roster_service)
):
    return _visible_students(await service.list_students(), session)


@router.get("/classes", response_model=List[str], summary="Distinct class names, sorted")
@limiter.limit("120/minute")
async def list_classes(
    request: Request,
    session: AuthSession = Depends(get_current_session),
    service: RosterService = Depends(get_roster_service)
):
    return class_list(_visible_students(await service.list_students(), session))


@router.post("", response_model=List[Student], status_code=status.HTTP_201_CREATED, summary="Add a student")
@limiter.limit("60/minute")
async def add_student(
    request: Request,
    student: Student,
    session: AuthSession = Depends(admin_only),
    service: RosterService = Depends(get_roster_service)
):
    try:
        return await service.add_student(student)
    except DuplicateStudentError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.put("/{student_id}", response_model=MutationResult, summary="Replace a student's data")
@limiter.limit("60/minute")
async def update_student(
    request: Request,
    student_id: str,
    student: Student,
    session: AuthSession = Depends(admin_only),
    service: RosterService = Depends(get_roster_service)
):
    if student.id != student_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The student id cannot be changed.")
    return await service.update_student(student)


@router.delete("/{student_id}", response_model=MutationResult, summary="Remove a student from the roster")
@limiter.limit("60/minute")
async def delete_student(
    request: Request,
    student_id: str,
    session: AuthSession = Depends(admin_only),
    service: RosterService = Depends(get_roster_service)
):
    """Existing attendance records of the student are kept."""
    return await service.delete_student(student_id)


@router.post("/import", response_model=ImportResponse, summary="Import students from an .xlsx sheet")
@limiter.limit("10/minute")
async def import_students(
    request: Request,
    file: UploadFile = File(...),
    session: AuthSession = Depends(admin_only),
    service: RosterService = Depends(get_roster_service)
):
    """
    The first worksheet is read with its first row as headers
    (`NIS`/`ID`, `Nama Lengkap`/`Nama`, `Kelas`, `Gender`, `No WA Ortu`/`WA`).
    Rows whose id already exists replace the stored student.
    """
    content = await file.read()
    try:
        imported = parse_roster_workbook(content)
    except RosterImportError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    roster = await service.import_students(imported)
    return ImportResponse(imported=len(imported), total=len(roster), students=roster)
