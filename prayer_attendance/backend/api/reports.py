from fastapi import APIRouter, Depends, HTTPException, status, Request, Query
from typing import List, Optional, Tuple

from ..models.cache_models import AuthSession
from ..models.domain_models import AttendanceRecord, Role, Student
from ..models.report_models import DailyRow, DashboardSummary, LeaderboardEntry, MonthlyRow, RangeReport
from ..modules.day_keys import date_key
from ..services import report_service
from ..services.report_service import DailyFilter
from ..services.sync_service import SyncService
from .auth import get_current_session
from .dependencies import get_sync_service
from .utilities.limiter import limiter

router = APIRouter(prefix="/reports", tags=["Reports"])


async def _scoped_data(session: AuthSession, sync_service: SyncService) -> Tuple[List[Student], List[AttendanceRecord]]:
    """
    Roster and records the caller may see. Reports read the local cache only;
    fresh remote data arrives through the sync endpoint or the periodic job.
    """
    students = await sync_service.cached_students()
    records = await sync_service.cached_attendance()
    if session.role is Role.PARENT:
        child = session.student_data
        if child is None:
            return [], []
        students = [s for s in students if s.id == child.id] or [child]
        records = [r for r in records if r.student_id == child.id]
    return students, records


def _bad_request(e: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/daily", response_model=List[DailyRow], summary="Who has prayed on one day")
@limiter.limit("120/minute")
async def daily(
    request: Request,
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    class_name: Optional[str] = Query(None, alias="className"),
    status_filter: DailyFilter = Query(DailyFilter.ALL, alias="status"),
    session: AuthSession = Depends(get_current_session),
    sync_service: SyncService = Depends(get_sync_service)
):
    students, records = await _scoped_data(session, sync_service)
    return report_service.daily_view(students, records, date or date_key(), class_name, status_filter)


@router.get("/range", response_model=RangeReport, summary="Attendance matrix over a date range")
@limiter.limit("60/minute")
async def date_range(
    request: Request,
    start: str = Query(..., description="YYYY-MM-DD, inclusive"),
    end: str = Query(..., description="YYYY-MM-DD, inclusive"),
    class_name: Optional[str] = Query(None, alias="className"),
    session: AuthSession = Depends(get_current_session),
    sync_service: SyncService = Depends(get_sync_service)
):
    students, records = await _scoped_data(session, sync_service)
    try:
        return report_service.range_matrix(students, records, start, end, class_name)
    except ValueError as e:
        raise _bad_request(e)


@router.get("/monthly", response_model=List[MonthlyRow], summary="Monthly totals per student")
@limiter.limit("60/minute")
async def monthly(
    request: Request,
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to the current month"),
    class_name: Optional[str] = Query(None, alias="className"),
    school_days: Optional[int] = Query(None, alias="schoolDays", ge=0),
    session: AuthSession = Depends(get_current_session),
    sync_service: SyncService = Depends(get_sync_service)
):
    students, records = await _scoped_data(session, sync_service)
    try:
        return report_service.monthly_history(students, records, month or date_key()[:7], class_name, school_days)
    except ValueError as e:
        raise _bad_request(e)


@router.get("/leaderboard", response_model=List[LeaderboardEntry], summary="All-time attendance ranking")
@limiter.limit("60/minute")
async def leaderboard(
    request: Request,
    include_zero: bool = Query(False, alias="includeZero"),
    session: AuthSession = Depends(get_current_session),
    sync_service: SyncService = Depends(get_sync_service)
):
    students, records = await _scoped_data(session, sync_service)
    return report_service.leaderboard(records, students, include_zero)


@router.get("/dashboard", response_model=DashboardSummary, summary="Headline numbers for one day")
@limiter.limit("120/minute")
async def dashboard(
    request: Request,
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    class_name: Optional[str] = Query(None, alias="className"),
    session: AuthSession = Depends(get_current_session),
    sync_service: SyncService = Depends(get_sync_service)
):
    students, records = await _scoped_data(session, sync_service)
    return report_service.dashboard_summary(students, records, date or date_key(), class_name)
