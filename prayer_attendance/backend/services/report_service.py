"""
Report aggregators.

Pure functions over the (students, records) pair held in the cache. Nothing is
maintained incrementally; every report is recomputed on each call.
"""
import math
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from ..models.domain_models import AttendanceRecord, AttendanceStatus, Student
from ..models.report_models import (
    DailyRow,
    DashboardSummary,
    DayCell,
    LeaderboardEntry,
    MonthlyRow,
    RangeReport,
    RangeRow,
)
from ..modules.day_keys import check_month_key, days_in_range, time_of_day

ABSENT = "ABSENT"

LABEL_PRESENT = "Present"
LABEL_HAID = "Excused (Haid)"
LABEL_ABSENT = "Not yet attended"


class DailyFilter(str, Enum):
    ALL = "ALL"
    PRESENT = "PRESENT"
    HAID = "HAID"
    ABSENT = "ABSENT"


def _roster_order(student: Student) -> Tuple[str, str]:
    return (student.class_name, student.name)


def _in_scope(students: Iterable[Student], class_name: Optional[str]) -> List[Student]:
    if not class_name or class_name == "ALL":
        return list(students)
    return [s for s in students if s.class_name == class_name]


def _first_record_per_student(records: Iterable[AttendanceRecord]) -> Dict[str, AttendanceRecord]:
    # Records arrive newest first; keep the first seen if a device wrote duplicates.
    found: Dict[str, AttendanceRecord] = {}
    for record in records:
        found.setdefault(record.student_id, record)
    return found


def class_list(students: Iterable[Student]) -> List[str]:
    return sorted({s.class_name for s in students})


def daily_view(
    students: List[Student],
    records: List[AttendanceRecord],
    date: str,
    class_name: Optional[str] = None,
    status_filter: DailyFilter = DailyFilter.ALL,
) -> List[DailyRow]:
    """One row per in-scope student for `date`, ordered by class then name."""
    todays = _first_record_per_student(r for r in records if r.date == date)

    rows = []
    for student in sorted(_in_scope(students, class_name), key=_roster_order):
        record = todays.get(student.id)
        if record is None:
            status, label = ABSENT, LABEL_ABSENT
        elif record.status is AttendanceStatus.HAID:
            status, label = AttendanceStatus.HAID.value, LABEL_HAID
        else:
            status, label = AttendanceStatus.PRESENT.value, LABEL_PRESENT

        rows.append(DailyRow(
            student_id=student.id,
            name=student.name,
            class_name=student.class_name,
            gender=student.gender,
            record_id=record.id if record else None,
            is_present=record is not None,
            is_haid=status == AttendanceStatus.HAID.value,
            status=status,
            time=time_of_day(record.timestamp) if record else "-",
            operator=(record.operator_name or "-") if record else "-",
            status_label=label,
        ))

    status_filter = DailyFilter(status_filter)
    if status_filter is DailyFilter.ALL:
        return rows
    return [row for row in rows if row.status == status_filter.value]


def range_matrix(
    students: List[Student],
    records: List[AttendanceRecord],
    start: str,
    end: str,
    class_name: Optional[str] = None,
) -> RangeReport:
    """
    Attendance matrix for the inclusive interval [start, end].
    Raises ValueError for a reversed or oversized interval.
    """
    days = days_in_range(start, end)
    day_set = set(days)

    by_student_day: Dict[Tuple[str, str], AttendanceRecord] = {}
    for record in records:
        if record.date in day_set:
            by_student_day.setdefault((record.student_id, record.date), record)

    rows = []
    for student in sorted(_in_scope(students, class_name), key=_roster_order):
        cells = []
        present = haid = 0
        for day in days:
            record = by_student_day.get((student.id, day))
            if record is None:
                cells.append(DayCell(date=day, status=ABSENT))
                continue
            if record.status is AttendanceStatus.HAID:
                haid += 1
            else:
                present += 1
            cells.append(DayCell(date=day, status=record.status.value, record_id=record.id))

        rows.append(RangeRow(
            student_id=student.id,
            name=student.name,
            class_name=student.class_name,
            cells=cells,
            present_count=present,
            haid_count=haid,
            absent_count=len(days) - (present + haid),
        ))

    return RangeReport(days=days, rows=rows)


def monthly_history(
    students: List[Student],
    records: List[AttendanceRecord],
    month: str,
    class_name: Optional[str] = None,
    school_days: Optional[int] = None,
) -> List[MonthlyRow]:
    """
    Per-student totals for a YYYY-MM month. The absent count is only derived
    when the caller knows how many school days the month had.
    """
    check_month_key(month)
    prefix = f"{month}-"

    counts: Dict[str, List[int]] = {}
    for record in records:
        if not record.date.startswith(prefix):
            continue
        tally = counts.setdefault(record.student_id, [0, 0])
        if record.status is AttendanceStatus.HAID:
            tally[1] += 1
        else:
            tally[0] += 1

    rows = []
    for student in sorted(_in_scope(students, class_name), key=_roster_order):
        present, haid = counts.get(student.id, (0, 0))
        absent = max(school_days - present - haid, 0) if school_days is not None else None
        rows.append(MonthlyRow(
            student_id=student.id,
            name=student.name,
            class_name=student.class_name,
            present_count=present,
            haid_count=haid,
            absent_count=absent,
        ))
    return rows


def leaderboard(
    records: List[AttendanceRecord],
    students: Optional[List[Student]] = None,
    include_zero: bool = False,
) -> List[LeaderboardEntry]:
    """
    All-time ranking by PRESENT + HAID count, ties broken by name.
    Name and class come from the record snapshots. With `include_zero`,
    roster students that never attended are listed with a count of 0.
    """
    totals: Dict[str, Dict] = {}
    for record in records:
        entry = totals.setdefault(record.student_id, {
            "student_id": record.student_id,
            "name": record.student_name,
            "class_name": record.class_name,
            "count": 0,
        })
        if record.status in (AttendanceStatus.PRESENT, AttendanceStatus.HAID):
            entry["count"] += 1

    if include_zero and students:
        for student in students:
            totals.setdefault(student.id, {
                "student_id": student.id,
                "name": student.name,
                "class_name": student.class_name,
                "count": 0,
            })

    ranked = sorted(totals.values(), key=lambda e: (-e["count"], e["name"]))
    return [LeaderboardEntry(rank=position, **entry) for position, entry in enumerate(ranked, start=1)]


def dashboard_summary(
    students: List[Student],
    records: List[AttendanceRecord],
    date: str,
    class_name: Optional[str] = None,
) -> DashboardSummary:
    in_scope = _in_scope(students, class_name)
    todays = _first_record_per_student(r for r in records if r.date == date)

    present = haid = 0
    for student in in_scope:
        record = todays.get(student.id)
        if record is None:
            continue
        if record.status is AttendanceStatus.HAID:
            haid += 1
        else:
            present += 1

    total = len(in_scope)
    attended = present + haid
    # Half-up rounding, not Python's banker's rounding.
    percentage = math.floor(attended * 100 / total + 0.5) if total else 0

    return DashboardSummary(
        date=date,
        total=total,
        present=present,
        haid=haid,
        absent=total - attended,
        percentage=percentage,
    )
