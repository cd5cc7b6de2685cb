from typing import List, Optional

from pydantic import Field

from .domain_models import CamelModel, Gender


class DailyRow(CamelModel):
    """One student's line in the daily report."""
    student_id: str
    name: str
    class_name: str
    gender: Optional[Gender] = None
    record_id: Optional[str] = None
    is_present: bool
    is_haid: bool
    status: str = Field(description="PRESENT, HAID or ABSENT")
    time: str = Field(description="HH:MM of the record, '-' when absent")
    operator: str
    status_label: str


class DayCell(CamelModel):
    date: str
    status: str
    record_id: Optional[str] = None


class RangeRow(CamelModel):
    student_id: str
    name: str
    class_name: str
    cells: List[DayCell]
    present_count: int
    haid_count: int
    absent_count: int


class RangeReport(CamelModel):
    days: List[str]
    rows: List[RangeRow]


class MonthlyRow(CamelModel):
    student_id: str
    name: str
    class_name: str
    present_count: int
    haid_count: int
    absent_count: Optional[int] = Field(None, description="Only set when the number of school days is known")


class LeaderboardEntry(CamelModel):
    rank: int
    student_id: str
    name: str
    class_name: str
    count: int


class DashboardSummary(CamelModel):
    date: str
    total: int
    present: int
    haid: int
    absent: int
    percentage: int
