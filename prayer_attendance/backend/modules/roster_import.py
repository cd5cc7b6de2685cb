# prayer_attendance/backend/modules/roster_import.py

import logging
import re
from io import BytesIO
from typing import Any, Dict, Iterable, List, Optional

from openpyxl import load_workbook

from ..models.domain_models import Gender, Student

logger = logging.getLogger(__name__)

# Header spellings accepted for each field, first match wins.
ID_HEADERS = ("NIS", "ID")
NAME_HEADERS = ("Nama Lengkap", "Nama")
CLASS_HEADERS = ("Kelas",)
GENDER_HEADERS = ("Gender",)
PHONE_HEADERS = ("No WA Ortu", "WA")

DEFAULT_CLASS = "IX A"


class RosterImportError(Exception):
    """Raised when the uploaded file cannot be read as a workbook."""
    pass


def _first(row: Dict[str, Any], headers: Iterable[str]) -> Optional[Any]:
    for header in headers:
        value = row.get(header)
        if value is not None and str(value).strip() != "":
            return value
    return None


def _cell_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def student_from_row(row: Dict[str, Any]) -> Optional[Student]:
    """
    Builds a Student from one sheet row keyed by header, or None when the row
    has no id or no name.
    """
    student_id = _first(row, ID_HEADERS)
    name = _first(row, NAME_HEADERS)
    if student_id is None or name is None:
        return None

    class_name = _first(row, CLASS_HEADERS)
    gender_raw = _cell_text(_first(row, GENDER_HEADERS) or "L").upper()
    phone_raw = _first(row, PHONE_HEADERS)

    return Student(
        id=_cell_text(student_id),
        name=_cell_text(name).upper(),
        class_name=_cell_text(class_name) if class_name is not None else DEFAULT_CLASS,
        gender=Gender.FEMALE if gender_raw.startswith("P") else Gender.MALE,
        parent_phone=re.sub(r"\D", "", _cell_text(phone_raw)) if phone_raw is not None else None,
    )


def students_from_rows(rows: Iterable[Dict[str, Any]]) -> List[Student]:
    students = []
    for index, row in enumerate(rows, start=2):
        student = student_from_row(row)
        if student is None:
            logger.info(f"Roster import: skipping sheet row {index} without id or name.")
            continue
        students.append(student)
    return students


def parse_roster_workbook(content: bytes) -> List[Student]:
    """Reads the first worksheet of an .xlsx file; the first row holds the headers."""
    try:
        workbook = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise RosterImportError(f"The uploaded file is not a readable .xlsx workbook: {e}") from e

    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header_row = next(rows, None)
        if header_row is None:
            return []
        headers = [str(h).strip() if h is not None else "" for h in header_row]
        records = (dict(zip(headers, values)) for values in rows)
        return students_from_rows(records)
    finally:
        workbook.close()
