from io import BytesIO

import pytest
from openpyxl import Workbook

from prayer_attendance.backend.models.domain_models import Gender
from prayer_attendance.backend.modules.roster_import import (
    RosterImportError,
    parse_roster_workbook,
    student_from_row,
    students_from_rows,
)


def _workbook_bytes(rows) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_student_from_row_normalizes_fields():
    student = student_from_row({
        "NIS": 1001.0,
        "Nama Lengkap": "  ahmad fauzi ",
        "Kelas": "IX B",
        "Gender": "perempuan",
        "No WA Ortu": "+62 812-3456-7890",
    })

    assert student.id == "1001"
    assert student.name == "AHMAD FAUZI"
    assert student.class_name == "IX B"
    assert student.gender is Gender.FEMALE
    assert student.parent_phone == "6281234567890"


def test_student_from_row_uses_fallback_headers_and_defaults():
    student = student_from_row({"ID": "2001", "Nama": "Budi"})

    assert student.id == "2001"
    assert student.class_name == "IX A"
    assert student.gender is Gender.MALE
    assert student.parent_phone is None


def test_rows_without_id_or_name_are_skipped():
    students = students_from_rows([
        {"NIS": "1", "Nama": "A"},
        {"NIS": "", "Nama": "B"},
        {"NIS": "3", "Nama": None},
    ])
    assert [s.id for s in students] == ["1"]


def test_parse_roster_workbook_reads_first_sheet():
    content = _workbook_bytes([
        ["NIS", "Nama Lengkap", "Kelas", "Gender", "No WA Ortu"],
        [1001, "Ahmad Fauzi", "IX A", "L", "081234567890"],
        [1002, "Bunga Lestari", "IX A", "P", None],
        [None, None, None, None, None],
    ])

    students = parse_roster_workbook(content)

    assert [(s.id, s.name, s.gender) for s in students] == [
        ("1001", "AHMAD FAUZI", Gender.MALE),
        ("1002", "BUNGA LESTARI", Gender.FEMALE),
    ]


def test_parse_roster_workbook_with_only_headers_is_empty():
    assert parse_roster_workbook(_workbook_bytes([["NIS", "Nama"]])) == []


def test_parse_roster_workbook_rejects_non_xlsx():
    with pytest.raises(RosterImportError):
        parse_roster_workbook(b"NIS,Nama\n1,A\n")
