# prayer_attendance/backend/modules/whatsapp.py

import re
from datetime import date
from typing import Optional
from urllib.parse import quote

from ..models.domain_models import AttendanceStatus, Student

_DAY_NAMES = ["Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu"]
_MONTH_NAMES = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]


def normalize_phone(raw: str) -> str:
    """Digits only, with the local 08... prefix turned into the 628... country form."""
    phone = re.sub(r"\D", "", raw or "")
    if phone.startswith("08"):
        phone = "62" + phone[1:]
    return phone


def format_long_date(day: date) -> str:
    """e.g. 'Senin, 15 Januari 2024'."""
    return f"{_DAY_NAMES[day.weekday()]}, {day.day} {_MONTH_NAMES[day.month - 1]} {day.year}"


def build_parent_message(student: Student, status: AttendanceStatus, operator_name: str, day: date) -> str:
    when = format_long_date(day)
    if AttendanceStatus(status) is AttendanceStatus.HAID:
        return (
            f"Assalamualaikum. Diberitahukan bahwa ananda *{student.name}* (Kelas {student.class_name}) "
            f"telah melapor *BERHALANGAN (HAID)* pada hari ini {when}. Terima kasih."
        )
    return (
        f"Assalamualaikum. Diberitahukan bahwa ananda *{student.name}* (Kelas {student.class_name}) "
        f"telah melaksanakan sholat Dhuhur berjamaah di sekolah pada hari ini {when}. "
        f"Petugas: {operator_name}. Terima kasih."
    )


def build_whatsapp_link(student: Student, status: AttendanceStatus, operator_name: str, day: date) -> Optional[str]:
    """Click-to-chat link notifying the guardian, or None when no usable number is on file."""
    if not student.parent_phone:
        return None
    phone = normalize_phone(student.parent_phone)
    if not phone:
        return None
    text = quote(build_parent_message(student, status, operator_name, day))
    return f"https://wa.me/{phone}?text={text}"
