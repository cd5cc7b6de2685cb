# prayer_attendance/backend/models/domain_models.py

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_DATE_KEY_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _number_to_str(v):
    # Spreadsheet cells holding digits come back as JSON numbers.
    if isinstance(v, bool):
        return v
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    if isinstance(v, int):
        return str(v)
    return v


class CamelModel(BaseModel):
    """
    Base model for everything stored in the cache or sent to the spreadsheet.
    Python attributes are snake_case; the wire format keeps the camelCase names
    the spreadsheet columns use.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    HAID = "HAID"


class Gender(str, Enum):
    MALE = "L"
    FEMALE = "P"


class Role(str, Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    PARENT = "PARENT"


class Student(CamelModel):
    """
    A student on the roster. ``id`` is the national student number (NIS),
    which is also the payload printed in the student's QR code.
    """
    id: str = Field(..., min_length=1, description="NIS, unique per student")
    name: str = Field(..., min_length=1)
    class_name: str = Field(..., description="Free-text class label, e.g. 'IX A'")
    gender: Optional[Gender] = None
    parent_phone: Optional[str] = Field(None, description="Guardian WhatsApp number, loosely validated")

    @field_validator("id", "parent_phone", mode="before")
    @classmethod
    def coerce_spreadsheet_numbers(cls, v):
        return _number_to_str(v)

    @field_validator("parent_phone")
    @classmethod
    def blank_phone_is_absent(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("gender", mode="before")
    @classmethod
    def blank_gender_is_absent(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class AttendanceRecord(CamelModel):
    """
    One attendance mark. Student name and class are a snapshot taken when the
    record was written; they are not re-synced if the student changes later.
    """
    id: str = Field(..., min_length=1)
    student_id: str
    student_name: str
    class_name: str
    date: str = Field(..., description="Local calendar day, YYYY-MM-DD")
    timestamp: int = Field(..., description="Creation instant in epoch milliseconds")
    operator_name: Optional[str] = None
    status: AttendanceStatus = AttendanceStatus.PRESENT

    @field_validator("student_id", mode="before")
    @classmethod
    def coerce_student_id(cls, v):
        return _number_to_str(v)

    @field_validator("date")
    @classmethod
    def check_date_key(cls, v: str) -> str:
        if not _DATE_KEY_REGEX.match(v):
            raise ValueError("date must be in YYYY-MM-DD format")
        return v

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, v):
        if isinstance(v, (float, str)) and not isinstance(v, bool):
            return int(float(v))
        return v

    @field_validator("status", mode="before")
    @classmethod
    def missing_status_is_present(cls, v):
        # Records written before statuses existed carry no status at all.
        if v is None or v == "":
            return AttendanceStatus.PRESENT
        return v
