# prayer_attendance/backend/api/schemas/auth.py
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ...models.cache_models import AuthSession
from ...models.domain_models import CamelModel


class LoginMode(str, Enum):
    STAFF = "STAFF"
    PARENT = "PARENT"


class LoginRequest(CamelModel):
    """
    STAFF logins send `username` and `password`; PARENT logins send the
    `student_id` of their child instead.
    """
    mode: LoginMode = LoginMode.STAFF
    username: Optional[str] = None
    password: Optional[str] = None
    student_id: Optional[str] = None

    @model_validator(mode="after")
    def check_mode_fields(self):
        if self.mode is LoginMode.STAFF and not self.username:
            raise ValueError("Staff login requires a username.")
        if self.mode is LoginMode.PARENT and not self.student_id:
            raise ValueError("Parent login requires a student id.")
        return self


class Token(CamelModel):
    access_token: str
    token_type: str = "bearer"


class LoginResponse(CamelModel):
    token: Token
    session: AuthSession


# Internal representation of JWT data
class TokenData(BaseModel):
    username: Optional[str] = None
    session_id: Optional[str] = Field(None, alias="sid")
