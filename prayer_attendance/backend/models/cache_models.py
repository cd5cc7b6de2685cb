from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from .domain_models import CamelModel, Role, Student


class AuthSession(CamelModel):
    """
    A signed-in user, stored under its own `auth_session:<session id>` cache key.
    A PARENT session is bound to exactly one student through ``student_data``.
    The session never expires on its own; it lives until logout.
    """
    username: str = Field(..., description="Display name of the signed-in user")
    role: Role
    student_data: Optional[Student] = Field(None, description="Bound student, PARENT sessions only")
    session_id: UUID = Field(..., description="Binds issued tokens to this stored session")
    created_at: datetime
