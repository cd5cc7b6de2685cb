import json
import logging
from typing import List, Optional

import redis.asyncio as redis
from pydantic import TypeAdapter, ValidationError

from ..config.config import settings
from ..models.cache_models import AuthSession
from ..models.domain_models import AttendanceRecord, Student

logger = logging.getLogger(__name__)

# Logical keys; the physical key is CACHE_KEY_PREFIX + logical key.
STUDENTS_KEY = "students_cache"
ATTENDANCE_KEY = "attendance_cache"
AUTH_KEY = "auth_session"  # one key per session: auth_session:<session id>

_students_adapter = TypeAdapter(List[Student])
_records_adapter = TypeAdapter(List[AttendanceRecord])


class CacheClient:
    """
    The device-local cache: the last-known-good students and attendance lists
    plus one key per logged-in session, each stored as one JSON string in Redis.

    Malformed content is never fatal; typed loaders log it and report the key
    as absent so callers fall back to their defaults.
    """

    def __init__(self, connection: redis.Redis, prefix: Optional[str] = None):
        self._redis = connection
        self._prefix = settings.CACHE_KEY_PREFIX if prefix is None else prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    # ===== Raw key-value access =====

    async def get(self, key: str) -> Optional[str]:
        return await self._redis.get(self._key(key))

    async def set(self, key: str, raw: str):
        await self._redis.set(self._key(key), raw)

    async def remove(self, key: str) -> int:
        return await self._redis.delete(self._key(key))

    # ===== Students =====

    async def load_students(self) -> Optional[List[Student]]:
        """Cached roster, or None when nothing (usable) is cached."""
        raw = await self.get(STUDENTS_KEY)
        if raw is None:
            return None
        try:
            return _students_adapter.validate_json(raw)
        except ValidationError:
            logger.warning("Cached students are malformed, ignoring them.", exc_info=True)
            return None

    async def save_students(self, students: List[Student]):
        await self.set(STUDENTS_KEY, json.dumps([s.to_wire() for s in students]))

    # ===== Attendance =====

    async def load_attendance(self) -> Optional[List[AttendanceRecord]]:
        """Cached attendance records, or None when nothing (usable) is cached."""
        raw = await self.get(ATTENDANCE_KEY)
        if raw is None:
            return None
        try:
            return _records_adapter.validate_json(raw)
        except ValidationError:
            logger.warning("Cached attendance is malformed, ignoring it.", exc_info=True)
            return None

    async def save_attendance(self, records: List[AttendanceRecord]):
        await self.set(ATTENDANCE_KEY, json.dumps([r.to_wire() for r in records]))

    # ===== Auth Sessions =====

    @staticmethod
    def session_key(session_id) -> str:
        return f"{AUTH_KEY}:{session_id}"

    async def load_session(self, session_id) -> Optional[AuthSession]:
        key = self.session_key(session_id)
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return AuthSession.model_validate_json(raw)
        except ValidationError:
            logger.warning(f"Cached auth session '{session_id}' is malformed, discarding it.")
            await self.remove(key)
            return None

    async def save_session(self, session: AuthSession):
        await self.set(self.session_key(session.session_id), session.model_dump_json(by_alias=True))

    async def clear_session(self, session_id) -> int:
        return await self.remove(self.session_key(session_id))

    # ===== Scan Debounce =====

    async def claim_scan(self, code: str, window_seconds: int) -> bool:
        """
        Marks `code` as just scanned. Returns False if the same code was already
        claimed within the last `window_seconds`.
        """
        if window_seconds <= 0:
            return True
        claimed = await self._redis.set(self._key(f"last_scan:{code}"), "1", nx=True, ex=window_seconds)
        return bool(claimed)
