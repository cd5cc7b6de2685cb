# prayer_attendance/backend/modules/sheet_client.py

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set, Type, TypeVar

import httpx
from pydantic import ValidationError

from ..config.config import settings
from ..models.domain_models import AttendanceRecord, AttendanceStatus, CamelModel, Student

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=CamelModel)


class RemoteStoreError(Exception):
    """Raised when the spreadsheet endpoint could not be read."""
    pass


class SheetClient:
    """
    Client for the spreadsheet-backed web endpoint.

    Every operation goes to one URL; the operation is named by an ``action``
    query parameter (reads) or body field (writes). Reads are awaited and raise
    RemoteStoreError on any failure. Writes are fire-and-forget: the endpoint
    never returns a usable status, so the response is not read and failures
    are only logged.

    The httpx client is injected and owned by the caller (the app lifespan).
    """

    def __init__(self, http_client: httpx.AsyncClient, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self._client = http_client
        self._base_url = settings.SHEET_ENDPOINT_URL if base_url is None else base_url
        self._timeout = settings.REMOTE_TIMEOUT_SECONDS if timeout is None else timeout
        # Strong references keep detached write tasks alive until they finish.
        self._pending: Set[asyncio.Task] = set()

    # ===== Reads =====

    async def fetch_students(self) -> List[Student]:
        return await self._fetch("getStudents", Student)

    async def fetch_attendance(self) -> List[AttendanceRecord]:
        return await self._fetch("getAttendance", AttendanceRecord)

    async def _fetch(self, action: str, model: Type[T]) -> List[T]:
        if not self._base_url:
            raise RemoteStoreError("SHEET_ENDPOINT_URL is not configured.")

        try:
            response = await self._client.get(
                self._base_url,
                params={"action": action},
                timeout=self._timeout,
                follow_redirects=True,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            raise RemoteStoreError(f"'{action}' timed out after {self._timeout}s.") from e
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"'{action}' failed: {e}") from e
        except ValueError as e:
            raise RemoteStoreError(f"'{action}' did not return JSON.") from e

        if not isinstance(payload, list):
            raise RemoteStoreError(f"'{action}' returned {type(payload).__name__}, expected a list.")

        items = []
        for raw in payload:
            try:
                items.append(model.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {model.__name__} from '{action}': {e.error_count()} error(s) in {raw!r}")
        logger.info(f"Fetched {len(items)} {model.__name__} item(s) with '{action}'.")
        return items

    # ===== Fire-and-forget writes =====

    def push_students(self, students: List[Student]) -> asyncio.Task:
        return self._dispatch("saveStudents", [s.to_wire() for s in students])

    def push_attendance(self, record: AttendanceRecord) -> asyncio.Task:
        return self._dispatch("addAttendance", record.to_wire())

    def delete_attendance(self, record_id: str) -> asyncio.Task:
        return self._dispatch("deleteAttendance", {"id": record_id})

    def update_attendance_status(self, record_id: str, status: AttendanceStatus) -> asyncio.Task:
        return self._dispatch("updateAttendance", {"id": record_id, "status": AttendanceStatus(status).value})

    def _dispatch(self, action: str, payload: Any) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._post(action, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _post(self, action: str, payload: Any):
        if not self._base_url:
            logger.warning(f"SHEET_ENDPOINT_URL is not configured; '{action}' kept locally only.")
            return

        body: Dict[str, Any] = {"action": action, "payload": payload}
        try:
            await self._client.post(
                self._base_url,
                json=body,
                timeout=self._timeout,
                follow_redirects=True,
            )
            logger.info(f"Remote write '{action}' sent.")
        except httpx.HTTPError as e:
            # No retry and no queue: the local copy stays, the remote misses this write.
            logger.error(f"Remote write '{action}' failed: {e}")

    async def wait_pending(self):
        """Waits for every in-flight write (used at shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending_count(self) -> int:
        return len(self._pending)
