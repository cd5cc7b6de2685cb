import asyncio
import logging
from typing import List, Optional

from ..config.config import settings
from ..config.default_roster import DEFAULT_STUDENTS
from ..db.cache_client import CacheClient
from ..models.domain_models import AttendanceRecord, CamelModel, Student
from ..modules.sheet_client import RemoteStoreError, SheetClient
from .reconciler import StudentSyncPolicy, merge_attendance, reconcile_students

logger = logging.getLogger(__name__)


class SyncSummary(CamelModel):
    students: int
    attendance: int


def default_students() -> List[Student]:
    return [Student.model_validate(raw) for raw in DEFAULT_STUDENTS]


class SyncService:
    """
    Pulls the remote snapshot, reconciles it with the local cache and stores
    the result. When the endpoint cannot be read, the cached data is returned
    unchanged and nothing is raised.
    """

    def __init__(self, cache_client: CacheClient, sheet_client: SheetClient, policy: Optional[StudentSyncPolicy] = None):
        self.cache_client = cache_client
        self.sheet_client = sheet_client
        self.policy = StudentSyncPolicy(policy or settings.STUDENT_SYNC_POLICY)

    async def get_students(self) -> List[Student]:
        try:
            remote = await self.sheet_client.fetch_students()
        except RemoteStoreError as e:
            logger.warning(f"Could not read students from the remote store, using local roster: {e}")
            return await self.cached_students()

        # Read after the fetch so roster edits made while it was in flight are kept.
        local = await self.cached_students()
        if not remote:
            return local

        merged = reconcile_students(remote, local, self.policy)
        await self.cache_client.save_students(merged)
        logger.info(f"Student roster synced ({self.policy.value}): {len(merged)} students.")
        return merged

    async def get_attendance(self) -> List[AttendanceRecord]:
        try:
            remote = await self.sheet_client.fetch_attendance()
        except RemoteStoreError as e:
            logger.warning(f"Could not read attendance from the remote store, using local cache: {e}")
            return await self.cached_attendance()

        # Read after the fetch so records written while it was in flight are kept.
        local = await self.cached_attendance()
        merged = merge_attendance(remote, local)
        await self.cache_client.save_attendance(merged)
        logger.info(f"Attendance synced: {len(remote)} remote, {len(merged)} after merge.")
        return merged

    async def sync_all(self) -> SyncSummary:
        students, records = await asyncio.gather(self.get_students(), self.get_attendance())
        return SyncSummary(students=len(students), attendance=len(records))

    # ===== Cache-only reads (no network) =====

    async def cached_students(self) -> List[Student]:
        cached = await self.cache_client.load_students()
        return cached if cached is not None else default_students()

    async def cached_attendance(self) -> List[AttendanceRecord]:
        return await self.cache_client.load_attendance() or []
