#prayer_attendance/backend/api/dependencies.py
from fastapi import Request, Depends
import redis.asyncio as redis

from ..db.cache_client import CacheClient
from ..modules.sheet_client import SheetClient
from ..services.attendance_service import AttendanceService
from ..services.roster_service import RosterService
from ..services.sync_service import SyncService


def get_redis_pool(request: Request) -> redis.ConnectionPool:
    """Redis connection pool created in the app lifespan."""
    return request.app.state.redis_pool


def get_cache_client(redis_pool: redis.ConnectionPool = Depends(get_redis_pool)) -> CacheClient:
    """
    Builds a CacheClient over the shared pool for each request.
    """
    return CacheClient(redis.Redis(connection_pool=redis_pool, decode_responses=True))


def get_sheet_client(request: Request) -> SheetClient:
    """
    The single SheetClient of the process. It is shared rather than built per
    request because it owns the in-flight background writes.
    """
    return request.app.state.sheet_client


def get_sync_service(
    cache_client: CacheClient = Depends(get_cache_client),
    sheet_client: SheetClient = Depends(get_sheet_client)
) -> SyncService:
    return SyncService(cache_client=cache_client, sheet_client=sheet_client)


def get_attendance_service(
    cache_client: CacheClient = Depends(get_cache_client),
    sheet_client: SheetClient = Depends(get_sheet_client)
) -> AttendanceService:
    return AttendanceService(cache_client=cache_client, sheet_client=sheet_client)


def get_roster_service(
    cache_client: CacheClient = Depends(get_cache_client),
    sheet_client: SheetClient = Depends(get_sheet_client)
) -> RosterService:
    return RosterService(cache_client=cache_client, sheet_client=sheet_client)
