import logging

import redis.asyncio as redis

from ..db.cache_client import CacheClient
from ..modules.sheet_client import SheetClient
from ..services.sync_service import SyncService

logger = logging.getLogger(__name__)


async def periodic_sync_task(redis_pool: redis.ConnectionPool, sheet_client: SheetClient):
    """
    Refreshes the local cache from the remote store. Runs on the scheduler
    interval and once at startup; an unreachable store leaves the cache as it is.
    """
    logger.info("Running periodic_sync_task...")
    try:
        cache_client = CacheClient(redis.Redis(connection_pool=redis_pool, decode_responses=True))
        summary = await SyncService(cache_client=cache_client, sheet_client=sheet_client).sync_all()
        logger.info(f"Periodic sync finished: {summary.students} students, {summary.attendance} attendance records.")
    except Exception as e:
        logger.error(f"Periodic sync failed: {e}", exc_info=True)
