import logging
from fastapi import APIRouter, Depends, Request

from ..models.cache_models import AuthSession
from ..models.domain_models import Role
from ..services.sync_service import SyncService, SyncSummary
from .auth import require_roles
from .dependencies import get_sync_service
from .utilities.limiter import limiter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sync"])


@router.post("/sync", response_model=SyncSummary, summary="Pull the remote store into the local cache now")
@limiter.limit("10/minute")
async def sync_now(
    request: Request,
    session: AuthSession = Depends(require_roles(Role.ADMIN, Role.TEACHER)),
    sync_service: SyncService = Depends(get_sync_service)
):
    """
    Same reconciliation as the periodic job. An unreachable remote store is not
    an error: the counts then describe the unchanged local cache.
    """
    logger.info(f"Manual sync requested by '{session.username}'.")
    return await sync_service.sync_all()
