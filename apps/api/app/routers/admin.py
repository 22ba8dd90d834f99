from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from redis.exceptions import RedisError

from services.availability.errors import InvalidMediaType
from services.availability.jobs import refresh_stale
from services.availability.orchestrator import AvailabilityService
from services.availability.store import AvailabilityStore
from services.availability.types import MediaType

from ..dependencies import get_availability_service, get_store
from ..queue import get_queue
from ..schemas import ClearedResponse
from .utils import require_admin

router = APIRouter(prefix="/api", tags=["admin"])
logger = logging.getLogger(__name__)


@router.delete("/cache", response_model=ClearedResponse)
def clear_all_cache(
    store: AvailabilityStore = Depends(get_store),
    x_admin_token: str | None = Header(default=None),
):
    require_admin(x_admin_token)
    n = store.clear_all()
    logger.info("cache cleared", extra={"deleted": n})
    return ClearedResponse(deleted=n, message=f"Cleared {n} cached entries")


@router.delete("/cache/{title_id}", response_model=ClearedResponse)
def clear_title_cache(
    title_id: int,
    media_type: str | None = Query(default=None),
    store: AvailabilityStore = Depends(get_store),
    x_admin_token: str | None = Header(default=None),
):
    require_admin(x_admin_token)
    try:
        mt = MediaType.parse(media_type) if media_type else None
    except InvalidMediaType as e:
        raise HTTPException(status_code=400, detail=str(e))
    n = store.clear_group(title_id, mt)
    logger.info("title cache cleared", extra={"title_id": title_id, "deleted": n})
    return ClearedResponse(deleted=n, message=f"Cleared {n} cached entries for TMDB ID {title_id}")


@router.post("/admin/jobs/refresh-stale")
async def trigger_refresh_stale(
    limit: int | None = Query(default=None, ge=1, le=1000),
    dry_run: bool = Query(default=True),
    service: AvailabilityService = Depends(get_availability_service),
    x_admin_token: str | None = Header(default=None),
):
    """Refresh the stalest cached titles. Queued on RQ when Redis is available."""
    require_admin(x_admin_token)
    q = get_queue()
    if q is not None and not dry_run:
        try:
            job = q.enqueue("services.availability.tasks.refresh_stale", kwargs={"limit": limit, "dry_run": False})
            return {"ok": True, "queued": True, "job_id": job.id}
        except RedisError as e:
            logger.warning("enqueue failed, running inline", extra={"error": str(e)})
    # Fallback: run in-process on the shared service
    res = await refresh_stale(service, limit=limit, dry_run=dry_run)
    return {"ok": True, "queued": False, **res}
