from __future__ import annotations

import asyncio
import logging

from apps.api.app.metrics import JOB_FAILURE, JOB_SUCCESS
from apps.api.app.settings import settings

from .orchestrator import AvailabilityService
from .store import AvailabilityStore

logger = logging.getLogger("jobs.refresh_stale")


def _counted(jobname: str):
    def deco(fn):
        def wrapper(*args, **kwargs):
            try:
                res = fn(*args, **kwargs)
            except Exception:
                JOB_FAILURE.labels(job=jobname).inc()
                raise
            JOB_SUCCESS.labels(job=jobname).inc()
            return res
        return wrapper
    return deco


def _default_service() -> AvailabilityService:
    from apps.api.app.db import get_engine, init_db

    init_db()
    return AvailabilityService(AvailabilityStore(get_engine(), freshness_days=settings.cache_days))


async def refresh_stale(service: AvailabilityService, limit: int | None = None, dry_run: bool = True) -> dict:
    """Refresh the stalest cached groups, oldest first.

    With dry_run only the selected groups are reported.
    """
    lim = int(limit or settings.stale_refresh_limit)
    groups = service.store.stale_groups(limit=lim)
    sample = [{"title_id": t, "media_type": m.value} for t, m in groups[:10]]
    if dry_run:
        return {"count": len(groups), "groups_sample": sample, "dry_run": True}
    rows = 0
    for title_id, media_type in groups:
        records, _ = await service.refresh(title_id, media_type)
        rows += len(records)
    logger.info("stale refresh complete: groups=%s rows=%s", len(groups), rows)
    return {"count": len(groups), "rows": rows, "groups_sample": sample, "dry_run": False}


@_counted("refresh_stale")
def job_refresh_stale(limit: int | None = None, dry_run: bool = False) -> dict:
    """Entry point for RQ and the scheduler; owns its own event loop."""
    return asyncio.run(refresh_stale(_default_service(), limit=limit, dry_run=dry_run))
