from __future__ import annotations

from .jobs import job_refresh_stale


def refresh_stale(*, limit: int | None = None, dry_run: bool = False) -> dict:
    return job_refresh_stale(limit=limit, dry_run=dry_run)
