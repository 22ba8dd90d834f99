from __future__ import annotations
from datetime import datetime, timezone
from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from redis.exceptions import RedisError

import logging
from ..db import get_session, get_redis
from ..settings import settings

router = APIRouter(tags=["health"])


class Health(BaseModel):
    status: str
    time_utc: str
    checks: dict
    version: str | None = None
    sha: str | None = None


def run_checks() -> dict[str, dict]:
    checks: dict[str, dict] = {}

    try:
        with next(get_session()) as s:
            s.exec(text("SELECT COUNT(*) FROM availabilities"))
            checks["db"] = {"ok": True, "sqlite": settings.use_sqlite}
    except SQLAlchemyError as e:
        checks["db"] = {"ok": False, "error": str(e)}

    if settings.disable_redis:
        checks["redis"] = {"ok": True, "disabled": True}
    else:
        try:
            r = get_redis()
            pong = r.ping() if r else False
            checks["redis"] = {"ok": bool(pong)}
        except RedisError as e:
            checks["redis"] = {"ok": False, "error": str(e)}

    checks["sources"] = {
        "ok": True,
        "tmdb_configured": bool(settings.tmdb_api_key),
        "rapidapi_configured": bool(settings.rapidapi_key),
    }
    return checks


@router.get("/healthz", response_model=Health)
async def healthz():
    logger = logging.getLogger(__name__)
    checks = run_checks()
    overall = "ok" if all(x.get("ok") for x in checks.values()) else "degraded"
    resp = Health(status=overall, time_utc=datetime.now(timezone.utc).isoformat(), checks=checks, version=settings.app_version, sha=settings.git_sha)
    if resp.status != "ok":
        logger.warning("healthz degraded", extra={"checks": checks})
    return resp
