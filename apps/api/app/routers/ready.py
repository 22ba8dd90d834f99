from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel
from datetime import datetime, timezone

from .health import run_checks


router = APIRouter()


class Ready(BaseModel):
    status: str
    time_utc: str
    checks: dict


@router.get("/readyz", response_model=Ready)
async def readyz():
    checks = run_checks()
    overall = "ok" if checks["db"].get("ok") else "degraded"
    return Ready(status=overall, time_utc=datetime.now(timezone.utc).isoformat(), checks=checks)
