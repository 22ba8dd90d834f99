from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from services.availability.errors import InvalidMediaType
from services.availability.orchestrator import AvailabilityService
from services.availability.store import AvailabilityStore
from services.availability.types import MediaType

from ..dependencies import get_availability_service, get_store
from ..settings import settings

router = APIRouter(prefix="/api/debug", tags=["debug"])


def _require_debug() -> None:
    if not settings.enable_debug_endpoints:
        raise HTTPException(status_code=404, detail="disabled")


@router.get("/duplicates/{title_id}")
def debug_duplicates(title_id: int, store: AvailabilityStore = Depends(get_store)):
    _require_debug()
    return store.find_duplicates(title_id)


@router.get("/{media_type}/{title_id}")
async def debug_sources(
    media_type: str,
    title_id: int,
    service: AvailabilityService = Depends(get_availability_service),
):
    """Raw payloads from both sources, before normalization and merge."""
    _require_debug()
    try:
        mt = MediaType.parse(media_type)
    except InvalidMediaType as e:
        raise HTTPException(status_code=400, detail=str(e))
    streaming, providers = await service.fetch_raw(title_id, mt)
    options = (streaming or {}).get("streamingOptions") or {}
    return {
        "tmdb_id": title_id,
        "media_type": mt.value,
        "streaming_availability": {"countries_count": len(options), "services": options},
        "tmdb_watch_providers": {"countries_count": len(providers), "providers": providers},
    }
