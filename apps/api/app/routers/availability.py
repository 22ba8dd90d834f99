from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse

from services.availability.adapters.tmdb import TitleDetailsAdapter
from services.availability.errors import InvalidMediaType
from services.availability.orchestrator import AvailabilityService
from services.availability.store import AvailabilityStore
from services.availability.types import MediaType

from ..dependencies import get_availability_service, get_details_adapter, get_store
from ..schemas import AvailabilityOut, AvailabilityResponse, CountriesResponse, CountryOut, MediaOut

router = APIRouter(prefix="/api", tags=["availability"])


def _parse_countries(raw: str | None) -> list[str] | None:
    if not raw:
        return None
    return [c.strip().upper() for c in raw.split(",") if c.strip()] or None


@router.get("/media/{media_type}/{title_id}/availability", response_model=AvailabilityResponse)
async def get_availability(
    media_type: str,
    title_id: int,
    refresh: bool = Query(default=False),
    countries: str | None = Query(default=None, description="Comma-separated ISO codes, e.g. FR,BE"),
    service: AvailabilityService = Depends(get_availability_service),
    details: TitleDetailsAdapter = Depends(get_details_adapter),
):
    try:
        mt = MediaType.parse(media_type)
    except InvalidMediaType as e:
        raise HTTPException(status_code=400, detail=str(e))

    result, info = await asyncio.gather(
        service.get_availability(title_id, mt, countries=_parse_countries(countries), force_refresh=refresh),
        details.fetch(title_id, mt),
    )
    return AvailabilityResponse(
        availabilities=[AvailabilityOut.from_record(r) for r in result.availabilities],
        media=MediaOut.from_info(info) if info else None,
        cached=result.cached,
        sources=result.sources,
    )


@router.get("/movie/{title_id}/availability")
async def movie_availability_redirect(title_id: int):
    return RedirectResponse(url=f"/api/media/movie/{title_id}/availability", status_code=308)


@router.get("/countries", response_model=CountriesResponse)
def list_countries(store: AvailabilityStore = Depends(get_store)):
    return CountriesResponse(countries=[CountryOut(country_code=c, country_name=n) for c, n in store.list_countries()])
