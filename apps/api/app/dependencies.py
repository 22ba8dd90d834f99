from __future__ import annotations

from functools import lru_cache

from services.availability.adapters.tmdb import TitleDetailsAdapter
from services.availability.orchestrator import AvailabilityService
from services.availability.store import AvailabilityStore

from .db import get_engine, init_db
from .settings import settings


@lru_cache(maxsize=1)
def get_store() -> AvailabilityStore:
    init_db()
    return AvailabilityStore(get_engine(), freshness_days=settings.cache_days)


# One service per process so the in-flight refresh map is shared by all requests
@lru_cache(maxsize=1)
def get_availability_service() -> AvailabilityService:
    return AvailabilityService(get_store())


@lru_cache(maxsize=1)
def get_details_adapter() -> TitleDetailsAdapter:
    return TitleDetailsAdapter()
