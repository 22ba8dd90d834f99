import asyncio

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from apps.api.app import models  # noqa: F401
from services.availability.adapters.streaming_options import StreamingOptionsAdapter
from services.availability.adapters.tmdb import WatchProviderAdapter
from services.availability.countries import country_name
from services.availability.orchestrator import AvailabilityService
from services.availability.store import AvailabilityStore
from services.availability.types import AccessType, AvailabilityRecord, MediaType


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    return AvailabilityStore(engine, freshness_days=7)


@pytest.fixture
def make_record():
    def _make(country="FR", platform="Netflix", **kw):
        kw.setdefault("title_id", 27205)
        kw.setdefault("media_type", MediaType.movie)
        kw.setdefault("access_type", AccessType.subscription)
        kw.setdefault("country_name", country_name(country))
        return AvailabilityRecord(platform=platform, country_code=country, **kw)
    return _make


class StubStreaming(StreamingOptionsAdapter):
    def __init__(self, payload=None, delay=0.0):
        super().__init__(api_key="test", promote_addons=True)
        self.payload = payload
        self.delay = delay
        self.calls = 0

    async def fetch(self, title_id, media_type):
        self.calls += 1
        await asyncio.sleep(self.delay)
        return self.payload


class StubProviders(WatchProviderAdapter):
    def __init__(self, payload=None, delay=0.0):
        super().__init__(api_key="test")
        self.payload = payload or {}
        self.delay = delay
        self.calls = 0

    async def fetch(self, title_id, media_type):
        self.calls += 1
        await asyncio.sleep(self.delay)
        return self.payload


# Inception (27205): MyCanal in France with English audio only, plus TMDB's view
INCEPTION_STREAMING = {
    "streamingOptions": {
        "fr": [{
            "service": {"id": "canal", "name": "MyCanal"},
            "type": "subscription",
            "link": "https://www.canalplus.com/cinema/inception/h/27205",
            "audios": [{"language": "eng"}],
            "subtitles": [],
            "quality": "hd",
        }],
        "us": [{
            "service": {"id": "max", "name": "Max"},
            "type": "subscription",
            "link": "https://play.max.com/movie/27205",
            "audios": [{"language": "eng"}],
            "subtitles": [{"locale": {"language": "fra"}}],
        }],
    }
}

INCEPTION_PROVIDERS = {
    "FR": {
        "link": "https://www.themoviedb.org/movie/27205/watch?locale=FR",
        "flatrate": [{"provider_id": 381, "provider_name": "Canal+"}],
        "rent": [{"provider_id": 3, "provider_name": "Google Play Movies"}],
    },
    "BE": {"flatrate": [{"provider_id": 8, "provider_name": "Netflix"}]},
}


@pytest.fixture
def make_service(store):
    def _make(streaming=INCEPTION_STREAMING, providers=INCEPTION_PROVIDERS, delay=0.0, adapter_timeout=5.0):
        return AvailabilityService(
            store,
            StubStreaming(streaming, delay=delay),
            StubProviders(providers),
            adapter_timeout=adapter_timeout,
        )
    return _make
