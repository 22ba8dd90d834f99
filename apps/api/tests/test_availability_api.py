import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from apps.api.app import models  # noqa: F401
from apps.api.app.dependencies import get_availability_service, get_details_adapter, get_store
from apps.api.app.main import app
from apps.api.app.settings import settings
from services.availability.adapters.streaming_options import StreamingOptionsAdapter
from services.availability.adapters.tmdb import TitleDetailsAdapter, WatchProviderAdapter
from services.availability.orchestrator import AvailabilityService
from services.availability.store import AvailabilityStore
from services.availability.types import MediaInfo, MediaType


STREAMING = {
    "streamingOptions": {
        "fr": [{
            "service": {"id": "canal", "name": "MyCanal"},
            "type": "subscription",
            "link": "https://www.canalplus.com/cinema/inception/h/27205",
            "audios": [{"language": "eng"}],
        }],
        "de": [{
            "service": {"id": "netflix", "name": "Netflix"},
            "type": "addon",
            "addon": {"name": "Paramount Plus Addon"},
            "audios": [{"language": "fra"}],
        }],
    }
}
PROVIDERS = {"BE": {"flatrate": [{"provider_id": 8, "provider_name": "Netflix"}]}}


class FakeStreaming(StreamingOptionsAdapter):
    async def fetch(self, title_id, media_type):
        return STREAMING


class FakeProviders(WatchProviderAdapter):
    async def fetch(self, title_id, media_type):
        return PROVIDERS


class FakeDetails(TitleDetailsAdapter):
    def __init__(self, info=None):
        super().__init__(api_key="test")
        self.info = info

    async def fetch(self, title_id, media_type):
        return self.info


@pytest.fixture(autouse=True)
def _dev_settings(monkeypatch):
    monkeypatch.setattr(settings, "environment", "dev")
    monkeypatch.setattr(settings, "admin_token", None)
    monkeypatch.setattr(settings, "enable_debug_endpoints", False)


@pytest.fixture
def store():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield AvailabilityStore(engine)
    engine.dispose()


@pytest.fixture
def client(store):
    service = AvailabilityService(
        store,
        FakeStreaming(api_key="test", promote_addons=True),
        FakeProviders(api_key="test"),
    )
    info = MediaInfo(
        media_type=MediaType.movie, title="Inception", original_title="Inception", year=2010,
        poster=None, backdrop=None, vote_average=8.4, overview=None,
    )
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_availability_service] = lambda: service
    app.dependency_overrides[get_details_adapter] = lambda: FakeDetails(info)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_media_availability(client):
    r = client.get("/api/media/movie/27205/availability")
    assert r.status_code == 200
    body = r.json()
    assert body["cached"] is False
    assert body["sources"] == ["streaming-availability", "tmdb-watch-providers"]
    assert body["media"]["title"] == "Inception"
    assert [(a["country_code"], a["platform"]) for a in body["availabilities"]] == [
        ("FR", "Canal+"), ("BE", "Netflix"), ("DE", "Paramount+"),
    ]
    canal = body["availabilities"][0]
    assert canal["tmdb_id"] == 27205
    assert canal["streaming_type"] == "subscription"
    assert canal["addon_name"] is None
    assert canal["has_french_audio"] is True
    assert canal["has_french_subtitles"] is False
    assert canal["country_name"] == "France"

    again = client.get("/api/media/movie/27205/availability").json()
    assert again["cached"] is True
    assert again["sources"] == ["cache"]


def test_country_filter_and_refresh(client):
    client.get("/api/media/movie/27205/availability")
    r = client.get("/api/media/movie/27205/availability", params={"countries": "de, be", "refresh": "true"})
    body = r.json()
    assert body["cached"] is False
    assert [a["country_code"] for a in body["availabilities"]] == ["BE", "DE"]


def test_unknown_media_type_is_400(client):
    r = client.get("/api/media/anime/27205/availability")
    assert r.status_code == 400
    assert "Invalid media type" in r.json()["detail"]


def test_missing_metadata_gives_null_media(client):
    app.dependency_overrides[get_details_adapter] = lambda: FakeDetails(None)
    body = client.get("/api/media/tv/1399/availability").json()
    assert body["media"] is None


def test_legacy_movie_route_redirects(client):
    r = client.get("/api/movie/27205/availability", follow_redirects=False)
    assert r.status_code == 308
    assert r.headers["location"] == "/api/media/movie/27205/availability"


def test_countries(client):
    assert client.get("/api/countries").json() == {"countries": []}
    client.get("/api/media/movie/27205/availability")
    codes = [c["country_code"] for c in client.get("/api/countries").json()["countries"]]
    assert codes == ["FR", "BE", "DE"]


def test_clear_cache(client):
    client.get("/api/media/movie/27205/availability")
    r = client.delete("/api/cache/27205", params={"media_type": "movie"})
    assert r.json() == {"deleted": 3, "message": "Cleared 3 cached entries for TMDB ID 27205"}
    assert client.delete("/api/cache").json()["deleted"] == 0
    assert client.delete("/api/cache/27205", params={"media_type": "anime"}).status_code == 400


def test_admin_token(client, monkeypatch):
    monkeypatch.setattr(settings, "admin_token", "s3cret")
    assert client.delete("/api/cache").status_code == 401
    assert client.delete("/api/cache", headers={"X-Admin-Token": "wrong"}).status_code == 401
    assert client.delete("/api/cache", headers={"X-Admin-Token": "s3cret"}).status_code == 200


def test_admin_closed_in_prod_without_token(client, monkeypatch):
    monkeypatch.setattr(settings, "environment", "prod")
    assert client.delete("/api/cache").status_code == 403


def test_refresh_stale_dry_run(client):
    r = client.post("/api/admin/jobs/refresh-stale", params={"limit": 5})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["queued"] is False
    assert body["dry_run"] is True
    assert body["count"] == 0


def test_debug_endpoints_hidden_by_default(client):
    assert client.get("/api/debug/movie/27205").status_code == 404
    assert client.get("/api/debug/duplicates/27205").status_code == 404


def test_debug_endpoints(client, monkeypatch):
    monkeypatch.setattr(settings, "enable_debug_endpoints", True)
    raw = client.get("/api/debug/movie/27205").json()
    assert raw["tmdb_id"] == 27205
    assert raw["streaming_availability"]["countries_count"] == 2
    assert raw["tmdb_watch_providers"]["countries_count"] == 1

    client.get("/api/media/movie/27205/availability")
    dup = client.get("/api/debug/duplicates/27205").json()
    assert dup["total_entries"] == 3
    assert dup["duplicates_found"] == 0


def test_metrics_and_request_id(client):
    client.get("/api/media/movie/27205/availability", headers={"X-Request-ID": "req-123"})
    r = client.get("/api/countries", headers={"X-Request-ID": "req-123"})
    assert r.headers["X-Request-ID"] == "req-123"
    text = client.get("/metrics").text
    assert "availability_cache_misses_total" in text
    assert "availability_records_merged_total" in text
    assert "build_info" in text


def test_healthz_and_readyz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert "db" in r.json()["checks"]
    assert client.get("/readyz").json()["status"] in ("ok", "degraded")
