from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

import httpx

from apps.api.app.metrics import ADAPTER_ERRORS
from apps.api.app.settings import settings

from ..countries import country_name, is_french_speaking, normalize_country_code
from ..errors import UpstreamError
from ..platforms import normalize_platform
from ..types import AccessType, AvailabilityRecord, MediaInfo, MediaType
from .util import with_backoff

logger = logging.getLogger(__name__)

# TMDB list name -> access type; "ads" is ad-supported free viewing
PROVIDER_LISTS: tuple[tuple[str, AccessType], ...] = (
    ("flatrate", AccessType.subscription),
    ("free", AccessType.free),
    ("ads", AccessType.free),
    ("rent", AccessType.rent),
    ("buy", AccessType.buy),
)


class _TmdbAdapter:
    name = "tmdb"

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        language: str | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        backoff: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.tmdb_base_url
        self.api_key = api_key if api_key is not None else settings.tmdb_api_key
        self.language = language or settings.tmdb_language
        self.timeout = timeout if timeout is not None else settings.adapter_timeout_seconds
        self.retries = retries if retries is not None else settings.adapter_retries
        self.backoff = backoff if backoff is not None else settings.adapter_backoff_seconds
        self._transport = transport

    def _params(self) -> Dict[str, str]:
        return {"api_key": self.api_key or "", "language": self.language}

    async def _get_json(self, path: str) -> dict:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
            r = await with_backoff(
                lambda: client.get(path, params=self._params()), retries=self.retries, base_delay=self.backoff
            )
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, dict):
            raise ValueError("unexpected payload shape")
        return data


class WatchProviderAdapter(_TmdbAdapter):
    """Per-country flatrate/rent/buy provider lists from TMDB."""

    name = "tmdb-watch-providers"

    async def fetch(self, title_id: int, media_type: MediaType) -> dict:
        try:
            data = await self._get_json(f"/{media_type.value}/{title_id}/watch/providers")
        except (UpstreamError, httpx.HTTPError, ValueError) as e:
            ADAPTER_ERRORS.labels(adapter=self.name).inc()
            logger.warning(
                "watch providers fetch failed",
                extra={"title_id": title_id, "media_type": media_type.value, "error": str(e)},
            )
            return {}
        results = data.get("results")
        if not isinstance(results, dict):
            return {}
        logger.info("watch providers fetched", extra={"title_id": title_id, "countries": len(results)})
        return results

    def to_records(self, payload: Mapping[str, Any] | None, title_id: int, media_type: MediaType) -> List[AvailabilityRecord]:
        out: List[AvailabilityRecord] = []
        for raw_country, data in (payload or {}).items():
            if not isinstance(data, Mapping):
                continue
            country = normalize_country_code(raw_country)
            # No language metadata here; trust only country membership
            french = is_french_speaking(country)
            for list_name, access in PROVIDER_LISTS:
                providers = data.get(list_name)
                if not isinstance(providers, list):
                    continue
                for provider in providers:
                    if not isinstance(provider, Mapping):
                        continue
                    out.append(AvailabilityRecord(
                        title_id=title_id,
                        media_type=media_type,
                        platform=normalize_platform(provider.get("provider_id"), provider.get("provider_name")),
                        country_code=country,
                        country_name=country_name(country),
                        access_type=access,
                        has_french_audio=french,
                        has_french_subtitles=french,
                        streaming_url=data.get("link") or None,
                        quality="hd",
                        source=self.name,
                    ))
        return out


def _year(date: str | None) -> int | None:
    if not date or len(date) < 4 or not date[:4].isdigit():
        return None
    return int(date[:4])


class TitleDetailsAdapter(_TmdbAdapter):
    """Display metadata for the availability response; not used by the merge."""

    name = "tmdb-details"

    def _image(self, path: str | None, size: str) -> str | None:
        return f"{settings.tmdb_image_base_url}/{size}{path}" if path else None

    async def fetch(self, title_id: int, media_type: MediaType) -> MediaInfo | None:
        try:
            d = await self._get_json(f"/{media_type.value}/{title_id}")
        except (UpstreamError, httpx.HTTPError, ValueError) as e:
            ADAPTER_ERRORS.labels(adapter=self.name).inc()
            logger.warning("title details fetch failed", extra={"title_id": title_id, "error": str(e)})
            return None
        movie = media_type is MediaType.movie
        return MediaInfo(
            media_type=media_type,
            title=d.get("title") if movie else d.get("name"),
            original_title=d.get("original_title") if movie else d.get("original_name"),
            year=_year(d.get("release_date") if movie else d.get("first_air_date")),
            poster=self._image(d.get("poster_path"), "w500"),
            backdrop=self._image(d.get("backdrop_path"), "w1280"),
            vote_average=d.get("vote_average"),
            overview=d.get("overview"),
            number_of_seasons=None if movie else d.get("number_of_seasons"),
        )
