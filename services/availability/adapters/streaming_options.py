from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

import httpx

from apps.api.app.metrics import ADAPTER_ERRORS
from apps.api.app.settings import settings

from ..countries import country_name, is_french_speaking, normalize_country_code
from ..errors import UpstreamError
from ..platforms import addon_platform, normalize_platform
from ..types import AccessType, AvailabilityRecord, MediaType
from .util import with_backoff

logger = logging.getLogger(__name__)

FRENCH_LANGUAGE_CODES = frozenset({"fra", "fr", "fre", "french"})


def _language_tags(entry: Any) -> list[str]:
    # Sources disagree on whether the tag sits at `language` or `locale.language`
    if not isinstance(entry, Mapping):
        return []
    tags = []
    if entry.get("language"):
        tags.append(str(entry["language"]).lower())
    locale = entry.get("locale")
    if isinstance(locale, Mapping) and locale.get("language"):
        tags.append(str(locale["language"]).lower())
    return tags


def has_french(entries: Any) -> bool:
    if not isinstance(entries, list):
        return False
    return any(tag in FRENCH_LANGUAGE_CODES for e in entries for tag in _language_tags(e))


def _access_type(raw: Any) -> AccessType:
    try:
        return AccessType(str(raw).lower()) if raw else AccessType.subscription
    except ValueError:
        return AccessType.subscription


def _season_numbers(option: Mapping[str, Any], media_type: MediaType) -> list[int | None]:
    seasons = option.get("seasons")
    if media_type is not MediaType.tv or not isinstance(seasons, list) or not seasons:
        return [None]
    out: list[int | None] = []
    for s in seasons:
        if isinstance(s, Mapping):
            s = s.get("seasonNumber", s.get("number"))
        try:
            n = int(s)
        except (TypeError, ValueError):
            continue
        if n not in out:
            out.append(n)
    return out or [None]


class StreamingOptionsAdapter:
    """Per-country offers from the RapidAPI streaming availability service."""

    name = "streaming-availability"

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        host: str | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        backoff: float | None = None,
        promote_addons: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.streaming_api_base_url
        self.api_key = api_key if api_key is not None else settings.rapidapi_key
        self.host = host or settings.rapidapi_host
        self.timeout = timeout if timeout is not None else settings.adapter_timeout_seconds
        self.retries = retries if retries is not None else settings.adapter_retries
        self.backoff = backoff if backoff is not None else settings.adapter_backoff_seconds
        self.promote_addons = settings.promote_addons if promote_addons is None else promote_addons
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {"X-RapidAPI-Key": self.api_key or "", "X-RapidAPI-Host": self.host}

    async def fetch(self, title_id: int, media_type: MediaType) -> dict | None:
        params = {"output_language": "fr"}
        if media_type is MediaType.tv:
            params["series_granularity"] = "show"
        path = f"/shows/{media_type.value}/{title_id}"
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, headers=self._headers(), timeout=self.timeout, transport=self._transport
            ) as client:
                r = await with_backoff(
                    lambda: client.get(path, params=params), retries=self.retries, base_delay=self.backoff
                )
            if r.status_code == 404:
                logger.info("streaming options not found", extra={"title_id": title_id, "media_type": media_type.value})
                return None
            r.raise_for_status()
            data = r.json()
            if not isinstance(data, dict):
                raise ValueError("unexpected payload shape")
        except (UpstreamError, httpx.HTTPError, ValueError) as e:
            ADAPTER_ERRORS.labels(adapter=self.name).inc()
            logger.warning(
                "streaming options fetch failed",
                extra={"title_id": title_id, "media_type": media_type.value, "error": str(e)},
            )
            return None
        logger.info(
            "streaming options fetched",
            extra={"title_id": title_id, "countries": len(data.get("streamingOptions") or {})},
        )
        return data

    def to_records(self, payload: dict | None, title_id: int, media_type: MediaType) -> List[AvailabilityRecord]:
        if not payload or not isinstance(payload.get("streamingOptions"), Mapping):
            return []
        out: List[AvailabilityRecord] = []
        for raw_country, options in payload["streamingOptions"].items():
            country = normalize_country_code(raw_country)
            french_speaking = is_french_speaking(country)
            if not isinstance(options, list):
                continue
            for option in options:
                if not isinstance(option, Mapping) or not isinstance(option.get("service"), Mapping):
                    continue
                service = option["service"]
                platform = normalize_platform(service.get("id"), service.get("name"))
                access = _access_type(option.get("type"))
                addon_label = ""

                if access is AccessType.addon:
                    addon = option.get("addon")
                    label = addon.get("name") if isinstance(addon, Mapping) else None
                    mapped = addon_platform(label)
                    if mapped is None:
                        continue
                    platform = mapped
                    if self.promote_addons:
                        access = AccessType.subscription
                    else:
                        addon_label = str(label)

                french_audio = has_french(option.get("audios"))
                french_subs = has_french(option.get("subtitles"))
                if french_speaking:
                    french_audio = True
                elif not (french_audio or french_subs):
                    continue

                for season in _season_numbers(option, media_type):
                    out.append(AvailabilityRecord(
                        title_id=title_id,
                        media_type=media_type,
                        platform=platform,
                        country_code=country,
                        country_name=country_name(country),
                        access_type=access,
                        addon_label=addon_label,
                        season_number=season,
                        has_french_audio=french_audio,
                        has_french_subtitles=french_subs,
                        streaming_url=option.get("link") or None,
                        quality=str(option.get("quality") or "hd").lower(),
                        source=self.name,
                    ))
        return out
