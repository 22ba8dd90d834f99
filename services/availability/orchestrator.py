from __future__ import annotations

import asyncio
import functools
import logging
import time
from typing import Any, Awaitable, Iterable

from apps.api.app.metrics import ADAPTER_ERRORS, CACHE_HITS, CACHE_MISSES, INFLIGHT_JOINS, RECORDS_MERGED, REFRESH_LATENCY_MS
from apps.api.app.settings import settings

from .adapters.streaming_options import StreamingOptionsAdapter
from .adapters.tmdb import WatchProviderAdapter
from .countries import normalize_country_code
from .errors import CacheWriteError
from .merge import merge
from .sorting import sort_records
from .store import AvailabilityStore
from .types import AvailabilityRecord, AvailabilityResult, MediaType

logger = logging.getLogger(__name__)

GroupKey = tuple[int, MediaType]


def _filter_countries(records: list[AvailabilityRecord], countries: Iterable[str] | None) -> list[AvailabilityRecord]:
    codes = {normalize_country_code(c) for c in countries or [] if c}
    if not codes:
        return records
    return [r for r in records if r.country_code in codes]


class AvailabilityService:
    """Cache-first availability lookup backed by two upstream sources."""

    def __init__(
        self,
        store: AvailabilityStore,
        streaming: StreamingOptionsAdapter | None = None,
        providers: WatchProviderAdapter | None = None,
        *,
        adapter_timeout: float | None = None,
    ):
        self.store = store
        self.streaming = streaming or StreamingOptionsAdapter()
        self.providers = providers or WatchProviderAdapter()
        self.adapter_timeout = adapter_timeout if adapter_timeout is not None else settings.adapter_timeout_seconds
        self._inflight: dict[GroupKey, asyncio.Task] = {}

    async def get_availability(
        self,
        title_id: int,
        media_type: MediaType | str,
        countries: Iterable[str] | None = None,
        force_refresh: bool = False,
    ) -> AvailabilityResult:
        media_type = MediaType.parse(media_type)
        title_id = int(title_id)

        if not force_refresh:
            ts = self.store.get_freshness(title_id, media_type)
            if self.store.is_fresh(ts):
                CACHE_HITS.inc()
                records = self.store.read(title_id, media_type, countries)
                logger.info("availability cache hit", extra={"title_id": title_id, "media_type": media_type.value})
                return AvailabilityResult(availabilities=sort_records(records), cached=True, sources=["cache"])

        CACHE_MISSES.inc()
        records, sources = await self.refresh(title_id, media_type)
        return AvailabilityResult(
            availabilities=sort_records(_filter_countries(records, countries)),
            cached=False,
            sources=sources,
        )

    async def refresh(self, title_id: int, media_type: MediaType) -> tuple[list[AvailabilityRecord], list[str]]:
        """Fetch, merge and persist one group; concurrent callers share a single run."""
        key: GroupKey = (title_id, media_type)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._refresh(title_id, media_type))
            self._inflight[key] = task
            task.add_done_callback(functools.partial(self._forget, key))
        else:
            INFLIGHT_JOINS.inc()
        return await asyncio.shield(task)

    def _forget(self, key: GroupKey, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _bounded(self, name: str, coro: Awaitable[Any], fallback: Any) -> Any:
        try:
            return await asyncio.wait_for(coro, timeout=self.adapter_timeout)
        except asyncio.TimeoutError:
            logger.warning("adapter timed out", extra={"adapter": name, "timeout_s": self.adapter_timeout})
        except Exception:
            logger.exception("adapter crashed", extra={"adapter": name})
        ADAPTER_ERRORS.labels(adapter=name).inc()
        return fallback

    async def fetch_raw(self, title_id: int, media_type: MediaType | str) -> tuple[dict | None, dict]:
        media_type = MediaType.parse(media_type)
        return await asyncio.gather(
            self._bounded(self.streaming.name, self.streaming.fetch(title_id, media_type), None),
            self._bounded(self.providers.name, self.providers.fetch(title_id, media_type), {}),
        )

    def _to_records(self, adapter: Any, payload: Any, title_id: int, media_type: MediaType) -> list[AvailabilityRecord] | None:
        """None when the payload could not be read; the adapter then counts as failed."""
        try:
            return adapter.to_records(payload, title_id, media_type)
        except Exception:
            ADAPTER_ERRORS.labels(adapter=adapter.name).inc()
            logger.exception(
                "malformed payload",
                extra={"adapter": adapter.name, "title_id": title_id, "media_type": media_type.value},
            )
            return None

    async def _refresh(self, title_id: int, media_type: MediaType) -> tuple[list[AvailabilityRecord], list[str]]:
        start = time.perf_counter()
        streaming_payload, provider_payload = await self.fetch_raw(title_id, media_type)

        primary = self._to_records(self.streaming, streaming_payload, title_id, media_type)
        secondary = self._to_records(self.providers, provider_payload, title_id, media_type)
        sources = []
        if streaming_payload and primary is not None:
            sources.append(self.streaming.name)
        if provider_payload and secondary is not None:
            sources.append(self.providers.name)
        primary, secondary = primary or [], secondary or []
        merged = merge(primary, secondary)
        logger.info(
            "merged availabilities",
            extra={
                "title_id": title_id,
                "media_type": media_type.value,
                "primary": len(primary),
                "secondary": len(secondary),
                "merged": len(merged),
            },
        )
        for rec in merged:
            RECORDS_MERGED.labels(source=rec.source or "unknown").inc()

        # Nothing usable from either source: keep whatever the group already holds
        if not sources:
            logger.warning("no source answered, cache left as is", extra={"title_id": title_id, "media_type": media_type.value})
        else:
            try:
                self.store.replace_all(title_id, media_type, merged)
            except CacheWriteError:
                logger.exception("serving uncached availabilities", extra={"title_id": title_id, "media_type": media_type.value})
        REFRESH_LATENCY_MS.observe(1000.0 * (time.perf_counter() - start))
        return merged, sources
