"""Canonical platform names for streaming-service ids and TMDB provider ids.

Both sources are mapped into the same name space, so an offer reported as
``"hbo"`` by the streaming-options API and as provider ``1899`` by TMDB ends up
under one platform ("Max") and merges as one offer.
"""
from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

logger = logging.getLogger(__name__)

SERVICE_NAMES: Mapping[str, str] = MappingProxyType({
    "netflix": "Netflix",
    "prime": "Amazon Prime",
    "primevideo": "Amazon Prime",
    "amazon": "Amazon Prime",
    "disney": "Disney+",
    "disneyplus": "Disney+",
    "hbo": "Max",
    "hbomax": "Max",
    "max": "Max",
    "apple": "Apple TV+",
    "appletv": "Apple TV+",
    "paramount": "Paramount+",
    "paramountplus": "Paramount+",
    "peacock": "Peacock",
    "hulu": "Hulu",
    "mubi": "MUBI",
    "stan": "Stan",
    "now": "NOW",
    "crave": "Crave",
    "all4": "Channel 4",
    "iplayer": "BBC iPlayer",
    "britbox": "BritBox",
    "hotstar": "Disney+ Hotstar",
    "zee5": "Zee5",
    "curiosity": "CuriosityStream",
    "wow": "WOW",
    "canal": "Canal+",
    "canalplus": "Canal+",
    "mycanal": "Canal+",
    "ocs": "OCS",
    "starz": "Starz",
    "mgmplus": "MGM+",
    "francetv": "France TV",
    "arte": "Arte",
    "crunchyroll": "Crunchyroll",
    "adn": "ADN",
    "skyshowtime": "SkyShowtime",
    "rakuten": "Rakuten TV",
})

PROVIDER_NAMES: Mapping[int, str] = MappingProxyType({
    8: "Netflix",
    9: "Amazon Prime",
    10: "Amazon Prime",
    119: "Amazon Prime",
    337: "Disney+",
    2: "Apple TV+",
    350: "Apple TV+",
    531: "Paramount+",
    1770: "Paramount+",
    1899: "Max",
    384: "Max",
    # Canal+ family
    381: "Canal+",
    929: "Canal+",
    1754: "Canal+ Cinéma",
    345: "Canal+ Séries",
    334: "OCS",
    56: "OCS",
    # French platforms
    236: "France TV",
    59: "Arte",
    1870: "ADN",
    1960: "Crunchyroll",
    283: "Crunchyroll",
    192: "YouTube",
    3: "Google Play",
    15: "Hulu",
    386: "Peacock",
    387: "Peacock",
    582: "Pass Warner",
    1967: "SkyShowtime",
    230: "Crave",
    # rent/buy storefronts
    68: "Microsoft Store",
    35: "Rakuten TV",
})

# Addon channels worth keeping, checked in order against the addon label.
ADDON_PLATFORMS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), name)
    for pattern, name in (
        (r"canal", "Canal+"),
        (r"paramount", "Paramount+"),
        (r"starz", "Starz"),
        (r"mgm", "MGM+"),
        (r"\bocs\b", "OCS"),
        (r"crave", "Crave"),
        (r"lionsgate", "Lionsgate+"),
        (r"pass\s*warner", "Pass Warner"),
        (r"hbo|\bmax\b", "Max"),
    )
)

_NON_ALNUM = re.compile(r"[^0-9a-z]+")


def _title_case(value: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in value.split())


def _fold(key: str) -> str:
    return _NON_ALNUM.sub("", key.lower())


class PlatformNormalizer:
    def __init__(
        self,
        service_names: Mapping[str, str] = SERVICE_NAMES,
        provider_names: Mapping[int, str] = PROVIDER_NAMES,
    ) -> None:
        self.service_names = MappingProxyType(dict(service_names))
        self.provider_names = MappingProxyType(dict(provider_names))
        # canonical names resolve to themselves
        canonical = {_fold(v): v for v in (*self.service_names.values(), *self.provider_names.values())}
        self._folded = MappingProxyType({**canonical, **{_fold(k): v for k, v in self.service_names.items()}})

    def normalize(self, raw_key: str | int | None, raw_name: str | None = None) -> str:
        """Resolve a service id or provider id to its canonical platform name.

        Order: exact key, case-insensitive key or canonical name, the source's
        own name matched against known names then title-cased, the raw key
        title-cased.
        """
        if isinstance(raw_key, int) and not isinstance(raw_key, bool):
            hit = self.provider_names.get(raw_key)
            if hit:
                return hit
            key = str(raw_key)
        else:
            key = str(raw_key or "").strip()
            hit = self.service_names.get(key)
            if hit:
                return hit
            if key.isdigit():
                hit = self.provider_names.get(int(key))
                if hit:
                    return hit
        if key:
            hit = self._folded.get(_fold(key))
            if hit:
                return hit
        name = (raw_name or "").strip()
        if name:
            hit = self._folded.get(_fold(name))
            if hit:
                return hit
            return _title_case(name)
        if key:
            return _title_case(key)
        return "Unknown"

    @staticmethod
    def addon_platform(addon_label: str | None) -> str | None:
        """Canonical platform for an allow-listed addon label, or None to drop it."""
        if not addon_label:
            return None
        for pattern, name in ADDON_PLATFORMS:
            if pattern.search(addon_label):
                return name
        return None


def _parse_overrides(raw: str | None) -> dict[int, str]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("PLATFORM_PROVIDER_MAP is not valid JSON; ignoring")
        return {}
    out: dict[int, str] = {}
    for k, v in (data.items() if isinstance(data, dict) else []):
        try:
            out[int(k)] = str(v)
        except (TypeError, ValueError):
            logger.warning("ignoring provider override %r", k)
    return out


@lru_cache(maxsize=1)
def default_normalizer() -> PlatformNormalizer:
    from apps.api.app.settings import settings

    overrides = _parse_overrides(settings.platform_provider_map)
    if not overrides:
        return PlatformNormalizer()
    return PlatformNormalizer(provider_names={**PROVIDER_NAMES, **overrides})


def normalize_platform(raw_key: str | int | None, raw_name: str | None = None) -> str:
    return default_normalizer().normalize(raw_key, raw_name)


def addon_platform(addon_label: str | None) -> str | None:
    return PlatformNormalizer.addon_platform(addon_label)
