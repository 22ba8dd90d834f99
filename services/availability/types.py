from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import NamedTuple

from .errors import InvalidMediaType


class MediaType(str, enum.Enum):
    movie = "movie"
    tv = "tv"

    @classmethod
    def parse(cls, value: "MediaType | str") -> "MediaType":
        if isinstance(value, MediaType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidMediaType(value) from None


class AccessType(str, enum.Enum):
    subscription = "subscription"
    rent = "rent"
    buy = "buy"
    free = "free"
    addon = "addon"


class OfferKey(NamedTuple):
    """Identity of an offer inside one (title_id, media_type) group."""

    platform: str
    country_code: str
    access_type: AccessType
    addon_label: str
    quality: str
    season_number: int | None


@dataclass
class AvailabilityRecord:
    title_id: int
    media_type: MediaType
    platform: str
    country_code: str
    country_name: str
    access_type: AccessType = AccessType.subscription
    addon_label: str = ""
    season_number: int | None = None
    has_french_audio: bool = False
    has_french_subtitles: bool = False
    streaming_url: str | None = None
    quality: str = "hd"
    source: str | None = None

    @property
    def key(self) -> OfferKey:
        return OfferKey(
            platform=self.platform,
            country_code=self.country_code,
            access_type=self.access_type,
            addon_label=self.addon_label or "",
            quality=self.quality,
            season_number=self.season_number,
        )

    def with_changes(self, **changes) -> "AvailabilityRecord":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "title_id": self.title_id,
            "media_type": self.media_type.value,
            "platform": self.platform,
            "country_code": self.country_code,
            "country_name": self.country_name,
            "access_type": self.access_type.value,
            "addon_label": self.addon_label or None,
            "season_number": self.season_number,
            "has_french_audio": self.has_french_audio,
            "has_french_subtitles": self.has_french_subtitles,
            "streaming_url": self.streaming_url,
            "quality": self.quality,
            "source": self.source,
        }


@dataclass
class AvailabilityResult:
    availabilities: list[AvailabilityRecord]
    cached: bool
    sources: list[str]


@dataclass
class MediaInfo:
    media_type: MediaType
    title: str | None
    original_title: str | None
    year: int | None
    poster: str | None
    backdrop: str | None
    vote_average: float | None
    overview: str | None
    number_of_seasons: int | None = None
