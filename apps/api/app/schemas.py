from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel

from services.availability.types import AvailabilityRecord, MediaInfo


class AvailabilityOut(BaseModel):
    tmdb_id: int
    media_type: str
    platform: str
    country_code: str
    country_name: str
    streaming_type: str
    addon_name: Optional[str] = None
    season_number: Optional[int] = None
    has_french_audio: bool
    has_french_subtitles: bool
    streaming_url: Optional[str] = None
    quality: str
    source: Optional[str] = None

    @classmethod
    def from_record(cls, rec: AvailabilityRecord) -> "AvailabilityOut":
        return cls(
            tmdb_id=rec.title_id,
            media_type=rec.media_type.value,
            platform=rec.platform,
            country_code=rec.country_code,
            country_name=rec.country_name,
            streaming_type=rec.access_type.value,
            addon_name=rec.addon_label or None,
            season_number=rec.season_number,
            has_french_audio=rec.has_french_audio,
            has_french_subtitles=rec.has_french_subtitles,
            streaming_url=rec.streaming_url,
            quality=rec.quality,
            source=rec.source,
        )


class MediaOut(BaseModel):
    media_type: str
    title: Optional[str] = None
    original_title: Optional[str] = None
    year: Optional[int] = None
    poster: Optional[str] = None
    backdrop: Optional[str] = None
    vote_average: Optional[float] = None
    overview: Optional[str] = None
    number_of_seasons: Optional[int] = None

    @classmethod
    def from_info(cls, info: MediaInfo) -> "MediaOut":
        return cls(
            media_type=info.media_type.value,
            title=info.title,
            original_title=info.original_title,
            year=info.year,
            poster=info.poster,
            backdrop=info.backdrop,
            vote_average=info.vote_average,
            overview=info.overview,
            number_of_seasons=info.number_of_seasons,
        )


class AvailabilityResponse(BaseModel):
    availabilities: List[AvailabilityOut]
    media: Optional[MediaOut] = None
    cached: bool
    sources: List[str]


class CountryOut(BaseModel):
    country_code: str
    country_name: str


class CountriesResponse(BaseModel):
    countries: List[CountryOut]


class ClearedResponse(BaseModel):
    deleted: int
    message: str
