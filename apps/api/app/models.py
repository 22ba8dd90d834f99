from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Index, UniqueConstraint
from sqlmodel import SQLModel, Field

from services.availability.types import AccessType, MediaType

# Identity of an offer within a (title_id, media_type) group
OFFER_KEY_COLUMNS = (
    "title_id",
    "media_type",
    "platform",
    "country_code",
    "access_type",
    "addon_label",
    "quality",
    "season_number",
)


def utcnow() -> datetime:
    """Naive UTC, matching what SQLite hands back for DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Availability(SQLModel, table=True):
    __tablename__ = "availabilities"
    __table_args__ = (
        UniqueConstraint(*OFFER_KEY_COLUMNS, name="uq_availability_offer", postgresql_nulls_not_distinct=True),
        Index("ix_availability_title_platform", "title_id", "platform"),
        Index("ix_availability_updated_at", "updated_at"),
    )
    id: Optional[int] = Field(default=None, primary_key=True)
    title_id: int
    media_type: MediaType
    platform: str = Field(max_length=100)
    country_code: str = Field(max_length=10)
    country_name: str = Field(max_length=100)
    access_type: AccessType = AccessType.subscription
    addon_label: str = Field(default="", max_length=100)
    season_number: Optional[int] = None
    has_french_audio: bool = False
    has_french_subtitles: bool = False
    streaming_url: Optional[str] = None
    quality: str = Field(default="hd", max_length=20)
    source: Optional[str] = Field(default=None, max_length=40)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
