from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Sequence

from sqlalchemy import delete, func, insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from apps.api.app.models import OFFER_KEY_COLUMNS, Availability, utcnow

from .countries import country_name, normalize_country_code
from .errors import CacheWriteError
from .sorting import sort_records
from .types import AvailabilityRecord, MediaType, OfferKey

logger = logging.getLogger(__name__)

# Columns refreshed when an insert hits an existing offer
_MUTABLE_COLUMNS = ("has_french_audio", "has_french_subtitles", "streaming_url", "source", "updated_at")


def _to_record(row: Availability) -> AvailabilityRecord:
    return AvailabilityRecord(
        title_id=row.title_id,
        media_type=MediaType.parse(row.media_type),
        platform=row.platform,
        country_code=row.country_code,
        country_name=row.country_name,
        access_type=row.access_type,
        addon_label=row.addon_label or "",
        season_number=row.season_number,
        has_french_audio=bool(row.has_french_audio),
        has_french_subtitles=bool(row.has_french_subtitles),
        streaming_url=row.streaming_url,
        quality=row.quality,
        source=row.source,
    )


def _as_naive_utc(ts: datetime) -> datetime:
    if ts.tzinfo is not None:
        return ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


class AvailabilityStore:
    """Seven-day cache of merged availability, one replaceable group per (title_id, media_type)."""

    def __init__(self, engine: Engine, freshness_days: int = 7):
        self.engine = engine
        self.freshness = timedelta(days=freshness_days)

    def get_freshness(self, title_id: int, media_type: MediaType) -> datetime | None:
        with Session(self.engine) as s:
            return s.exec(
                select(func.max(Availability.updated_at)).where(
                    Availability.title_id == title_id, Availability.media_type == media_type
                )
            ).one()

    def is_fresh(self, ts: datetime | None, now: datetime | None = None) -> bool:
        if ts is None:
            return False
        now = _as_naive_utc(now) if now is not None else utcnow()
        return now - _as_naive_utc(ts) < self.freshness

    def read(
        self,
        title_id: int,
        media_type: MediaType,
        countries: Iterable[str] | None = None,
    ) -> list[AvailabilityRecord]:
        stmt = select(Availability).where(
            Availability.title_id == title_id, Availability.media_type == media_type
        ).order_by(Availability.id)
        codes = {normalize_country_code(c) for c in countries or [] if c}
        if codes:
            stmt = stmt.where(Availability.country_code.in_(sorted(codes)))
        with Session(self.engine) as s:
            return [_to_record(row) for row in s.exec(stmt).all()]

    def _upsert(self, values: dict):
        table = Availability.__table__
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as pg_insert
            stmt = pg_insert(table).values(**values)
            return stmt.on_conflict_do_update(
                constraint="uq_availability_offer",
                set_={c: stmt.excluded[c] for c in _MUTABLE_COLUMNS},
            )
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as sqlite_insert
            stmt = sqlite_insert(table).values(**values)
            return stmt.on_conflict_do_update(
                index_elements=[table.c[c] for c in OFFER_KEY_COLUMNS],
                set_={c: stmt.excluded[c] for c in _MUTABLE_COLUMNS},
            )
        return insert(table).values(**values)

    def replace_all(self, title_id: int, media_type: MediaType, records: Sequence[AvailabilityRecord]) -> int:
        """Swap the whole group for `records` in one transaction.

        On any database error the transaction is rolled back, the previous rows
        stay in place and CacheWriteError is raised.
        """
        now = utcnow()
        unique: dict[OfferKey, AvailabilityRecord] = {}
        for rec in records:
            unique.setdefault(rec.key, rec)
        with Session(self.engine) as s:
            try:
                s.exec(delete(Availability).where(
                    Availability.title_id == title_id, Availability.media_type == media_type
                ))
                for rec in unique.values():
                    code = normalize_country_code(rec.country_code)
                    s.exec(self._upsert({
                        "title_id": title_id,
                        "media_type": media_type,
                        "platform": rec.platform,
                        "country_code": code,
                        "country_name": country_name(code),
                        "access_type": rec.access_type,
                        "addon_label": rec.addon_label or "",
                        "season_number": rec.season_number,
                        "has_french_audio": rec.has_french_audio,
                        "has_french_subtitles": rec.has_french_subtitles,
                        "streaming_url": rec.streaming_url,
                        "quality": rec.quality,
                        "source": rec.source,
                        "created_at": now,
                        "updated_at": now,
                    }))
                s.commit()
            except SQLAlchemyError as e:
                s.rollback()
                logger.error(
                    "cache replace failed",
                    extra={"title_id": title_id, "media_type": media_type.value, "error": str(e)},
                )
                raise CacheWriteError(f"replace_all failed for {media_type.value} {title_id}") from e
        logger.info("cached availabilities", extra={"title_id": title_id, "media_type": media_type.value, "count": len(unique)})
        return len(unique)

    def clear_all(self) -> int:
        with Session(self.engine) as s:
            res = s.exec(delete(Availability))
            s.commit()
            return int(res.rowcount or 0)

    def clear_group(self, title_id: int, media_type: MediaType | None = None) -> int:
        stmt = delete(Availability).where(Availability.title_id == title_id)
        if media_type is not None:
            stmt = stmt.where(Availability.media_type == media_type)
        with Session(self.engine) as s:
            res = s.exec(stmt)
            s.commit()
            return int(res.rowcount or 0)

    def list_countries(self) -> list[tuple[str, str]]:
        with Session(self.engine) as s:
            rows = s.exec(select(Availability.country_code, Availability.country_name).distinct()).all()
        return [(r.country_code, r.country_name) for r in sort_records(rows)]

    def stale_groups(self, limit: int = 100, now: datetime | None = None) -> list[tuple[int, MediaType]]:
        """Groups past the freshness window, stalest first."""
        cutoff = (_as_naive_utc(now) if now is not None else utcnow()) - self.freshness
        last = func.max(Availability.updated_at)
        stmt = (
            select(Availability.title_id, Availability.media_type)
            .group_by(Availability.title_id, Availability.media_type)
            .having(last < cutoff)
            .order_by(last.asc())
            .limit(limit)
        )
        with Session(self.engine) as s:
            return [(r[0], MediaType.parse(r[1])) for r in s.exec(stmt).all()]

    def find_duplicates(self, title_id: int) -> dict:
        with Session(self.engine) as s:
            rows = s.exec(
                select(Availability).where(Availability.title_id == title_id).order_by(
                    Availability.country_code, Availability.platform, Availability.access_type, Availability.addon_label
                )
            ).all()
        seen: dict[tuple, AvailabilityRecord] = {}
        duplicates = []
        for row in rows:
            rec = _to_record(row)
            key = (rec.media_type, *rec.key)
            if key in seen:
                duplicates.append({"key": list(rec.key), "first": seen[key].to_dict(), "duplicate": rec.to_dict()})
            else:
                seen[key] = rec
        return {
            "total_entries": len(rows),
            "unique_keys": len(seen),
            "duplicates_found": len(duplicates),
            "duplicates": duplicates,
        }
