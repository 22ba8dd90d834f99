import asyncio
from datetime import timedelta

from sqlalchemy import update
from sqlmodel import Session

from apps.api.app.models import Availability, utcnow
from services.availability.jobs import refresh_stale
from services.availability.types import MediaType


def _age(engine, title_id, days):
    with Session(engine) as s:
        s.exec(update(Availability).where(Availability.title_id == title_id).values(updated_at=utcnow() - timedelta(days=days)))
        s.commit()


def test_dry_run_only_reports(make_service, engine):
    service = make_service()
    asyncio.run(service.get_availability(27205, "movie"))
    _age(engine, 27205, 9)
    res = asyncio.run(refresh_stale(service, limit=10, dry_run=True))
    assert res == {"count": 1, "groups_sample": [{"title_id": 27205, "media_type": "movie"}], "dry_run": True}
    assert service.streaming.calls == 1


def test_refresh_rewrites_stale_groups(make_service, engine):
    service = make_service()
    asyncio.run(service.get_availability(27205, "movie"))
    _age(engine, 27205, 9)
    res = asyncio.run(refresh_stale(service, limit=10, dry_run=False))
    assert res["count"] == 1
    assert res["rows"] == 4
    assert res["dry_run"] is False
    assert service.streaming.calls == 2
    assert service.store.stale_groups() == []
    assert service.store.is_fresh(service.store.get_freshness(27205, MediaType.movie))


def test_nothing_stale(make_service):
    res = asyncio.run(refresh_stale(make_service(), limit=5, dry_run=False))
    assert res["count"] == 0
    assert res["rows"] == 0
