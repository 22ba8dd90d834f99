from __future__ import annotations

from typing import Iterable

from .types import AvailabilityRecord, OfferKey


def merge(
    primary: Iterable[AvailabilityRecord],
    secondary: Iterable[AvailabilityRecord],
) -> list[AvailabilityRecord]:
    """Combine two record lists into one, first writer wins per OfferKey.

    `primary` (streaming options, which carries real deep links and per-offer
    language data) is inserted first; `secondary` only fills keys that are still
    missing. Output order is insertion order and carries no meaning yet.
    """
    merged: dict[OfferKey, AvailabilityRecord] = {}
    for rec in primary:
        merged.setdefault(rec.key, rec)
    for rec in secondary:
        merged.setdefault(rec.key, rec)
    return list(merged.values())
