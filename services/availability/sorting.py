from __future__ import annotations

import unicodedata
from typing import Iterable, Protocol, TypeVar

from .countries import priority_rank


class _HasCountry(Protocol):
    country_code: str
    country_name: str


T = TypeVar("T", bound=_HasCountry)


def french_collation_key(s: str) -> tuple[str, str]:
    """Accent-insensitive first pass ("Émirats" sorts with "E"), raw text breaks ties."""
    decomposed = unicodedata.normalize("NFKD", s or "")
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return base.casefold(), s or ""


def _sort_key(item: _HasCountry) -> tuple:
    rank = priority_rank(item.country_code)
    if rank is not None:
        return (0, rank, ("", ""))
    return (1, 0, french_collation_key(item.country_name))


def sort_records(records: Iterable[T]) -> list[T]:
    """Priority countries first in declared order, then the rest by French name.

    Stable: records of the same country keep their incoming order.
    """
    return sorted(records, key=_sort_key)
