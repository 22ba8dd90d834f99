from __future__ import annotations


class AvailabilityError(Exception):
    """Base class for availability pipeline errors."""


class InvalidMediaType(AvailabilityError, ValueError):
    def __init__(self, value: object):
        super().__init__(f'Invalid media type {value!r}. Must be "movie" or "tv"')
        self.value = value


class UpstreamError(AvailabilityError):
    """An upstream source kept failing after retries."""


class CacheWriteError(AvailabilityError):
    """replace_all was rolled back; the group keeps its previous rows."""
