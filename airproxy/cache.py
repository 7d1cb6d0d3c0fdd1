# file: airproxy/cache.py

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from airproxy.models import AirQualityRecord

DEFAULT_TTL_SECONDS = 300.0


@dataclass(frozen=True)
class CacheEntry:
    record: AirQualityRecord
    fetched_at: float


class AirQualityCache:
    """Per-city memo of the last successful record.

    Entries expire lazily: a stale entry is only noticed (and dropped) when it is read.
    The key space is bounded by the city registry, so there is no size limit.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, city_id: str) -> Optional[AirQualityRecord]:
        entry = self._entries.get(city_id)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at < self.ttl_seconds:
            logging.debug(f"Cache hit for {city_id}: AQI {entry.record.aqi}")
            return entry.record
        del self._entries[city_id]
        return None

    def put(self, city_id: str, record: AirQualityRecord) -> None:
        self._entries[city_id] = CacheEntry(record = record, fetched_at = self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
