# file: airproxy/aggregator.py

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Mapping, Optional, Sequence

from airproxy.cache import AirQualityCache
from airproxy.cities import CITIES
from airproxy.errors import NoProviderAvailable, NoProviderConfigured, UnknownCity, UpstreamError
from airproxy.models import AirQualityRecord, City, Source
from airproxy.normalizer import normalize
from airproxy.providers import ProviderClient

DEFAULT_PACING_DELAY_SECONDS = 0.2


class PacingPolicy:
    """Wait `delay_seconds` between non-cached upstream fetches in a bulk run."""

    def __init__(self, delay_seconds: float = DEFAULT_PACING_DELAY_SECONDS,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    async def wait(self) -> None:
        if self.delay_seconds > 0:
            await self._sleep(self.delay_seconds)


@dataclass(frozen=True)
class ProviderAttempt:
    """One link of the fallback chain. An attempt without an API key is skipped."""
    source: Source
    client: ProviderClient
    api_key: Optional[str] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class AttemptResult:
    source: Source
    record: Optional[AirQualityRecord] = None
    error: Optional[UpstreamError] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


class AirQualityAggregator:
    """Resolves a city's record from the cache, then each configured provider in order."""

    def __init__(self, cache: AirQualityCache, attempts: Sequence[ProviderAttempt],
                 cities: Mapping[str, City] = CITIES, pacing: Optional[PacingPolicy] = None):
        self.cache = cache
        self.attempts = list(attempts)
        self.cities = cities
        self.pacing = pacing or PacingPolicy()

    @property
    def configured(self) -> bool:
        return any(a.configured for a in self.attempts)

    async def _try(self, attempt: ProviderAttempt, city: City) -> AttemptResult:
        try:
            raw = await attempt.client.fetch(city.lat, city.lon, attempt.api_key)
            record = normalize(attempt.source, raw, city.id)
        except UpstreamError as e:
            logging.error(f"{attempt.client.name} error for {city.id}: {e}")
            return AttemptResult(source = attempt.source, error = e)
        logging.info(f"{attempt.client.name} AQI for {city.id}: {record.aqi} from {record.station}")
        return AttemptResult(source = attempt.source, record = record)

    async def get_city(self, city_id: str) -> AirQualityRecord:
        """Cached record for `city_id`, or a fresh one from the first provider that succeeds."""
        city = self.cities.get(city_id)
        if city is None:
            raise UnknownCity(city_id)

        cached = self.cache.get(city_id)
        if cached is not None:
            return cached

        if not self.configured:
            raise NoProviderConfigured()

        for attempt in self.attempts:
            if not attempt.configured:
                continue
            result = await self._try(attempt, city)
            if result.ok:
                self.cache.put(city_id, result.record)
                return result.record

        raise NoProviderAvailable(city_id)

    async def get_all(self, should_stop: Optional[Callable[[], Awaitable[bool]]] = None) -> List[AirQualityRecord]:
        """Resolve every registered city sequentially, in registry order.

        Cities that cannot be resolved are left out. After each city that was not already
        cached the pacing policy waits, to stay under upstream rate limits. `should_stop` is
        checked before each city so a caller can end the batch early (e.g. client disconnect).
        """
        if not self.configured:
            raise NoProviderConfigured()

        results: List[AirQualityRecord] = []
        fetched = 0
        for city_id in self.cities:
            if should_stop is not None and await should_stop():
                logging.info(f"Bulk air quality fetch stopped early after {len(results)} cities")
                break

            was_cached = self.cache.get(city_id) is not None
            try:
                results.append(await self.get_city(city_id))
            except NoProviderAvailable:
                logging.warning(f"No AQI available for {city_id}, omitting from bulk result")

            if not was_cached:
                fetched += 1
                await self.pacing.wait()

        logging.info(f"Bulk air quality fetch: {len(results)}/{len(self.cities)} cities, {fetched} fetched upstream")
        return results
