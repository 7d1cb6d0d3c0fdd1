# file: airproxy/weather.py

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

import aiohttp
from pydantic import ValidationError

from airproxy.errors import NoProviderConfigured, UpstreamError
from airproxy.models import City, UvData, WeatherData, WeatherSummary
from airproxy.providers import DEFAULT_TIMEOUT_SECONDS
from airproxy.utils import get_current_time, round1

T = TypeVar("T")

OPENWEATHER_URL = "https://api.openweathermap.org"


class WeatherClient:
    """OpenWeather current conditions and UV index. Single provider: no fallback, no cache."""

    name = "openweather"

    def __init__(self, session: aiohttp.ClientSession, api_key: Optional[str],
                 base_url: str = OPENWEATHER_URL, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self.session = session
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def _get(self, path: str, params: Dict[str, str]) -> Dict[str, Any]:
        if not self.api_key:
            raise NoProviderConfigured("weather")
        params = {**params, "appid": self.api_key}
        try:
            async with self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout) as response:
                if response.status != 200:
                    raise UpstreamError(self.name, status=response.status, message="unexpected HTTP status")
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    raise UpstreamError(self.name, status=response.status, message="response is not JSON")
        except asyncio.TimeoutError:
            raise UpstreamError(self.name, message="request timed out")
        except aiohttp.ClientError as e:
            raise UpstreamError(self.name, message=type(e).__name__)
        if not isinstance(body, dict):
            raise UpstreamError(self.name, message="malformed body")
        return body

    async def _current(self, city: City) -> Dict[str, Any]:
        return await self._get("/data/2.5/weather", {"lat": str(city.lat), "lon": str(city.lon), "units": "metric"})

    def _parse(self, build: Callable[[], T]) -> T:
        # A body that does not fit the models is an upstream failure, not a server bug.
        try:
            return build()
        except (AttributeError, IndexError, KeyError, TypeError, ValueError, ValidationError) as e:
            raise UpstreamError(self.name, message=f"malformed body ({type(e).__name__})")

    async def fetch_weather(self, city: City) -> WeatherData:
        body = await self._current(city)

        def build() -> WeatherData:
            main = body["main"]
            wind = (body.get("wind") or {}).get("speed")
            conditions = (body.get("weather") or [{}])[0] or {}
            return WeatherData(
                city_id = city.id,
                temperature = round1(main["temp"]),
                humidity = main.get("humidity"),
                wind = round1(wind) if wind is not None else None,
                pressure = main.get("pressure"),
                description = conditions.get("description"),
                icon = conditions.get("icon"),
                timestamp = get_current_time(),
            )

        return self._parse(build)

    async def fetch_uv(self, city: City) -> UvData:
        body = await self._get("/data/2.5/onecall", {
            "lat": str(city.lat),
            "lon": str(city.lon),
            "exclude": "minutely,hourly,daily,alerts",
        })
        return self._parse(lambda: UvData(city_id = city.id, uv = round1(body["current"]["uvi"]),
                                          timestamp = get_current_time()))

    async def _summary(self, city: City) -> Optional[WeatherSummary]:
        try:
            body = await self._current(city)

            def build() -> WeatherSummary:
                main = body["main"]
                wind = (body.get("wind") or {}).get("speed")
                return WeatherSummary(
                    city_id = city.id,
                    temperature = round1(main["temp"]),
                    humidity = main.get("humidity"),
                    wind = round1(wind) if wind is not None else None,
                    pressure = main.get("pressure"),
                )

            return self._parse(build)
        except UpstreamError as e:
            logging.warning(f"Skipping weather for {city.id}: {e}")
            return None

    async def fetch_all(self, cities: Iterable[City]) -> List[WeatherSummary]:
        """Current weather for every city, concurrently. Cities that fail are left out."""
        if not self.api_key:
            raise NoProviderConfigured("weather")
        results = await asyncio.gather(*(self._summary(city) for city in cities))
        return [r for r in results if r is not None]
