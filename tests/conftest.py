import pytest

from airproxy.aggregator import AirQualityAggregator, PacingPolicy, ProviderAttempt
from airproxy.cache import AirQualityCache
from airproxy.cities import CITIES
from airproxy.errors import UpstreamError


def iqair_payload(aqi=42, mainus="p2", city="Tashkent", ts="2026-10-19T08:00:00.000Z"):
    pollution = {"aqius": aqi, "mainus": mainus, "aqicn": 15, "maincn": "p1"}
    if ts is not None:
        pollution["ts"] = ts
    return {
        "status": "success",
        "data": {
            "city": city,
            "state": "Toshkent Shahri",
            "country": "Uzbekistan",
            "current": {"pollution": pollution, "weather": {"tp": 14, "hu": 52}},
        },
    }


def aqicn_payload(aqi=87, iso="2026-10-19T13:00:00+05:00", station="Tashkent US Embassy"):
    data = {
        "aqi": aqi,
        "idx": 8672,
        "city": {"name": station, "geo": [41.3, 69.27]},
        "dominentpol": "pm25",
        "iaqi": {"pm25": {"v": 87}, "pm10": {"v": 40}, "o3": {"v": 12.3}, "no2": {"v": 9.1}},
    }
    if iso is not None:
        data["time"] = {"s": "2026-10-19 13:00:00", "tz": "+05:00", "iso": iso}
    return {"status": "ok", "data": data}


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeProvider:
    """Stands in for a provider client; fails for any coordinates in `failing`."""

    def __init__(self, name, payload, failing=(), fail_all=False):
        self.name = name
        self.payload = payload
        self.failing = set(failing)
        self.fail_all = fail_all
        self.calls = []

    async def fetch(self, lat, lon, api_key):
        self.calls.append((lat, lon, api_key))
        if self.fail_all or (lat, lon) in self.failing:
            raise UpstreamError(self.name, status=503, message="unexpected HTTP status")
        return self.payload


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def coords(city_id):
    city = CITIES[city_id]
    return (city.lat, city.lon)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return AirQualityCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def primary():
    return FakeProvider("iqair", iqair_payload())


@pytest.fixture
def secondary():
    return FakeProvider("aqicn", aqicn_payload())


@pytest.fixture
def make_aggregator(cache, sleep):
    def _make(primary=None, secondary=None, primary_key="iq-key", secondary_key="cn-key", delay=0.2):
        attempts = []
        if primary is not None:
            attempts.append(ProviderAttempt("primary", primary, primary_key))
        if secondary is not None:
            attempts.append(ProviderAttempt("secondary", secondary, secondary_key))
        return AirQualityAggregator(cache, attempts, pacing=PacingPolicy(delay, sleep=sleep))
    return _make
