import asyncio
import threading

import pytest

from airproxy.cities import CITIES
from airproxy.scheduler import make_refresh_job, run_schedule


@pytest.fixture
def server_loop():
    """An event loop running in its own thread, standing in for the server's loop."""
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    yield loop
    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=5)
    loop.close()


def test_refresh_job_warms_cache(server_loop, make_aggregator, primary, cache):
    job = make_refresh_job(make_aggregator(primary, delay=0), server_loop)
    assert job() == len(CITIES)
    assert all(cache.get(city_id) is not None for city_id in CITIES)


def test_refresh_job_without_keys(server_loop, make_aggregator, primary):
    job = make_refresh_job(make_aggregator(primary, primary_key=None), server_loop)
    assert job() is None
    assert primary.calls == []


def test_run_schedule_stops(server_loop, make_aggregator, primary):
    stop = run_schedule(make_aggregator(primary, delay=0), server_loop, interval_minutes=5)
    assert not stop.is_set()
    stop.set()
    assert primary.calls == []
