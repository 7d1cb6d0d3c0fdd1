import asyncio
import threading
import schedule
import logging
from typing import Callable, Optional

from airproxy.aggregator import AirQualityAggregator
from airproxy.errors import NoProviderConfigured


def make_refresh_job(aggregator: AirQualityAggregator, loop: asyncio.AbstractEventLoop) -> Callable[[], Optional[int]]:
    """Job that runs a bulk fetch on `loop` and blocks until it finishes.

    The coroutine runs on the server's loop, so the cache is only ever touched from there.
    """

    def job() :
        future = asyncio.run_coroutine_threadsafe(aggregator.get_all(), loop)
        try :
            records = future.result()
        except NoProviderConfigured :
            logging.warning("Scheduled refresh skipped: no AQI API key configured")
            return None
        except Exception as e :
            logging.error(f"Scheduled refresh failed: {e}")
            return None
        logging.info(f"Scheduled refresh cached {len(records)} cities")
        return len(records)

    return job


def run_schedule(aggregator: AirQualityAggregator, loop: asyncio.AbstractEventLoop,
                 interval_minutes: int) -> threading.Event:
    """Refresh the air quality cache every `interval_minutes` in a background thread.

    Set the returned event to stop the thread.
    """
    stop = threading.Event()
    scheduler = schedule.Scheduler()
    scheduler.every(interval_minutes).minutes.do(make_refresh_job(aggregator, loop))

    def run_continuously() :
        while not stop.is_set() :
            scheduler.run_pending()
            stop.wait(1)

    thread = threading.Thread(target = run_continuously, daemon = True)
    thread.start()
    logging.info(f"Scheduler started in background thread (every {interval_minutes} min)")
    return stop
