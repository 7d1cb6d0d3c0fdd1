# file: airproxy/main.py

import asyncio
import logging
import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import List, Optional

from airproxy.aggregator import AirQualityAggregator, PacingPolicy, ProviderAttempt
from airproxy.cache import AirQualityCache
from airproxy.cities import CITIES
from airproxy.config import Settings, load_settings
from airproxy.errors import NoProviderAvailable, NoProviderConfigured, UnknownCity, UpstreamError
from airproxy.models import AirQualityRecord, City, ErrorResponse, UvData, WeatherData, WeatherSummary
from airproxy.providers import AqicnClient, IQAirClient, create_session
from airproxy.scheduler import run_schedule
from airproxy.utils import get_current_time
from airproxy.weather import WeatherClient

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

ERROR_RESPONSES = {404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def build_aggregator(settings: Settings, session) -> AirQualityAggregator:
    """Primary (IQAir) first, then secondary (AQICN). A provider without a key is skipped."""
    timeout = settings.request_timeout_seconds
    return AirQualityAggregator(
        cache = AirQualityCache(ttl_seconds = settings.cache_ttl_seconds),
        attempts = [
            ProviderAttempt("primary", IQAirClient(session, timeout_seconds = timeout), settings.iqair_api_key),
            ProviderAttempt("secondary", AqicnClient(session, timeout_seconds = timeout), settings.aqicn_api_key),
        ],
        cities = CITIES,
        pacing = PacingPolicy(settings.pacing_delay_seconds),
    )


def create_app(settings: Optional[Settings] = None,
               aggregator: Optional[AirQualityAggregator] = None,
               weather: Optional[WeatherClient] = None) -> FastAPI:
    """Build the API. Passing `aggregator`/`weather` skips creating the real upstream clients."""
    settings = settings or load_settings()
    logging.getLogger().setLevel(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) :
        """Open the shared upstream session and wire the aggregator on startup."""
        session = None
        if aggregator is None or weather is None:
            session = create_session()
        app.state.aggregator = aggregator or build_aggregator(settings, session)
        app.state.weather = weather or WeatherClient(session, settings.openweather_api_key,
                                                     timeout_seconds = settings.request_timeout_seconds)
        if not app.state.aggregator.configured:
            logging.warning("No AQI API key configured (IQAIR_API_KEY / AQICN_API_KEY); air quality routes will fail")

        stop_scheduler = None
        if settings.refresh_minutes > 0:
            stop_scheduler = run_schedule(app.state.aggregator, asyncio.get_running_loop(), settings.refresh_minutes)
        try:
            yield
        finally:
            if stop_scheduler is not None:
                stop_scheduler.set()
            if session is not None:
                await session.close()

    app = FastAPI(
        title = "Air Quality Proxy",
        description = "Aggregates air quality and weather readings for the dashboard's cities.",
        version = "0.2",
        lifespan = lifespan
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins = settings.cors_origins,
        allow_methods = ["GET"],
        allow_headers = ["*"],
    )
    register_error_handlers(app)
    add_routes(app)
    return app


def register_error_handlers(app: FastAPI) -> None:
    # Terminal errors map to {"error": ...} without upstream text.
    @app.exception_handler(UnknownCity)
    async def unknown_city(request: Request, exc: UnknownCity) :
        return JSONResponse(status_code=404, content={"error": "City not found"})

    @app.exception_handler(NoProviderConfigured)
    async def not_configured(request: Request, exc: NoProviderConfigured) :
        logging.error(f"{request.url.path}: {exc}")
        message = "No AQI API key configured" if exc.what == "air quality" else f"No {exc.what} API key configured"
        return JSONResponse(status_code=500, content={"error": message})

    @app.exception_handler(NoProviderAvailable)
    async def not_available(request: Request, exc: NoProviderAvailable) :
        logging.error(f"{request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "No AQI provider available"})

    @app.exception_handler(UpstreamError)
    async def upstream_failed(request: Request, exc: UpstreamError) :
        logging.error(f"{request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch upstream data"})


def get_aggregator(request: Request) -> AirQualityAggregator:
    return request.app.state.aggregator


def get_weather(request: Request) -> WeatherClient:
    return request.app.state.weather


def get_configured_weather(request: Request) -> WeatherClient:
    """Weather client, checked for a key before the city is looked up."""
    weather = request.app.state.weather
    if not weather.api_key:
        raise NoProviderConfigured("weather")
    return weather


def get_registered_city(city_id: str) -> City:
    city = CITIES.get(city_id)
    if city is None:
        raise UnknownCity(city_id)
    return city


def add_routes(app: FastAPI) -> None:
    @app.get("/api/health")
    async def health():
        return {"status": "ok", "timestamp": get_current_time()}

    @app.get("/api/air-quality", response_model=List[AirQualityRecord],
             response_model_exclude_none=True, responses=ERROR_RESPONSES)
    async def all_air_quality(request: Request, aggregator: AirQualityAggregator = Depends(get_aggregator)):
        """Air quality for every city, in registry order. Cities with no reading are omitted."""
        return await aggregator.get_all(should_stop = request.is_disconnected)

    @app.get("/api/air-quality/{city_id}", response_model=AirQualityRecord,
             response_model_exclude_none=True, responses=ERROR_RESPONSES)
    async def city_air_quality(city_id: str, aggregator: AirQualityAggregator = Depends(get_aggregator)):
        """Air quality for one city, served from cache when fresh."""
        return await aggregator.get_city(city_id)

    @app.get("/api/weather", response_model=List[WeatherSummary],
             response_model_exclude_none=True, responses=ERROR_RESPONSES)
    async def all_weather(weather: WeatherClient = Depends(get_weather)):
        return await weather.fetch_all(CITIES.values())

    @app.get("/api/weather/{city_id}", response_model=WeatherData,
             response_model_exclude_none=True, responses=ERROR_RESPONSES)
    async def city_weather(weather: WeatherClient = Depends(get_configured_weather), city: City = Depends(get_registered_city)):
        return await weather.fetch_weather(city)

    @app.get("/api/weather/{city_id}/uv", response_model=UvData, responses=ERROR_RESPONSES)
    async def city_uv(weather: WeatherClient = Depends(get_configured_weather), city: City = Depends(get_registered_city)):
        return await weather.fetch_uv(city)


app = create_app()

if __name__ == "__main__" :
    settings = load_settings()
    uvicorn.run(app, host = settings.host, port = settings.port, log_level = settings.log_level.lower())
