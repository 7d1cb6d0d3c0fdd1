# file: airproxy/config.py

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _number(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logging.warning(f"Ignoring invalid value for {name}: {raw!r}, using {default}")
        return default


@dataclass(frozen=True)
class Settings:
    iqair_api_key: Optional[str] = None
    aqicn_api_key: Optional[str] = None
    openweather_api_key: Optional[str] = None
    cache_ttl_seconds: float = 300.0
    pacing_delay_seconds: float = 0.2
    request_timeout_seconds: float = 10.0
    refresh_minutes: int = 0
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001


def load_settings() -> Settings:
    """Read settings from the environment (and .env). Missing API keys disable that provider."""
    cors = os.getenv("CORS_ORIGINS")
    origins = [o.strip() for o in cors.split(",") if o.strip()] if cors else ["*"]
    return Settings(
        iqair_api_key = _optional("IQAIR_API_KEY"),
        aqicn_api_key = _optional("AQICN_API_KEY"),
        openweather_api_key = _optional("OPENWEATHER_API_KEY"),
        cache_ttl_seconds = _number("AQ_CACHE_TTL_SECONDS", 300.0),
        pacing_delay_seconds = _number("AQ_PACING_DELAY_MS", 200.0) / 1000.0,
        request_timeout_seconds = _number("AQ_REQUEST_TIMEOUT_SECONDS", 10.0),
        refresh_minutes = int(_number("AQ_REFRESH_MINUTES", 0)),
        cors_origins = origins,
        log_level = os.getenv("LOG_LEVEL", "INFO").upper(),
        host = os.getenv("HOST", "0.0.0.0"),
        port = int(_number("PORT", 3001)),
    )
