# file: airproxy/normalizer.py

import math
import re
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from airproxy.errors import NormalizationError
from airproxy.models import AirQualityRecord, Source, classify
from airproxy.utils import get_current_time

__all__ = ["classify", "normalize", "normalize_primary", "normalize_secondary"]

POLLUTANTS = ["pm25", "pm10", "o3", "no2", "so2", "co"]
_LEADING_INT = re.compile(r"^\s*\+?(\d+)")


def _dig(obj: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def _parse_aqi(value: Any) -> int:
    """AQI as int. Numeric strings keep their leading integer part; anything else becomes 0."""
    number = _number(value)
    if number is not None:
        return max(0, int(number)) if math.isfinite(number) else 0
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return 0


def _build(provider: str, **fields: Any) -> AirQualityRecord:
    fields["status"] = classify(fields["aqi"])
    try:
        return AirQualityRecord(**fields)
    except ValidationError as e:
        raise NormalizationError(provider, f"{e.error_count()} invalid field(s)") from e


def normalize_primary(raw: Dict[str, Any], city_id: str) -> AirQualityRecord:
    """IQAir nearest_city body -> record.

    IQAir reports no PM2.5 concentration; when PM2.5 is the dominant pollutant ("p2") the
    AQI value itself is copied into pm25, which is what the dashboard has always shown.
    """
    pollution = _dig(raw, "data", "current", "pollution")
    aqi = _number(_dig(pollution, "aqius"))
    if aqi is None or not math.isfinite(aqi):
        raise NormalizationError("iqair", "missing data.current.pollution.aqius")
    aqi = int(aqi)
    ts = _dig(pollution, "ts")

    return _build(
        "iqair",
        city_id = city_id,
        aqi = aqi,
        pm25 = aqi if _dig(pollution, "mainus") == "p2" else None,
        station = _dig(raw, "data", "city"),
        source = "primary",
        timestamp = str(ts) if ts else get_current_time(),
    )


def normalize_secondary(raw: Dict[str, Any], city_id: str) -> AirQualityRecord:
    """AQICN geo feed body -> record."""
    data = _dig(raw, "data")
    if not isinstance(data, dict):
        raise NormalizationError("aqicn", "data is not an object")
    readings = {name: _number(_dig(data, "iaqi", name, "v")) for name in POLLUTANTS}
    iso = _dig(data, "time", "iso")

    return _build(
        "aqicn",
        city_id = city_id,
        aqi = _parse_aqi(data.get("aqi")),
        station = _dig(data, "city", "name"),
        source = "secondary",
        timestamp = str(iso) if iso else get_current_time(),
        **readings,
    )


PROVIDER_NAMES: Dict[str, str] = {"primary": "iqair", "secondary": "aqicn"}

NORMALIZERS: Dict[str, Callable[[Dict[str, Any], str], AirQualityRecord]] = {
    "primary": normalize_primary,
    "secondary": normalize_secondary,
}


def normalize(source: Source, raw: Dict[str, Any], city_id: str) -> AirQualityRecord:
    """Map a provider body to the canonical record. Status always comes from `classify`."""
    if source not in NORMALIZERS:
        raise ValueError(f"No normalizer registered for source {source!r}")
    if not isinstance(raw, dict):
        raise NormalizationError(PROVIDER_NAMES[source], "response body is not an object")
    return NORMALIZERS[source](raw, city_id)
