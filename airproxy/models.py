#file: airproxy/models.py

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Literal, Optional

AqiStatus = Literal["good", "moderate", "unhealthy", "poor", "hazardous"]
Source = Literal["primary", "secondary"]

# (upper bound inclusive, status); anything above the last bound is hazardous
AQI_BREAKPOINTS = (
    (50, "good"),
    (100, "moderate"),
    (150, "unhealthy"),
    (200, "poor"),
)


def classify(aqi: int) -> AqiStatus:
    """Map an AQI value to its US EPA style status."""
    for upper, status in AQI_BREAKPOINTS:
        if aqi <= upper:
            return status
    return "hazardous"


class City(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., pattern=r"^[a-z0-9-]+$", description="Lowercase slug, unique in the registry")
    name: str
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class AirQualityRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    city_id: str = Field(..., alias="cityId", description="Registry identifier of the city")
    aqi: int = Field(..., ge=0, description="US EPA Air Quality Index")
    status: AqiStatus = Field(..., description="Derived from aqi, never set independently")
    pm25: Optional[float] = Field(None, ge=0, description="PM2.5 reading")
    pm10: Optional[float] = Field(None, ge=0, description="PM10 reading")
    o3: Optional[float] = Field(None, ge=0, description="O3 reading")
    no2: Optional[float] = Field(None, ge=0, description="NO2 reading")
    so2: Optional[float] = Field(None, ge=0, description="SO2 reading")
    co: Optional[float] = Field(None, ge=0, description="CO reading")
    station: Optional[str] = Field(None, description="Reporting monitoring station")
    source: Source = Field(..., description="Provider that produced the record")
    timestamp: str = Field(..., description="Reading time in ISO format")

    @model_validator(mode="after")
    def _status_matches_aqi(self) -> "AirQualityRecord":
        expected = classify(self.aqi)
        if self.status != expected:
            raise ValueError(f"status {self.status!r} does not match aqi {self.aqi} ({expected!r})")
        return self


class WeatherData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    city_id: str = Field(..., alias="cityId")
    temperature: float = Field(..., description="Air temperature (°C)")
    humidity: Optional[float] = Field(None, ge=0, le=100, description="Relative humidity (%)")
    wind: Optional[float] = Field(None, ge=0, description="Wind speed (m/s)")
    pressure: Optional[float] = Field(None, ge=0, description="Pressure (hPa)")
    description: Optional[str] = None
    icon: Optional[str] = None
    timestamp: str


class WeatherSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    city_id: str = Field(..., alias="cityId")
    temperature: float
    humidity: Optional[float] = None
    wind: Optional[float] = None
    pressure: Optional[float] = None


class UvData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    city_id: str = Field(..., alias="cityId")
    uv: float = Field(..., ge=0, description="UV index")
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
