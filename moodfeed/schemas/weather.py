from __future__ import annotations

from datetime import date as dt_date, datetime
from enum import Enum

from pydantic import BaseModel, Field


class TemperatureUnit(str, Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


class MoodCategory(str, Enum):
    COLD = "cold"
    COOL = "cool"
    HOT = "hot"


class Location(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class CurrentWeather(BaseModel):
    temperature: int = Field(..., description="Rounded temperature in the requested unit system.")
    condition: str = Field(..., description="Short condition group, e.g. Rain.")
    description: str
    humidity: int = Field(..., description="Relative humidity (%).")
    wind_speed: float = Field(..., description="m/s for metric, mph for imperial.")
    icon: str
    city: str
    country: str


class ForecastDay(BaseModel):
    date: dt_date
    temperature: int = Field(..., description="Daily maximum, rounded.")
    condition: str
    description: str
    icon: str


class WeatherBundle(BaseModel):
    current: CurrentWeather
    forecast: list[ForecastDay] = Field(default_factory=list)


class WeatherResponse(WeatherBundle):
    location: Location
    units: TemperatureUnit
    mood: MoodCategory
    generated_at: datetime
