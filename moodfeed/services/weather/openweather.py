from __future__ import annotations

import asyncio
import logging
import math
from datetime import date, datetime, timedelta, timezone as dt_timezone
from typing import Any, Callable

import httpx
from pydantic import ValidationError

from moodfeed.core.config import Settings
from moodfeed.core.errors import MalformedResponseError
from moodfeed.core.http import get_json
from moodfeed.schemas.weather import (
    CurrentWeather,
    ForecastDay,
    MoodCategory,
    TemperatureUnit,
    WeatherBundle,
)


logger = logging.getLogger(__name__)

PROVIDER = "Weather"
FORECAST_DAYS = 5


def classify_mood(temperature: float, *, cold_below: float = 10, hot_above: float = 25) -> MoodCategory:
    """Map a temperature onto a mood bucket.

    The thresholds are compared against the number as given, in whatever unit
    system it was fetched in.
    """
    if temperature < cold_below:
        return MoodCategory.COLD
    if temperature > hot_above:
        return MoodCategory.HOT
    return MoodCategory.COOL


def _utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


def _round_half_up(value: float) -> int:
    # halves round up: 12.5 -> 13, where round() gives 12
    return int(math.floor(value + 0.5))


def _parse_current(data: dict[str, Any]) -> CurrentWeather:
    try:
        main = data["main"]
        weather = data["weather"][0]
        return CurrentWeather(
            temperature=_round_half_up(float(main["temp"])),
            condition=weather["main"],
            description=weather["description"],
            humidity=int(main["humidity"]),
            wind_speed=float(data["wind"]["speed"]),
            icon=weather["icon"],
            city=data["name"],
            country=data["sys"]["country"],
        )
    except (KeyError, IndexError, TypeError, ValueError, ValidationError) as exc:
        raise MalformedResponseError(
            f"Weather response missing field: {exc}", provider=PROVIDER
        ) from exc


def _group_forecast(data: dict[str, Any], today: date, tz: dt_timezone) -> list[ForecastDay]:
    try:
        samples = data["list"]
        days: dict[date, dict[str, Any]] = {}
        for item in samples:
            day = datetime.fromtimestamp(int(item["dt"]), tz=tz).date()
            weather = item["weather"][0]
            bucket = days.get(day)
            if bucket is None:
                # First sample of the day decides condition, description and icon.
                bucket = days[day] = {
                    "temperatures": [],
                    "condition": weather["main"],
                    "description": weather["description"],
                    "icon": weather["icon"],
                }
            bucket["temperatures"].append(float(item["main"]["temp"]))

        upcoming = sorted(day for day in days if day > today)
        forecast = [
            ForecastDay(
                date=day,
                temperature=_round_half_up(max(days[day]["temperatures"])),
                condition=days[day]["condition"],
                description=days[day]["description"],
                icon=days[day]["icon"],
            )
            for day in upcoming[:FORECAST_DAYS]
        ]
    except (KeyError, IndexError, TypeError, ValueError, ValidationError) as exc:
        raise MalformedResponseError(
            f"Forecast response missing field: {exc}", provider=PROVIDER
        ) from exc

    if len(upcoming) < FORECAST_DAYS:
        logger.info("Forecast covers only %d day(s) after %s", len(upcoming), today)
    return forecast


class WeatherClient:
    """OpenWeather current conditions and 5 day / 3 hour forecast."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._client = client
        self._settings = settings
        self._clock = clock

    def _params(self, lat: float, lon: float, units: TemperatureUnit | str) -> dict[str, Any]:
        return {
            "lat": lat,
            "lon": lon,
            "appid": self._settings.openweather_api_key,
            "units": TemperatureUnit(units).value,
        }

    async def get_current_weather(
        self, lat: float, lon: float, units: TemperatureUnit | str = TemperatureUnit.METRIC
    ) -> CurrentWeather:
        data = await get_json(
            self._client,
            provider=PROVIDER,
            url=f"{self._settings.openweather_base_url}/weather",
            params=self._params(lat, lon, units),
        )
        if not isinstance(data, dict):
            raise MalformedResponseError("Weather response is not an object", provider=PROVIDER)
        return _parse_current(data)

    async def get_forecast(
        self, lat: float, lon: float, units: TemperatureUnit | str = TemperatureUnit.METRIC
    ) -> list[ForecastDay]:
        data = await get_json(
            self._client,
            provider=PROVIDER,
            url=f"{self._settings.openweather_base_url}/forecast",
            params=self._params(lat, lon, units),
        )
        if not isinstance(data, dict):
            raise MalformedResponseError("Forecast response is not an object", provider=PROVIDER)

        # Calendar days follow the forecast city's clock, UTC when the offset is missing.
        try:
            offset = (data.get("city") or {}).get("timezone") or 0
            tz = dt_timezone(timedelta(seconds=int(offset)))
        except (AttributeError, TypeError, ValueError) as exc:
            raise MalformedResponseError(
                f"Forecast response has invalid timezone: {exc}", provider=PROVIDER
            ) from exc
        today = self._clock().astimezone(tz).date()
        return _group_forecast(data, today, tz)

    async def get_weather_by_location(
        self, lat: float, lon: float, units: TemperatureUnit | str = TemperatureUnit.METRIC
    ) -> WeatherBundle:
        current, forecast = await asyncio.gather(
            self.get_current_weather(lat, lon, units),
            self.get_forecast(lat, lon, units),
        )
        return WeatherBundle(current=current, forecast=forecast)

    def classify_mood(self, temperature: float) -> MoodCategory:
        return classify_mood(
            temperature,
            cold_below=self._settings.mood_cold_below,
            hot_above=self._settings.mood_hot_above,
        )
