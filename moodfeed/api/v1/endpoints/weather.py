from datetime import datetime, timezone as dt_timezone

from fastapi import APIRouter, Depends, Query

from moodfeed.api.v1.deps import get_weather_client
from moodfeed.schemas.weather import CurrentWeather, ForecastDay, Location, TemperatureUnit, WeatherResponse
from moodfeed.services.weather.openweather import WeatherClient


router = APIRouter()


@router.get("", response_model=WeatherResponse)
async def weather_by_location(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    units: TemperatureUnit = Query(TemperatureUnit.METRIC),
    weather: WeatherClient = Depends(get_weather_client),
):
    bundle = await weather.get_weather_by_location(lat, lon, units)
    return WeatherResponse(
        current=bundle.current,
        forecast=bundle.forecast,
        location=Location(latitude=lat, longitude=lon),
        units=units,
        mood=weather.classify_mood(bundle.current.temperature),
        generated_at=datetime.now(dt_timezone.utc),
    )


@router.get("/current", response_model=CurrentWeather)
async def current_weather(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    units: TemperatureUnit = Query(TemperatureUnit.METRIC),
    weather: WeatherClient = Depends(get_weather_client),
):
    return await weather.get_current_weather(lat, lon, units)


@router.get("/forecast", response_model=list[ForecastDay])
async def forecast(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    units: TemperatureUnit = Query(TemperatureUnit.METRIC),
    weather: WeatherClient = Depends(get_weather_client),
):
    return await weather.get_forecast(lat, lon, units)
