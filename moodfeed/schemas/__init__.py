from __future__ import annotations

from moodfeed.schemas.news import NewsArticle, NewsSource
from moodfeed.schemas.state import AppState
from moodfeed.schemas.weather import CurrentWeather, ForecastDay, Location, MoodCategory, TemperatureUnit

__all__ = [
    "AppState",
    "CurrentWeather",
    "ForecastDay",
    "Location",
    "MoodCategory",
    "NewsArticle",
    "NewsSource",
    "TemperatureUnit",
]
