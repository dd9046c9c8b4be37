from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from moodfeed.schemas.news import NewsArticle
from moodfeed.schemas.weather import CurrentWeather, ForecastDay, Location, MoodCategory, TemperatureUnit


class AppState(BaseModel):
    """Everything the presentation layer renders. Replaced, never mutated."""

    model_config = ConfigDict(frozen=True)

    # Weather data
    weather: CurrentWeather | None = None
    forecast: list[ForecastDay] = Field(default_factory=list)
    weather_loading: bool = False
    weather_error: str | None = None

    # News data
    news: list[NewsArticle] = Field(default_factory=list)
    news_loading: bool = False
    news_error: str | None = None

    # Settings
    temperature_unit: TemperatureUnit = TemperatureUnit.METRIC
    selected_news_categories: list[str] = Field(default_factory=list)

    # Location
    location: Location | None = None
    location_error: str | None = None


class StateResponse(BaseModel):
    state: AppState
    mood: MoodCategory | None = None
    generated_at: datetime


class TemperatureUnitUpdate(BaseModel):
    unit: TemperatureUnit


class NewsCategoriesUpdate(BaseModel):
    categories: list[str] = Field(default_factory=list, max_length=20)
