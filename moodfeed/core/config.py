from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from moodfeed.schemas.weather import MoodCategory, TemperatureUnit


DEFAULT_NEWS_CATEGORIES = [
    "business",
    "entertainment",
    "general",
    "health",
    "science",
    "sports",
    "technology",
]


DEFAULT_MOOD_SEARCH_QUERIES: dict[MoodCategory, list[str]] = {
    # Depressing news keywords
    MoodCategory.COLD: [
        "depression mental health",
        "sad news tragedy",
        "economic crisis",
        "unemployment layoffs",
        "climate change disaster",
        "pandemic deaths",
        "war conflict",
        "poverty hunger",
    ],
    # Fear-related news keywords
    MoodCategory.HOT: [
        "terrorism attack",
        "crime violence",
        "cyber security threat",
        "natural disaster",
        "pandemic fear",
        "economic collapse",
        "war threat",
        "health emergency",
    ],
    # Winning and happiness news keywords
    MoodCategory.COOL: [
        "success achievement",
        "sports victory",
        "technology breakthrough",
        "medical breakthrough",
        "economic growth",
        "innovation discovery",
        "awards recognition",
        "positive development",
    ],
}


DEFAULT_CORS_ORIGINS = [
    "http://localhost:8081",
    "http://127.0.0.1:8081",
]


def _split_list(raw: str) -> list[str]:
    parsed = raw.strip()
    if parsed.startswith("["):
        try:
            return [str(x).strip() for x in json.loads(parsed) if str(x).strip()]
        except Exception:
            pass
    return [s.strip() for s in parsed.split(",") if s.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MOODFEED_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    cors_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    http_timeout_seconds: float = Field(default=10.0, ge=1.0, le=60.0)
    log_level: str = Field(default="INFO")

    # Weather provider (OpenWeather)
    openweather_base_url: str = Field(default="https://api.openweathermap.org/data/2.5")
    openweather_api_key: str = Field(default="")

    # News provider (NewsAPI)
    news_base_url: str = Field(default="https://newsapi.org/v2")
    news_api_key: str = Field(default="")
    news_country: str = Field(default="us", min_length=2, max_length=2)
    news_language: str = Field(default="en", min_length=2, max_length=2)
    news_categories: Annotated[list[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_NEWS_CATEGORIES))

    # Mood-based news
    mood_search_queries: dict[MoodCategory, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_MOOD_SEARCH_QUERIES.items()}
    )
    mood_query_fanout: int = Field(default=3, ge=1, le=8)  # phrases searched per mood
    news_per_query_limit: int | None = Field(default=5, ge=1)
    mood_news_limit: int = Field(default=20, ge=1, le=100)
    news_per_category_limit: int = Field(default=5, ge=1, le=100)
    news_category_concurrency: int = Field(default=2, ge=1, le=10)
    mood_cold_below: float = Field(default=10)
    mood_hot_above: float = Field(default=25)
    default_temperature_unit: TemperatureUnit = Field(default=TemperatureUnit.METRIC)

    # Location
    fallback_latitude: float = Field(default=40.7128, ge=-90, le=90)  # New York
    fallback_longitude: float = Field(default=-74.0060, ge=-180, le=180)
    location_source: Literal["static", "ip"] = Field(default="static")
    device_latitude: float | None = Field(default=None, ge=-90, le=90)
    device_longitude: float | None = Field(default=None, ge=-180, le=180)
    ip_geolocation_url: str = Field(default="https://ipapi.co/json/")
    location_timeout_seconds: float = Field(default=10.0, gt=0, le=60.0)
    location_max_age_seconds: float = Field(default=300.0, ge=0)

    @field_validator("cors_origins", "news_categories", mode="before")
    @classmethod
    def _parse_list(cls, value: Any) -> Any:
        # Allow MOODFEED_CORS_ORIGINS / MOODFEED_NEWS_CATEGORIES as JSON array or comma-separated string.
        if isinstance(value, str):
            return _split_list(value)
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
