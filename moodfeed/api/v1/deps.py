from __future__ import annotations

from fastapi import Depends, Request

from moodfeed.core.config import Settings, get_settings
from moodfeed.core.http import get_http_client
from moodfeed.services.news.newsapi import NewsClient
from moodfeed.services.state.orchestrator import AppOrchestrator
from moodfeed.services.weather.openweather import WeatherClient


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_weather_client(settings: Settings = Depends(get_app_settings)) -> WeatherClient:
    return WeatherClient(get_http_client(), settings)


def get_news_client(settings: Settings = Depends(get_app_settings)) -> NewsClient:
    return NewsClient(get_http_client(), settings)


def get_orchestrator(request: Request) -> AppOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise RuntimeError("Orchestrator not initialized. Did you start the FastAPI app?")
    return orchestrator
