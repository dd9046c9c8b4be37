from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from moodfeed.api.v1.router import api_v1_router
from moodfeed.core.config import Settings, get_settings
from moodfeed.core.errors import MoodFeedError
from moodfeed.core.http import create_http_client, set_http_client
from moodfeed.core.logging import configure_logging
from moodfeed.schemas.state import AppState
from moodfeed.services.location import create_location_provider
from moodfeed.services.news.newsapi import NewsClient
from moodfeed.services.state.actions import Action
from moodfeed.services.state.orchestrator import AppOrchestrator
from moodfeed.services.weather.openweather import WeatherClient


logger = logging.getLogger(__name__)


def _log_transition(state: AppState, action: Action) -> None:
    logger.debug(
        "%s -> weather_loading=%s news_loading=%s news=%d",
        action.type,
        state.weather_loading,
        state.news_loading,
        len(state.news),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    # Setup HTTP client
    client = create_http_client(settings)
    set_http_client(client)

    orchestrator = AppOrchestrator(
        settings=settings,
        weather_client=WeatherClient(client, settings),
        news_client=NewsClient(client, settings),
        location_provider=create_location_provider(settings, client),
    )
    unsubscribe = orchestrator.subscribe(_log_transition)
    app.state.orchestrator = orchestrator
    orchestrator.start()

    try:
        yield
    finally:
        unsubscribe()
        await orchestrator.close()
        set_http_client(None)
        await client.aclose()


async def _provider_error_handler(request: Request, exc: MoodFeedError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": str(exc)})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="moodfeed api",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_exception_handler(MoodFeedError, _provider_error_handler)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(api_v1_router, prefix="/api/v1")
    return app


app = create_app()
