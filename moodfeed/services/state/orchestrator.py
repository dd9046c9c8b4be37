from __future__ import annotations

import asyncio
import logging
from typing import Callable, Coroutine

from moodfeed.core.config import Settings
from moodfeed.core.errors import MoodFeedError, PermissionDeniedError
from moodfeed.schemas.news import NewsArticle
from moodfeed.schemas.state import AppState
from moodfeed.schemas.weather import Location, MoodCategory, TemperatureUnit
from moodfeed.services.location import LocationProvider
from moodfeed.services.news.newsapi import NewsClient
from moodfeed.services.state.actions import (
    Action,
    SetLocation,
    SetLocationError,
    SetNewsCategories,
    SetNewsData,
    SetNewsError,
    SetNewsLoading,
    SetTemperatureUnit,
    SetWeatherData,
    SetWeatherError,
    SetWeatherLoading,
    WeatherPayload,
)
from moodfeed.services.state.reducer import reduce
from moodfeed.services.weather.openweather import WeatherClient


logger = logging.getLogger(__name__)

Listener = Callable[[AppState, Action], None]

WEATHER = "weather"
NEWS = "news"


class AppOrchestrator:
    """Single owner of the application state.

    All writes go through :meth:`dispatch`. After every transition the
    orchestrator reacts to what changed:

    * location or temperature unit changed -> fetch weather
    * weather became available -> fetch mood-based news
    * news categories changed while there is no weather -> fetch category news

    Reactions run as tasks on the current event loop. Each fetch family
    carries a request token so a slow response never overwrites a newer one.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        weather_client: WeatherClient,
        news_client: NewsClient,
        location_provider: LocationProvider,
    ):
        self._settings = settings
        self._weather = weather_client
        self._news = news_client
        self._locator = location_provider
        self._state = AppState(temperature_unit=settings.default_temperature_unit)
        self._listeners: list[Listener] = []
        self._tokens: dict[str, int] = {WEATHER: 0, NEWS: 0}
        self._tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def fallback_location(self) -> Location:
        return Location(latitude=self._settings.fallback_latitude, longitude=self._settings.fallback_longitude)

    # Store

    def dispatch(self, action: Action) -> AppState:
        previous = self._state
        self._state = reduce(previous, action)
        logger.debug("dispatch %s", action.type)
        for listener in list(self._listeners):
            try:
                listener(self._state, action)
            except Exception:
                logger.exception("State listener %r failed", listener)
        self._react(previous, self._state)
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _react(self, previous: AppState, current: AppState) -> None:
        if current.location is not None and (
            previous.location != current.location or previous.temperature_unit != current.temperature_unit
        ):
            self._spawn(self.fetch_weather())
        if current.weather is not None and previous.weather != current.weather:
            self._spawn(self.fetch_news())
        if current.weather is None and previous.selected_news_categories != current.selected_news_categories:
            self._spawn(self.fetch_news())

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _next_token(self, family: str) -> int:
        self._tokens[family] += 1
        return self._tokens[family]

    def _is_stale(self, family: str, token: int) -> bool:
        if token != self._tokens[family]:
            logger.debug("Discarding stale %s response (token %d, latest %d)", family, token, self._tokens[family])
            return True
        return False

    async def settle(self) -> None:
        """Wait until every scheduled reaction, including ones they schedule, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def close(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._listeners.clear()

    # Location

    def start(self) -> asyncio.Task:
        # Headlines or category news fill the feed until weather arrives.
        if self._state.weather is None:
            self._spawn(self.fetch_news())
        return self._spawn(self.acquire_location())

    async def request_location_permission(self) -> bool:
        try:
            return await self._locator.request_permission()
        except Exception:
            logger.warning("Failed to request location permission", exc_info=True)
            return False

    async def acquire_location(self) -> Location:
        """Resolve the device position, falling back to the configured default.

        On fallback the location error is recorded after the location itself,
        since setting a location clears the error.
        """
        try:
            if not await self.request_location_permission():
                raise PermissionDeniedError("Location permission denied")
            location = await self._locator.current_position(
                timeout=self._settings.location_timeout_seconds,
                maximum_age=self._settings.location_max_age_seconds,
                permission_granted=True,
            )
        except PermissionDeniedError as exc:
            logger.info("%s, using default location", exc)
            error = str(exc)
        except Exception as exc:
            logger.warning("Location error: %r, using default location", exc)
            error = "Failed to get location"
        else:
            self.dispatch(SetLocation(payload=location))
            return location

        fallback = self.fallback_location
        self.dispatch(SetLocation(payload=fallback))
        self.dispatch(SetLocationError(payload=error))
        return fallback

    def set_location(self, location: Location) -> None:
        self.dispatch(SetLocation(payload=location))

    # Weather

    async def fetch_weather(self) -> None:
        state = self._state
        if state.location is None:
            self.dispatch(SetWeatherError(payload="Location not available"))
            return

        token = self._next_token(WEATHER)
        self.dispatch(SetWeatherLoading(payload=True))
        try:
            bundle = await self._weather.get_weather_by_location(
                state.location.latitude,
                state.location.longitude,
                state.temperature_unit,
            )
        except MoodFeedError as exc:
            if not self._is_stale(WEATHER, token):
                self.dispatch(SetWeatherError(payload=str(exc) or "Failed to fetch weather data"))
            return
        except Exception:
            logger.exception("Weather fetch failed")
            if not self._is_stale(WEATHER, token):
                self.dispatch(SetWeatherError(payload="Failed to fetch weather data"))
            return

        if not self._is_stale(WEATHER, token):
            self.dispatch(SetWeatherData(payload=WeatherPayload(weather=bundle.current, forecast=bundle.forecast)))

    def current_mood(self) -> MoodCategory | None:
        if self._state.weather is None:
            return None
        return self._weather.classify_mood(self._state.weather.temperature)

    # News

    async def _load_news(self) -> list[NewsArticle]:
        mood = self.current_mood()
        if mood is not None:
            return await self._news.get_mood_based_news(mood)
        categories = self._state.selected_news_categories
        if categories:
            return await self._news.get_category_news(categories)
        return await self._news.get_headlines()

    async def fetch_news(self) -> None:
        token = self._next_token(NEWS)
        self.dispatch(SetNewsLoading(payload=True))
        try:
            articles = await self._load_news()
        except MoodFeedError as exc:
            if not self._is_stale(NEWS, token):
                self.dispatch(SetNewsError(payload=str(exc) or "Failed to fetch news data"))
            return
        except Exception:
            logger.exception("News fetch failed")
            if not self._is_stale(NEWS, token):
                self.dispatch(SetNewsError(payload="Failed to fetch news data"))
            return

        if not self._is_stale(NEWS, token):
            self.dispatch(SetNewsData(payload=articles))

    # Settings

    def set_temperature_unit(self, unit: TemperatureUnit) -> None:
        self.dispatch(SetTemperatureUnit(payload=unit))

    def toggle_temperature_unit(self) -> TemperatureUnit:
        if self._state.temperature_unit == TemperatureUnit.METRIC:
            unit = TemperatureUnit.IMPERIAL
        else:
            unit = TemperatureUnit.METRIC
        self.set_temperature_unit(unit)
        return unit

    def set_news_categories(self, categories: list[str]) -> None:
        known = set(self._news.available_categories())
        unknown = [c for c in categories if c not in known]
        if unknown:
            raise ValueError(f"Unknown news categories: {', '.join(unknown)}")
        # Keep the caller's order, drop repeats.
        self.dispatch(SetNewsCategories(payload=list(dict.fromkeys(categories))))

    def toggle_news_category(self, category: str) -> list[str]:
        current = list(self._state.selected_news_categories)
        if category in current:
            current.remove(category)
        else:
            current.append(category)
        self.set_news_categories(current)
        return current

    # Refresh / clear

    async def refresh(self) -> None:
        await asyncio.gather(self.fetch_weather(), self.fetch_news())

    def clear(self) -> None:
        """Drop weather and news, keeping location and settings."""
        # Fetches still in flight must not repopulate the cleared state.
        self._next_token(WEATHER)
        self._next_token(NEWS)
        self.dispatch(SetWeatherData(payload=WeatherPayload(weather=None, forecast=[])))
        self.dispatch(SetNewsData(payload=[]))
