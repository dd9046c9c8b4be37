from __future__ import annotations

from moodfeed.schemas.state import AppState
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
)


def reduce(state: AppState, action: Action) -> AppState:
    """Return the state after ``action``. Never mutates ``state``; unknown actions are a no-op."""
    if isinstance(action, SetWeatherLoading):
        return state.model_copy(update={"weather_loading": action.payload, "weather_error": None})
    if isinstance(action, SetWeatherData):
        return state.model_copy(
            update={
                "weather": action.payload.weather,
                "forecast": list(action.payload.forecast),
                "weather_loading": False,
                "weather_error": None,
            }
        )
    if isinstance(action, SetWeatherError):
        return state.model_copy(update={"weather_error": action.payload, "weather_loading": False})
    if isinstance(action, SetNewsLoading):
        return state.model_copy(update={"news_loading": action.payload, "news_error": None})
    if isinstance(action, SetNewsData):
        return state.model_copy(update={"news": list(action.payload), "news_loading": False, "news_error": None})
    if isinstance(action, SetNewsError):
        return state.model_copy(update={"news_error": action.payload, "news_loading": False})
    if isinstance(action, SetTemperatureUnit):
        return state.model_copy(update={"temperature_unit": action.payload})
    if isinstance(action, SetNewsCategories):
        return state.model_copy(update={"selected_news_categories": list(action.payload)})
    if isinstance(action, SetLocation):
        return state.model_copy(update={"location": action.payload, "location_error": None})
    if isinstance(action, SetLocationError):
        return state.model_copy(update={"location_error": action.payload})
    return state
