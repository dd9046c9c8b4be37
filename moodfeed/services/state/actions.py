from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from moodfeed.schemas.news import NewsArticle
from moodfeed.schemas.weather import CurrentWeather, ForecastDay, Location, TemperatureUnit


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class SetLocation(_Action):
    type: Literal["SET_LOCATION"] = "SET_LOCATION"
    payload: Location


class SetLocationError(_Action):
    type: Literal["SET_LOCATION_ERROR"] = "SET_LOCATION_ERROR"
    payload: str


class SetWeatherLoading(_Action):
    type: Literal["SET_WEATHER_LOADING"] = "SET_WEATHER_LOADING"
    payload: bool


class WeatherPayload(BaseModel):
    weather: CurrentWeather | None = None
    forecast: list[ForecastDay] = Field(default_factory=list)


class SetWeatherData(_Action):
    type: Literal["SET_WEATHER_DATA"] = "SET_WEATHER_DATA"
    payload: WeatherPayload


class SetWeatherError(_Action):
    type: Literal["SET_WEATHER_ERROR"] = "SET_WEATHER_ERROR"
    payload: str


class SetNewsLoading(_Action):
    type: Literal["SET_NEWS_LOADING"] = "SET_NEWS_LOADING"
    payload: bool


class SetNewsData(_Action):
    type: Literal["SET_NEWS_DATA"] = "SET_NEWS_DATA"
    payload: list[NewsArticle]


class SetNewsError(_Action):
    type: Literal["SET_NEWS_ERROR"] = "SET_NEWS_ERROR"
    payload: str


class SetTemperatureUnit(_Action):
    type: Literal["SET_TEMPERATURE_UNIT"] = "SET_TEMPERATURE_UNIT"
    payload: TemperatureUnit


class SetNewsCategories(_Action):
    type: Literal["SET_NEWS_CATEGORIES"] = "SET_NEWS_CATEGORIES"
    payload: list[str]


Action = Annotated[
    Union[
        SetLocation,
        SetLocationError,
        SetWeatherLoading,
        SetWeatherData,
        SetWeatherError,
        SetNewsLoading,
        SetNewsData,
        SetNewsError,
        SetTemperatureUnit,
        SetNewsCategories,
    ],
    Field(discriminator="type"),
]
