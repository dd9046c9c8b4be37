import asyncio
from datetime import datetime, timezone

import httpx
import pytest
import respx
from httpx import Response

from moodfeed.core.config import DEFAULT_MOOD_SEARCH_QUERIES, DEFAULT_NEWS_CATEGORIES
from moodfeed.core.errors import ProviderError
from moodfeed.schemas.news import NewsArticle
from moodfeed.schemas.weather import CurrentWeather, Location, MoodCategory, TemperatureUnit, WeatherBundle
from moodfeed.services.location import LocationProvider, StaticLocationProvider
from moodfeed.services.news.newsapi import NewsClient
from moodfeed.services.state.orchestrator import AppOrchestrator
from moodfeed.services.weather.openweather import WeatherClient, classify_mood


WEATHER_URL = "https://api.openweathermap.org/data/2.5"
NEWS_URL = "https://newsapi.org/v2"
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
LONDON = Location(latitude=51.5072, longitude=-0.1276)


def _current(temperature: int) -> CurrentWeather:
    return CurrentWeather(
        temperature=temperature,
        condition="Clear",
        description="clear sky",
        humidity=50,
        wind_speed=2.0,
        icon="01d",
        city="London",
        country="GB",
    )


def _story(title: str) -> NewsArticle:
    return NewsArticle(title=title, description="Story.", url=f"https://example.com/{title}")


class FakeWeather:
    def __init__(self, temperatures=(18,), error=None):
        self.temperatures = list(temperatures)
        self.error = error
        self.calls = []
        self.gates: dict[int, asyncio.Event] = {}

    async def get_weather_by_location(self, lat, lon, units):
        index = len(self.calls)
        self.calls.append((lat, lon, TemperatureUnit(units)))
        if index in self.gates:
            await self.gates[index].wait()
        if self.error is not None:
            raise self.error
        temperature = self.temperatures[min(index, len(self.temperatures) - 1)]
        return WeatherBundle(current=_current(temperature), forecast=[])

    def classify_mood(self, temperature):
        return classify_mood(temperature)


class FakeNews:
    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self.gates: dict[int, asyncio.Event] = {}

    async def _record(self, call):
        index = len(self.calls)
        self.calls.append(call)
        if index in self.gates:
            await self.gates[index].wait()

    async def get_mood_based_news(self, mood):
        await self._record(("mood", mood))
        if self.error is not None:
            raise self.error
        return [_story(f"{mood.value} story")]

    async def get_category_news(self, categories):
        await self._record(("categories", list(categories)))
        return [_story(f"{category} story") for category in categories]

    async def get_headlines(self, category=None, country=None):
        await self._record(("headlines", category))
        return [_story("top story")]

    def available_categories(self):
        return list(DEFAULT_NEWS_CATEGORIES)


class HangingLocationProvider(LocationProvider):
    async def request_permission(self):
        return True

    async def _locate(self):
        await asyncio.sleep(60)


class CountingPermissionProvider(StaticLocationProvider):
    def __init__(self, location):
        super().__init__(location)
        self.permission_requests = 0

    async def request_permission(self):
        self.permission_requests += 1
        return await super().request_permission()


class BrokenPermissionProvider(LocationProvider):
    async def request_permission(self):
        raise OSError("location service unavailable")

    async def _locate(self):
        raise AssertionError("never reached")


def _orchestrator(settings, *, weather=None, news=None, location=None):
    return AppOrchestrator(
        settings=settings,
        weather_client=weather or FakeWeather(),
        news_client=news or FakeNews(),
        location_provider=location or StaticLocationProvider(LONDON),
    )


async def _until(predicate, attempts=100):
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


def _mock_providers(current_payload, forecast_payload, article, temperature):
    weather_route = respx.get(f"{WEATHER_URL}/weather").mock(
        return_value=Response(200, json=current_payload(temperature))
    )
    respx.get(f"{WEATHER_URL}/forecast").mock(return_value=Response(200, json=forecast_payload()))
    news_route = respx.get(f"{NEWS_URL}/everything").mock(
        side_effect=lambda request: Response(
            200, json={"status": "ok", "articles": [article(request.url.params["q"])]}
        )
    )
    respx.get(f"{NEWS_URL}/top-headlines").mock(
        return_value=Response(200, json={"status": "ok", "articles": [article("top story")]})
    )
    return weather_route, news_route


@pytest.mark.asyncio
async def test_permission_denied_uses_fallback_location(settings, current_payload, forecast_payload, article):
    with respx.mock:
        weather_route, news_route = _mock_providers(current_payload, forecast_payload, article, 18)

        async with httpx.AsyncClient() as http:
            orchestrator = AppOrchestrator(
                settings=settings,
                weather_client=WeatherClient(http, settings, clock=lambda: NOW),
                news_client=NewsClient(http, settings),
                location_provider=StaticLocationProvider(None),
            )
            orchestrator.start()
            await orchestrator.settle()

        params = weather_route.calls.last.request.url.params
        assert params["lat"] == "40.7128"
        assert params["lon"] == "-74.006"
        assert news_route.call_count == 3

    state = orchestrator.state
    assert state.location == Location(latitude=40.7128, longitude=-74.0060)
    assert state.location_error == "Location permission denied"
    assert state.weather.temperature == 18
    assert len(state.forecast) == 5
    assert not state.weather_loading and not state.news_loading
    assert len(state.news) == 3
    assert orchestrator.current_mood() == MoodCategory.COOL


@pytest.mark.parametrize(
    ("temperature", "mood"),
    [(5, MoodCategory.COLD), (30, MoodCategory.HOT), (18, MoodCategory.COOL)],
)
@pytest.mark.asyncio
async def test_temperature_picks_mood_queries(
    settings, current_payload, forecast_payload, article, temperature, mood
):
    with respx.mock:
        _, news_route = _mock_providers(current_payload, forecast_payload, article, temperature)

        async with httpx.AsyncClient() as http:
            orchestrator = AppOrchestrator(
                settings=settings,
                weather_client=WeatherClient(http, settings, clock=lambda: NOW),
                news_client=NewsClient(http, settings),
                location_provider=StaticLocationProvider(LONDON),
            )
            orchestrator.start()
            await orchestrator.settle()

        queries = [call.request.url.params["q"] for call in news_route.calls]

    assert orchestrator.current_mood() == mood
    assert queries == DEFAULT_MOOD_SEARCH_QUERIES[mood][:3]
    assert [a.title for a in orchestrator.state.news] == queries


@pytest.mark.asyncio
async def test_granted_location_is_used(settings):
    weather = FakeWeather()
    orchestrator = _orchestrator(settings, weather=weather)

    location = await orchestrator.acquire_location()
    await orchestrator.settle()

    assert location == LONDON
    assert orchestrator.state.location == LONDON
    assert orchestrator.state.location_error is None
    assert weather.calls == [(LONDON.latitude, LONDON.longitude, TemperatureUnit.METRIC)]


@pytest.mark.asyncio
async def test_location_timeout_falls_back(settings):
    settings.location_timeout_seconds = 0.01
    orchestrator = _orchestrator(settings, location=HangingLocationProvider())

    location = await orchestrator.acquire_location()
    await orchestrator.settle()

    assert location == orchestrator.fallback_location
    assert orchestrator.state.location == orchestrator.fallback_location
    assert orchestrator.state.location_error == "Failed to get location"


@pytest.mark.asyncio
async def test_permission_request_failure_counts_as_denied(settings):
    orchestrator = _orchestrator(settings, location=BrokenPermissionProvider())

    assert await orchestrator.request_location_permission() is False
    await orchestrator.acquire_location()
    await orchestrator.settle()

    assert orchestrator.state.location == orchestrator.fallback_location
    assert orchestrator.state.location_error == "Location permission denied"


@pytest.mark.asyncio
async def test_weather_error_is_recorded(settings):
    news = FakeNews()
    weather = FakeWeather(error=ProviderError("Weather API error: 500", provider="Weather", status_code=500))
    orchestrator = _orchestrator(settings, weather=weather, news=news)

    orchestrator.set_location(LONDON)
    await orchestrator.settle()

    state = orchestrator.state
    assert state.weather_error == "Weather API error: 500"
    assert state.weather_loading is False
    assert state.weather is None
    assert news.calls == []


@pytest.mark.asyncio
async def test_fetch_weather_without_location(settings):
    weather = FakeWeather()
    orchestrator = _orchestrator(settings, weather=weather)

    await orchestrator.fetch_weather()

    assert orchestrator.state.weather_error == "Location not available"
    assert weather.calls == []


@pytest.mark.asyncio
async def test_news_error_is_recorded(settings):
    news = FakeNews(error=ProviderError("News API error: 429", provider="News", status_code=429))
    orchestrator = _orchestrator(settings, news=news)

    orchestrator.set_location(LONDON)
    await orchestrator.settle()

    assert orchestrator.state.weather is not None
    assert orchestrator.state.news_error == "News API error: 429"
    assert orchestrator.state.news_loading is False


@pytest.mark.asyncio
async def test_unexpected_weather_failure_ends_loading(settings):
    news = FakeNews()
    orchestrator = _orchestrator(settings, weather=FakeWeather(error=ValueError("bad sample")), news=news)

    orchestrator.set_location(LONDON)
    await orchestrator.settle()

    state = orchestrator.state
    assert state.weather_loading is False
    assert state.weather_error == "Failed to fetch weather data"
    assert news.calls == []


@pytest.mark.asyncio
async def test_unexpected_news_failure_ends_loading(settings):
    orchestrator = _orchestrator(settings, news=FakeNews(error=RuntimeError("boom")))

    orchestrator.set_location(LONDON)
    await orchestrator.settle()

    state = orchestrator.state
    assert state.weather is not None
    assert state.news_loading is False
    assert state.news_error == "Failed to fetch news data"


@pytest.mark.asyncio
async def test_start_loads_headlines_when_weather_fails(settings):
    news = FakeNews()
    weather = FakeWeather(error=ProviderError("Weather API error: 503", provider="Weather", status_code=503))
    orchestrator = _orchestrator(settings, weather=weather, news=news)

    orchestrator.start()
    await orchestrator.settle()

    state = orchestrator.state
    assert state.weather_error == "Weather API error: 503"
    assert news.calls == [("headlines", None)]
    assert [a.title for a in state.news] == ["top story"]
    assert state.news_loading is False


@pytest.mark.asyncio
async def test_start_switches_to_mood_news_once_weather_arrives(settings):
    news = FakeNews()
    orchestrator = _orchestrator(settings, news=news)

    orchestrator.start()
    await orchestrator.settle()

    assert news.calls == [("headlines", None), ("mood", MoodCategory.COOL)]
    assert [a.title for a in orchestrator.state.news] == ["cool story"]


@pytest.mark.asyncio
async def test_location_permission_requested_once(settings):
    provider = CountingPermissionProvider(LONDON)
    orchestrator = _orchestrator(settings, location=provider)

    await orchestrator.acquire_location()
    await orchestrator.settle()

    assert provider.permission_requests == 1
    assert orchestrator.state.location == LONDON


@pytest.mark.asyncio
async def test_stale_weather_response_is_discarded(settings):
    weather = FakeWeather(temperatures=(5, 30))
    news = FakeNews()
    weather.gates[0] = asyncio.Event()
    orchestrator = _orchestrator(settings, weather=weather, news=news)

    orchestrator.set_location(LONDON)
    await _until(lambda: len(weather.calls) == 1)
    orchestrator.set_temperature_unit(TemperatureUnit.IMPERIAL)
    await _until(lambda: orchestrator.state.weather is not None)
    weather.gates[0].set()
    await orchestrator.settle()

    assert [units for _, _, units in weather.calls] == [TemperatureUnit.METRIC, TemperatureUnit.IMPERIAL]
    assert orchestrator.state.weather.temperature == 30
    assert news.calls == [("mood", MoodCategory.HOT)]


@pytest.mark.asyncio
async def test_stale_news_response_is_discarded(settings):
    news = FakeNews()
    news.gates[0] = asyncio.Event()
    orchestrator = _orchestrator(settings, news=news)

    orchestrator.set_news_categories(["sports"])
    await _until(lambda: len(news.calls) == 1)
    orchestrator.set_news_categories(["science"])
    await _until(lambda: orchestrator.state.news != [])
    news.gates[0].set()
    await orchestrator.settle()

    assert news.calls == [("categories", ["sports"]), ("categories", ["science"])]
    assert [a.title for a in orchestrator.state.news] == ["science story"]


@pytest.mark.asyncio
async def test_clear_discards_in_flight_fetches(settings):
    news = FakeNews()
    news.gates[0] = asyncio.Event()
    orchestrator = _orchestrator(settings, news=news)

    orchestrator.set_location(LONDON)
    await _until(lambda: len(news.calls) == 1)
    orchestrator.clear()
    news.gates[0].set()
    await orchestrator.settle()

    state = orchestrator.state
    assert news.calls == [("mood", MoodCategory.COOL)]
    assert state.weather is None
    assert state.news == []
    assert state.news_loading is False


@pytest.mark.asyncio
async def test_thresholds_apply_to_configured_unit(settings):
    # 50°F is chilly, but it is compared against the same 10 / 25 thresholds.
    orchestrator = _orchestrator(settings, weather=FakeWeather(temperatures=(50,)))

    orchestrator.set_temperature_unit(TemperatureUnit.IMPERIAL)
    orchestrator.set_location(LONDON)
    await orchestrator.settle()

    assert orchestrator.current_mood() == MoodCategory.HOT


@pytest.mark.asyncio
async def test_categories_without_weather_fetch_category_news(settings):
    news = FakeNews()
    orchestrator = _orchestrator(settings, news=news)

    orchestrator.set_news_categories(["sports", "science", "sports"])
    await orchestrator.settle()

    assert orchestrator.state.selected_news_categories == ["sports", "science"]
    assert news.calls == [("categories", ["sports", "science"])]
    assert [a.title for a in orchestrator.state.news] == ["sports story", "science story"]


@pytest.mark.asyncio
async def test_categories_with_weather_do_not_refetch(settings):
    news = FakeNews()
    orchestrator = _orchestrator(settings, news=news)
    orchestrator.set_location(LONDON)
    await orchestrator.settle()

    orchestrator.set_news_categories(["health"])
    await orchestrator.settle()

    assert news.calls == [("mood", MoodCategory.COOL)]


@pytest.mark.asyncio
async def test_fetch_news_without_weather_or_categories_uses_headlines(settings):
    news = FakeNews()
    orchestrator = _orchestrator(settings, news=news)

    await orchestrator.fetch_news()

    assert news.calls == [("headlines", None)]
    assert [a.title for a in orchestrator.state.news] == ["top story"]


@pytest.mark.asyncio
async def test_unknown_category_is_rejected(settings):
    orchestrator = _orchestrator(settings)

    with pytest.raises(ValueError):
        orchestrator.set_news_categories(["astrology"])

    assert orchestrator.state.selected_news_categories == []


@pytest.mark.asyncio
async def test_toggles(settings):
    orchestrator = _orchestrator(settings)

    assert orchestrator.toggle_news_category("science") == ["science"]
    assert orchestrator.toggle_news_category("sports") == ["science", "sports"]
    assert orchestrator.toggle_news_category("science") == ["sports"]
    assert orchestrator.toggle_temperature_unit() == TemperatureUnit.IMPERIAL
    assert orchestrator.toggle_temperature_unit() == TemperatureUnit.METRIC
    await orchestrator.settle()


@pytest.mark.asyncio
async def test_same_weather_does_not_refetch_news(settings):
    weather = FakeWeather(temperatures=(18, 18))
    news = FakeNews()
    orchestrator = _orchestrator(settings, weather=weather, news=news)
    orchestrator.set_location(LONDON)
    await orchestrator.settle()

    await orchestrator.fetch_weather()
    await orchestrator.settle()

    assert len(weather.calls) == 2
    assert news.calls == [("mood", MoodCategory.COOL)]


@pytest.mark.asyncio
async def test_refresh_reruns_weather_and_news(settings):
    weather = FakeWeather()
    news = FakeNews()
    orchestrator = _orchestrator(settings, weather=weather, news=news)
    orchestrator.set_location(LONDON)
    await orchestrator.settle()

    await orchestrator.refresh()
    await orchestrator.settle()

    assert len(weather.calls) == 2
    assert len(news.calls) == 2


@pytest.mark.asyncio
async def test_clear_drops_weather_and_news(settings):
    orchestrator = _orchestrator(settings)
    orchestrator.set_location(LONDON)
    await orchestrator.settle()

    orchestrator.clear()
    await orchestrator.settle()

    state = orchestrator.state
    assert state.weather is None
    assert state.forecast == []
    assert state.news == []
    assert state.location == LONDON


@pytest.mark.asyncio
async def test_subscribers_see_every_transition(settings):
    orchestrator = _orchestrator(settings)
    seen = []
    unsubscribe = orchestrator.subscribe(lambda state, action: seen.append(action.type))

    orchestrator.set_location(LONDON)
    await orchestrator.settle()
    unsubscribe()
    orchestrator.clear()

    assert seen == [
        "SET_LOCATION",
        "SET_WEATHER_LOADING",
        "SET_WEATHER_DATA",
        "SET_NEWS_LOADING",
        "SET_NEWS_DATA",
    ]


@pytest.mark.asyncio
async def test_close_cancels_pending_work(settings):
    weather = FakeWeather()
    weather.gates[0] = asyncio.Event()
    orchestrator = _orchestrator(settings, weather=weather)

    orchestrator.set_location(LONDON)
    await _until(lambda: orchestrator.state.weather_loading)
    await orchestrator.close()

    assert orchestrator.state.weather is None
