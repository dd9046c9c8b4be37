from datetime import datetime, timedelta, timezone

import pytest

from moodfeed.core.config import Settings


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        openweather_api_key="weather-key",
        news_api_key="news-key",
        log_level="DEBUG",
    )


@pytest.fixture
def current_payload():
    def build(temp=18.4, *, main="Clouds", description="broken clouds", icon="04d"):
        return {
            "weather": [{"id": 803, "main": main, "description": description, "icon": icon}],
            "main": {"temp": temp, "feels_like": temp - 1, "humidity": 71, "pressure": 1015},
            "wind": {"speed": 3.6, "deg": 240},
            "sys": {"country": "US"},
            "name": "New York",
            "dt": int(NOW.timestamp()),
        }

    return build


@pytest.fixture
def forecast_payload():
    def build(*, start=NOW, samples=40, step_hours=3, base_temp=10.0, timezone_offset=0):
        items = []
        for i in range(samples):
            at = start + timedelta(hours=step_hours * i)
            items.append(
                {
                    "dt": int(at.timestamp()),
                    "main": {"temp": base_temp + (i % 8)},
                    "weather": [
                        {
                            "main": "Rain" if i % 8 == 0 else "Clear",
                            "description": f"sample {i}",
                            "icon": f"{i:02d}d",
                        }
                    ],
                }
            )
        return {"cod": "200", "list": items, "city": {"name": "New York", "timezone": timezone_offset}}

    return build


@pytest.fixture
def article():
    def build(title, *, description="Something happened.", source="Example Wire"):
        return {
            "source": {"id": None, "name": source},
            "author": "Staff",
            "title": title,
            "description": description,
            "url": f"https://example.com/{title.replace(' ', '-').lower()}",
            "urlToImage": None,
            "publishedAt": "2026-10-19T08:30:00Z",
            "content": None,
        }

    return build
