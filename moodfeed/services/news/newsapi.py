from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Sequence

import httpx
from pydantic import ValidationError

from moodfeed.core.config import Settings
from moodfeed.core.errors import MalformedResponseError, PartialFetchError, ProviderError
from moodfeed.core.http import get_json
from moodfeed.schemas.news import NewsArticle
from moodfeed.schemas.weather import MoodCategory


logger = logging.getLogger(__name__)

PROVIDER = "News"


def _normalize_articles(data: Any) -> list[NewsArticle]:
    if not isinstance(data, dict) or not isinstance(data.get("articles"), list):
        raise MalformedResponseError("News response missing 'articles'", provider=PROVIDER)

    articles: list[NewsArticle] = []
    for raw in data["articles"]:
        if not isinstance(raw, dict):
            continue
        if not raw.get("title") or not raw.get("description"):
            continue
        try:
            articles.append(NewsArticle.model_validate(raw))
        except ValidationError as exc:
            logger.debug("Skipping unparseable article %r: %s", raw.get("title"), exc)
    return articles


def dedupe_by_title(articles: Iterable[NewsArticle]) -> list[NewsArticle]:
    """Keep the first article for each exact title."""
    seen: set[str] = set()
    unique: list[NewsArticle] = []
    for article in articles:
        if article.title in seen:
            continue
        seen.add(article.title)
        unique.append(article)
    return unique


class NewsClient:
    """NewsAPI top headlines and keyword search."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self._client = client
        self._settings = settings

    async def get_headlines(self, category: str | None = None, country: str | None = None) -> list[NewsArticle]:
        params: dict[str, Any] = {
            "country": country or self._settings.news_country,
            "apiKey": self._settings.news_api_key,
        }
        if category:
            params["category"] = category
        data = await get_json(
            self._client,
            provider=PROVIDER,
            url=f"{self._settings.news_base_url}/top-headlines",
            params=params,
        )
        return _normalize_articles(data)

    async def search(self, query: str, language: str | None = None) -> list[NewsArticle]:
        """Articles matching ``query``, newest first as the provider sorts them."""
        params = {
            "q": query,
            "language": language or self._settings.news_language,
            "apiKey": self._settings.news_api_key,
            "sortBy": "publishedAt",
        }
        data = await get_json(
            self._client,
            provider=PROVIDER,
            url=f"{self._settings.news_base_url}/everything",
            params=params,
        )
        return _normalize_articles(data)

    def mood_queries(self, mood: MoodCategory) -> list[str]:
        """The search phrases actually sent for ``mood``."""
        phrases = self._settings.mood_search_queries.get(MoodCategory(mood), [])
        return list(phrases[: self._settings.mood_query_fanout])

    async def get_mood_based_news(self, mood: MoodCategory) -> list[NewsArticle]:
        try:
            per_query = self._settings.news_per_query_limit
            collected: list[NewsArticle] = []
            for query in self.mood_queries(mood):
                try:
                    articles = await self.search(query)
                except (ProviderError, MalformedResponseError) as exc:
                    logger.warning("%s", PartialFetchError(query, exc))
                    continue
                collected.extend(articles if per_query is None else articles[:per_query])

            return dedupe_by_title(collected)[: self._settings.mood_news_limit]
        except Exception:
            logger.exception("Mood-based news for %r failed, falling back to top headlines", mood)
            return await self.get_headlines()

    async def get_category_news(
        self, categories: Sequence[str], per_category: int | None = None
    ) -> list[NewsArticle]:
        """Top headlines for each category, capped per category, concatenated in category order."""
        limit = per_category or self._settings.news_per_category_limit
        semaphore = asyncio.Semaphore(self._settings.news_category_concurrency)

        async def fetch(category: str) -> list[NewsArticle]:
            async with semaphore:
                try:
                    articles = await self.get_headlines(category)
                except (ProviderError, MalformedResponseError) as exc:
                    logger.warning("%s", PartialFetchError(category, exc))
                    return []
            return articles[:limit]

        batches = await asyncio.gather(*(fetch(category) for category in categories))
        return [article for batch in batches for article in batch]

    def available_categories(self) -> list[str]:
        return list(self._settings.news_categories)
