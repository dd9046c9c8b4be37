from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from moodfeed.schemas.weather import MoodCategory


class NewsSource(BaseModel):
    id: str | None = None
    name: str | None = None


class NewsArticle(BaseModel):
    title: str
    description: str
    url: str
    source: NewsSource = Field(default_factory=NewsSource)
    author: str | None = None
    url_to_image: str | None = Field(None, validation_alias=AliasChoices("urlToImage", "url_to_image"))
    published_at: datetime | None = Field(None, validation_alias=AliasChoices("publishedAt", "published_at"))
    content: str | None = None


class NewsListResponse(BaseModel):
    items: list[NewsArticle]
    generated_at: datetime
    mood: MoodCategory | None = None


class NewsCategoriesResponse(BaseModel):
    categories: list[str]
