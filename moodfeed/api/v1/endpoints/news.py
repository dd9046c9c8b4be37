from datetime import datetime, timezone as dt_timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from moodfeed.api.v1.deps import get_news_client
from moodfeed.schemas.news import NewsCategoriesResponse, NewsListResponse
from moodfeed.schemas.weather import MoodCategory
from moodfeed.services.news.newsapi import NewsClient


router = APIRouter()


@router.get("/top", response_model=NewsListResponse)
async def top_headlines(
    category: str | None = Query(None, min_length=1, max_length=32),
    country: str | None = Query(None, min_length=2, max_length=2),
    news: NewsClient = Depends(get_news_client),
):
    if category and category not in news.available_categories():
        raise HTTPException(status_code=422, detail=f"Unknown news category: {category}")
    items = await news.get_headlines(category, country)
    return NewsListResponse(items=items, generated_at=datetime.now(dt_timezone.utc))


@router.get("/search", response_model=NewsListResponse)
async def search_news(
    q: str = Query(..., min_length=1, max_length=500),
    language: str | None = Query(None, min_length=2, max_length=2),
    news: NewsClient = Depends(get_news_client),
):
    items = await news.search(q, language)
    return NewsListResponse(items=items, generated_at=datetime.now(dt_timezone.utc))


@router.get("/mood", response_model=NewsListResponse)
async def mood_news(
    mood: MoodCategory = Query(...),
    news: NewsClient = Depends(get_news_client),
):
    items = await news.get_mood_based_news(mood)
    return NewsListResponse(items=items, generated_at=datetime.now(dt_timezone.utc), mood=mood)


@router.get("/categories", response_model=NewsCategoriesResponse)
async def news_categories(news: NewsClient = Depends(get_news_client)):
    return NewsCategoriesResponse(categories=news.available_categories())
