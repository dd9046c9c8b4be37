from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from moodfeed.core.config import Settings
from moodfeed.core.errors import MalformedResponseError, ProviderError


logger = logging.getLogger(__name__)

_client: Optional[httpx.AsyncClient] = None


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
    timeout = httpx.Timeout(settings.http_timeout_seconds)
    return httpx.AsyncClient(
        timeout=timeout,
        limits=limits,
        headers={"User-Agent": "moodfeed-api/0.1"},
        follow_redirects=True,
    )


def set_http_client(client: httpx.AsyncClient | None) -> None:
    global _client
    _client = client


def get_http_client() -> httpx.AsyncClient:
    if _client is None:
        raise RuntimeError("HTTP client not initialized. Did you start the FastAPI app?")
    return _client


def _error_message(resp: httpx.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message")
        return str(message) if message else None
    return None


async def get_json(
    client: httpx.AsyncClient,
    *,
    provider: str,
    url: str,
    params: dict[str, Any],
) -> Any:
    """GET ``url`` and decode the JSON body, mapping every failure to a moodfeed error."""
    logger.debug("%s request: %s", provider, url)
    try:
        resp = await client.get(url, params=params)
    except httpx.HTTPError as exc:
        logger.error("%s upstream error: %s", provider, type(exc).__name__)
        raise ProviderError(f"{provider} API error: {type(exc).__name__}", provider=provider) from exc

    if not resp.is_success:
        detail = _error_message(resp)
        logger.error("%s upstream status %s: %s", provider, resp.status_code, detail or "-")
        message = f"{provider} API error: {resp.status_code}"
        if detail:
            message += f" ({detail})"
        raise ProviderError(message, provider=provider, status_code=resp.status_code)

    try:
        return resp.json()
    except ValueError as exc:
        raise MalformedResponseError(f"{provider} API returned invalid JSON", provider=provider) from exc
