from __future__ import annotations

import time
from typing import Any

import httpx

from research_agent.config import settings
from research_agent.errors import ProviderError
from research_agent.models.research import Source
from research_agent.services import logger as log_service
from research_agent.tools import firecrawl
from research_agent.tools.web_utils import clip_text, normalize_text

DESCRIPTION_FALLBACK_CHARS = 200


def _to_source(item: Any) -> Source | None:
    if not isinstance(item, dict):
        return None
    url = item.get("url")
    if not isinstance(url, str) or not url.strip():
        return None

    description = item.get("description") or ""
    if not description:
        markdown = item.get("markdown") or ""
        if isinstance(markdown, str):
            description = clip_text(normalize_text(markdown), DESCRIPTION_FALLBACK_CHARS)

    return Source(
        url=url.strip(),
        title=str(item.get("title") or ""),
        description=str(description),
    )


async def search(
    query: str,
    *,
    limit: int | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> list[Source]:
    """Run a Firecrawl web search and return ranked sources.

    An empty result set is returned as an empty list; transport failures,
    non-success statuses and rejected credentials raise.
    """
    if not query or not query.strip():
        raise ValueError("Search query must not be empty")

    request_body = {
        "query": query.strip(),
        "limit": limit or settings.search_result_limit,
    }
    headers = firecrawl.auth_headers()

    async def _do_request(client: httpx.AsyncClient) -> dict[str, Any]:
        response = await client.post(
            firecrawl.endpoint("/v1/search"),
            json=request_body,
            headers=headers,
        )
        return firecrawl.parse_response(response, "search")

    t0 = time.monotonic()
    try:
        if http_client is None:
            async with firecrawl.new_client() as client:
                payload = await _do_request(client)
        else:
            payload = await _do_request(http_client)
    except httpx.HTTPError as e:
        log_service.log_provider_call(
            firecrawl.PROVIDER, "search", "failed",
            duration_ms=int((time.monotonic() - t0) * 1000), error=str(e),
        )
        raise ProviderError(firecrawl.PROVIDER, f"Firecrawl search request failed: {e}") from e
    except ProviderError as e:
        log_service.log_provider_call(
            firecrawl.PROVIDER, "search", "failed",
            duration_ms=int((time.monotonic() - t0) * 1000), error=str(e),
        )
        raise

    raw_results = payload.get("data") or []
    if not isinstance(raw_results, list):
        raw_results = []
    sources = [source for source in (_to_source(item) for item in raw_results) if source]

    log_service.log_provider_call(
        firecrawl.PROVIDER, "search", "success",
        duration_ms=int((time.monotonic() - t0) * 1000), items=len(sources),
    )
    return sources
