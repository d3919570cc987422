from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import httpx

from research_agent.config import settings
from research_agent.errors import ProviderError
from research_agent.models.research import ExtractedPage
from research_agent.services import logger as log_service
from research_agent.tools import firecrawl
from research_agent.tools.web_utils import clip_text, is_valid_url, normalize_text

TERMINAL_FAILURE_STATUSES = {"failed", "cancelled"}


def _page_url(page: dict[str, Any]) -> str:
    metadata = page.get("metadata") or {}
    if not isinstance(metadata, dict):
        metadata = {}
    for key in ("sourceURL", "url"):
        value = metadata.get(key)
        if isinstance(value, str) and value:
            return value
    value = page.get("url")
    return value if isinstance(value, str) else ""


def _page_content(page: dict[str, Any], max_chars: int) -> str:
    metadata = page.get("metadata") or {}
    status_code = metadata.get("statusCode") if isinstance(metadata, dict) else None
    if isinstance(status_code, int) and status_code >= 400:
        return ""

    extracted = page.get("json")
    if isinstance(extracted, (dict, list)) and extracted:
        text = json.dumps(extracted, ensure_ascii=False)
    elif isinstance(extracted, str) and extracted.strip():
        text = extracted
    else:
        markdown = page.get("markdown")
        text = normalize_text(markdown) if isinstance(markdown, str) else ""
    return clip_text(text.strip(), max_chars)


def _match_pages(urls: list[str], pages: list[Any], max_chars: int) -> list[ExtractedPage]:
    by_url: dict[str, str] = {}
    for page in pages:
        if not isinstance(page, dict):
            continue
        url = _page_url(page)
        content = _page_content(page, max_chars)
        if url and content and not by_url.get(url):
            by_url[url] = content
            by_url.setdefault(url.rstrip("/"), content)

    return [
        ExtractedPage(url=url, content=by_url.get(url) or by_url.get(url.rstrip("/"), ""))
        for url in urls
    ]


async def _start_batch(
    client: httpx.AsyncClient,
    urls: list[str],
    instruction: str,
    headers: dict[str, str],
) -> str:
    response = await client.post(
        firecrawl.endpoint("/v1/batch/scrape"),
        json={
            "urls": urls,
            "formats": ["markdown", "json"],
            "jsonOptions": {"prompt": instruction},
            "onlyMainContent": True,
            "ignoreInvalidURLs": True,
        },
        headers=headers,
    )
    payload = firecrawl.parse_response(response, "batch scrape")
    job_id = payload.get("id")
    if not isinstance(job_id, str) or not job_id:
        raise ProviderError(firecrawl.PROVIDER, "Firecrawl batch scrape returned no job id")
    return job_id


async def _wait_for_batch(
    client: httpx.AsyncClient,
    job_id: str,
    headers: dict[str, str],
    *,
    poll_interval: float,
    timeout: float,
) -> list[Any]:
    deadline = time.monotonic() + timeout
    while True:
        response = await client.get(
            firecrawl.endpoint(f"/v1/batch/scrape/{job_id}"),
            headers=headers,
        )
        payload = firecrawl.parse_response(response, "batch scrape status")
        status = str(payload.get("status") or "").lower()

        if status == "completed":
            data = payload.get("data") or []
            return data if isinstance(data, list) else []
        if status in TERMINAL_FAILURE_STATUSES:
            raise ProviderError(firecrawl.PROVIDER, f"Firecrawl batch scrape {status}")
        if time.monotonic() >= deadline:
            raise ProviderError(
                firecrawl.PROVIDER,
                f"Firecrawl batch scrape timed out after {timeout:.0f}s",
            )
        await asyncio.sleep(poll_interval)


async def extract(
    urls: list[str],
    instruction: str,
    *,
    http_client: httpx.AsyncClient | None = None,
    poll_interval: float | None = None,
    timeout: float | None = None,
) -> list[ExtractedPage]:
    """Extract content from a batch of pages in a single provider job.

    Returns one ExtractedPage per requested URL, in request order. Pages the
    provider could not scrape come back with empty content instead of
    failing the batch; provider-level failures raise.
    """
    targets = [url for url in urls if isinstance(url, str) and is_valid_url(url)]
    if not targets:
        return []

    headers = firecrawl.auth_headers()
    interval = settings.extract_poll_interval_seconds if poll_interval is None else poll_interval
    deadline = settings.extract_timeout_seconds if timeout is None else timeout

    async def _run(client: httpx.AsyncClient) -> list[Any]:
        job_id = await _start_batch(client, targets, instruction, headers)
        return await _wait_for_batch(
            client, job_id, headers, poll_interval=interval, timeout=deadline
        )

    t0 = time.monotonic()
    try:
        if http_client is None:
            async with firecrawl.new_client() as client:
                pages = await _run(client)
        else:
            pages = await _run(http_client)
    except httpx.HTTPError as e:
        log_service.log_provider_call(
            firecrawl.PROVIDER, "extract", "failed",
            duration_ms=int((time.monotonic() - t0) * 1000), error=str(e),
        )
        raise ProviderError(firecrawl.PROVIDER, f"Firecrawl extract request failed: {e}") from e
    except ProviderError as e:
        log_service.log_provider_call(
            firecrawl.PROVIDER, "extract", "failed",
            duration_ms=int((time.monotonic() - t0) * 1000), error=str(e),
        )
        raise

    results = _match_pages(targets, pages, settings.extract_max_content_chars)
    log_service.log_provider_call(
        firecrawl.PROVIDER, "extract", "success",
        duration_ms=int((time.monotonic() - t0) * 1000),
        items=sum(1 for page in results if page.content),
    )
    return results
