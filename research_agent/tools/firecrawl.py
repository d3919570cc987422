"""Shared plumbing for the Firecrawl REST API."""
from __future__ import annotations

from typing import Any

import httpx

from research_agent.config import settings
from research_agent.errors import ConfigurationError, ProviderError, provider_error_for_status

PROVIDER = "firecrawl"


def endpoint(path: str) -> str:
    base = settings.firecrawl_base_url.strip().rstrip("/") or "https://api.firecrawl.dev"
    return f"{base}/{path.lstrip('/')}"


def auth_headers() -> dict[str, str]:
    api_key = settings.firecrawl_api_key.strip()
    if not api_key:
        raise ConfigurationError(["FIRECRAWL_API_KEY"])
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
    }


def new_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.http_timeout_seconds)


def parse_response(response: httpx.Response, operation: str) -> dict[str, Any]:
    """Raise a provider error for non-success statuses, else return the JSON body."""
    if response.status_code >= 400:
        raise provider_error_for_status(PROVIDER, response.status_code, response.text)
    try:
        payload = response.json()
    except ValueError as e:
        raise ProviderError(PROVIDER, f"Firecrawl {operation} returned invalid JSON") from e
    if not isinstance(payload, dict):
        raise ProviderError(PROVIDER, f"Firecrawl {operation} returned an unexpected payload")
    if payload.get("success") is False:
        error = payload.get("error") or "Unknown error"
        raise ProviderError(PROVIDER, f"Firecrawl {operation} unsuccessful: {error}")
    return payload
