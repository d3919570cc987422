from __future__ import annotations

import json
from unittest.mock import patch

import httpx
import pytest

from research_agent.config import settings
from research_agent.errors import (
    ConfigurationError,
    ProviderAuthError,
    ProviderError,
    ProviderQuotaError,
)
from research_agent.tools import firecrawl_extract, firecrawl_search


@pytest.fixture(autouse=True)
def firecrawl_settings():
    with (
        patch.object(settings, "firecrawl_api_key", "fc-test"),
        patch.object(settings, "firecrawl_base_url", "https://firecrawl.test"),
    ):
        yield


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestSearch:
    @pytest.mark.asyncio
    async def test_maps_results_and_sends_bearer_key(self):
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": [
                        {"url": "https://a.com", "title": "A", "description": "About A"},
                        {"url": "https://b.com", "title": "B", "markdown": "# B\n\n" + "x" * 400},
                        {"title": "no url"},
                    ],
                },
            )

        async with mock_client(handler) as client:
            results = await firecrawl_search.search("heat pumps", http_client=client)

        assert seen["url"] == "https://firecrawl.test/v1/search"
        assert seen["auth"] == "Bearer fc-test"
        assert seen["body"] == {"query": "heat pumps", "limit": settings.search_result_limit}
        assert [r.url for r in results] == ["https://a.com", "https://b.com"]
        assert results[0].description == "About A"
        assert results[1].description.startswith("# B")
        assert len(results[1].description) == firecrawl_search.DESCRIPTION_FALLBACK_CHARS

    @pytest.mark.asyncio
    async def test_no_results_is_an_empty_list(self):
        def handler(request):
            return httpx.Response(200, json={"success": True, "data": []})

        async with mock_client(handler) as client:
            assert await firecrawl_search.search("obscure", http_client=client) == []

    @pytest.mark.asyncio
    async def test_rejects_empty_query(self):
        with pytest.raises(ValueError):
            await firecrawl_search.search("   ")

    @pytest.mark.asyncio
    async def test_missing_key_is_configuration_error(self):
        with patch.object(settings, "firecrawl_api_key", ""):
            with pytest.raises(ConfigurationError):
                await firecrawl_search.search("query")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error_type",
        [(401, ProviderAuthError), (429, ProviderQuotaError), (502, ProviderError)],
    )
    async def test_non_success_status_raises(self, status, error_type):
        def handler(request):
            return httpx.Response(status, text="nope")

        async with mock_client(handler) as client:
            with pytest.raises(error_type) as excinfo:
                await firecrawl_search.search("query", http_client=client)
        assert excinfo.value.status_code == status

    @pytest.mark.asyncio
    async def test_unsuccessful_payload_raises(self):
        def handler(request):
            return httpx.Response(200, json={"success": False, "error": "bad query"})

        async with mock_client(handler) as client:
            with pytest.raises(ProviderError, match="bad query"):
                await firecrawl_search.search("query", http_client=client)

    @pytest.mark.asyncio
    async def test_transport_failure_raises_provider_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(ProviderError):
                await firecrawl_search.search("query", http_client=client)


class TestExtract:
    @pytest.mark.asyncio
    async def test_batch_job_is_polled_until_completed(self):
        calls: list[tuple[str, str]] = []
        status_responses = [
            {"success": True, "status": "scraping", "data": []},
            {
                "success": True,
                "status": "completed",
                "data": [
                    {
                        "json": {"facts": ["fact one"]},
                        "markdown": "ignored",
                        "metadata": {"sourceURL": "https://a.com", "statusCode": 200},
                    },
                    {
                        "markdown": "Page B body",
                        "metadata": {"sourceURL": "https://b.com", "statusCode": 200},
                    },
                    {
                        "markdown": "Not Found",
                        "metadata": {"sourceURL": "https://c.com", "statusCode": 404},
                    },
                ],
            },
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append((request.method, request.url.path))
            if request.method == "POST":
                body = json.loads(request.content)
                assert body["urls"] == ["https://a.com", "https://b.com", "https://c.com"]
                assert body["jsonOptions"]["prompt"] == "extract facts"
                return httpx.Response(200, json={"success": True, "id": "job-1"})
            return httpx.Response(200, json=status_responses.pop(0))

        async with mock_client(handler) as client:
            pages = await firecrawl_extract.extract(
                ["https://a.com", "https://b.com", "https://c.com"],
                "extract facts",
                http_client=client,
                poll_interval=0,
            )

        assert calls == [
            ("POST", "/v1/batch/scrape"),
            ("GET", "/v1/batch/scrape/job-1"),
            ("GET", "/v1/batch/scrape/job-1"),
        ]
        assert [p.url for p in pages] == ["https://a.com", "https://b.com", "https://c.com"]
        assert json.loads(pages[0].content) == {"facts": ["fact one"]}
        assert pages[1].content == "Page B body"
        assert pages[2].content == ""

    @pytest.mark.asyncio
    async def test_content_is_clipped(self):
        def handler(request):
            if request.method == "POST":
                return httpx.Response(200, json={"success": True, "id": "job-2"})
            return httpx.Response(
                200,
                json={
                    "status": "completed",
                    "data": [{"markdown": "y" * 10000, "metadata": {"sourceURL": "https://a.com"}}],
                },
            )

        async with mock_client(handler) as client:
            pages = await firecrawl_extract.extract(
                ["https://a.com"], "i", http_client=client, poll_interval=0
            )

        assert len(pages[0].content) == settings.extract_max_content_chars

    @pytest.mark.asyncio
    async def test_no_urls_makes_no_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        async with mock_client(handler) as client:
            assert await firecrawl_extract.extract(["not a url"], "i", http_client=client) == []

    @pytest.mark.asyncio
    async def test_failed_job_raises(self):
        def handler(request):
            if request.method == "POST":
                return httpx.Response(200, json={"success": True, "id": "job-3"})
            return httpx.Response(200, json={"status": "failed"})

        async with mock_client(handler) as client:
            with pytest.raises(ProviderError):
                await firecrawl_extract.extract(
                    ["https://a.com"], "i", http_client=client, poll_interval=0
                )

    @pytest.mark.asyncio
    async def test_polling_times_out(self):
        def handler(request):
            if request.method == "POST":
                return httpx.Response(200, json={"success": True, "id": "job-4"})
            return httpx.Response(200, json={"status": "scraping"})

        async with mock_client(handler) as client:
            with pytest.raises(ProviderError, match="timed out"):
                await firecrawl_extract.extract(
                    ["https://a.com"], "i", http_client=client, poll_interval=0, timeout=0
                )

    @pytest.mark.asyncio
    async def test_auth_failure_raises(self):
        def handler(request):
            return httpx.Response(401, json={"error": "Unauthorized"})

        async with mock_client(handler) as client:
            with pytest.raises(ProviderAuthError):
                await firecrawl_extract.extract(["https://a.com"], "i", http_client=client)
