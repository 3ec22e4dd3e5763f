"""Unit tests for the proxy-backed search index client."""

import asyncio
import json

import httpx
import pytest

from app.core.errors import ProxyRequestError, UpstreamError
from app.domain.models import SearchDocument
from app.strategies.search.azure_search import AzureAISearchIndex


def make_index(handler, recreate_delay: float = 0) -> AzureAISearchIndex:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AzureAISearchIndex("http://proxy.test/", recreate_delay=recreate_delay, client=client)


class TestAzureAISearchIndex:
    """Test suite for AzureAISearchIndex."""

    def test_hybrid_search_request_and_rules(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "results": [
                        {
                            "id": "doc-1",
                            "title": "Input validation",
                            "content": "Validate all input.",
                            "filename": "policy.md",
                            "category": "security-policy",
                            "@search.score": 3.0,
                        }
                    ]
                },
            )

        index = make_index(handler)
        rules = asyncio.run(index.search_security_rules("xss", [0.5, 0.5], top=3))

        assert seen["url"] == "http://proxy.test/api/search/hybrid-search"
        assert seen["body"]["query"] == "xss"
        assert seen["body"]["queryVector"] == [0.5, 0.5]
        assert seen["body"]["top"] == 3
        assert seen["body"]["highlight"] == "content"
        assert rules[0].id == "doc-1"
        assert rules[0].relevance == 0.75

    def test_error_status_raises_upstream_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text="bad query")

        index = make_index(handler)
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(index.keyword_search("xss"))

        assert exc_info.value.status_code == 400
        assert "bad query" in str(exc_info.value)

    def test_unreachable_proxy_raises_proxy_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        index = make_index(handler)
        with pytest.raises(ProxyRequestError) as exc_info:
            asyncio.run(index.get_index_stats())

        assert "Failed to fetch" in str(exc_info.value)

    def test_index_exists_reads_flag(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert json.loads(request.content) == {"indexName": "security-docs-index"}
            return httpx.Response(200, json={"exists": True})

        assert asyncio.run(make_index(handler).index_exists()) is True

    def test_index_exists_false_on_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        assert asyncio.run(make_index(handler).index_exists()) is False

    def test_delete_index_tolerates_missing_index(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "not found"})

        asyncio.run(make_index(handler).delete_index())

    def test_index_document_sends_camel_case(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"value": []})

        document = SearchDocument(
            id="abc",
            title="policy",
            content="text",
            filename="policy.md",
            category="security-policy",
            content_vector=[0.1],
        )
        asyncio.run(make_index(handler).index_document(document))

        assert seen["path"] == "/api/search/index-document"
        assert seen["body"]["contentVector"] == [0.1]

    def test_clear_index_returns_deleted_count(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "DELETE"
            return httpx.Response(200, json={"deleted": 7})

        assert asyncio.run(make_index(handler).clear_index()) == 7

    def test_stats(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"documentCount": 4, "storageSize": 2048})

        stats = asyncio.run(make_index(handler).get_index_stats())
        assert stats.document_count == 4
        assert stats.storage_size == 2048

    def test_recreate_index_call_order(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path.rsplit("/", 1)[-1])
            return httpx.Response(200, json={"success": True})

        asyncio.run(make_index(handler).recreate_index())
        assert calls == ["delete-index", "create-index"]
