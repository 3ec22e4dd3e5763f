"""Unit tests for the relay proxy API."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api.search_proxy import build_index_schema, escape_odata, reshape_hit
from app.core.config import Settings
from app.main import create_app


class Upstream:
    """Mock Azure endpoint recording every request it receives."""

    def __init__(self, responder=None):
        self.requests: list[httpx.Request] = []
        self.responder = responder or (lambda request: httpx.Response(200, json={}))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def body(self, index: int = -1):
        return json.loads(self.requests[index].content)


def make_client(settings: Settings, upstream: Upstream, raise_server_exceptions: bool = True) -> TestClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    app = create_app(settings=settings, http_client=http_client)
    return TestClient(app, raise_server_exceptions=raise_server_exceptions)


class TestHelpers:
    """Test suite for schema and hit helpers."""

    def test_index_schema(self):
        schema = build_index_schema("docs", 3072)
        fields = {field["name"]: field for field in schema["fields"]}

        assert schema["name"] == "docs"
        assert fields["id"]["key"] is True
        assert fields["contentVector"]["dimensions"] == 3072
        assert schema["vectorSearch"]["algorithms"][0]["hnswParameters"]["metric"] == "cosine"

    def test_reshape_hit_keeps_score_and_highlights(self):
        hit = reshape_hit(
            {
                "id": "1",
                "title": "t",
                "content": "c",
                "filename": "f.md",
                "category": "security-policy",
                "contentVector": [0.1],
                "@search.score": 1.5,
                "@search.highlights": {"content": ["<mark>c</mark>"]},
            }
        )
        assert "contentVector" not in hit
        assert hit["id"] == "1"
        assert hit["@search.score"] == 1.5
        assert hit["@search.highlights"] == {"content": ["<mark>c</mark>"]}

    def test_escape_odata(self):
        assert escape_odata("o'brien") == "o''brien"


class TestHealth:
    """Test suite for the health endpoint."""

    def test_reports_configuration(self, settings):
        response = make_client(settings, Upstream()).get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OK"
        assert data["environment"] == {"openaiConfigured": True, "searchConfigured": True}

    def test_reports_missing_keys(self, settings):
        settings = settings.model_copy(update={"azure_search_api_key": ""})
        data = make_client(settings, Upstream()).get("/api/health").json()
        assert data["environment"]["searchConfigured"] is False


class TestOpenAIRelay:
    """Test suite for the Azure OpenAI relay."""

    def test_embeddings_forwarded_with_server_key(self, settings):
        upstream = Upstream(lambda request: httpx.Response(200, json={"data": [{"embedding": [0.1]}]}))
        client = make_client(settings, upstream)

        response = client.post(
            "/api/openai/deployments/text-embedding-ada-002/embeddings?api-version=ignored",
            json={"input": ["hello"]},
            headers={"api-key": "client-key"},
        )

        assert response.status_code == 200
        assert response.json() == {"data": [{"embedding": [0.1]}]}
        sent = upstream.last
        assert str(sent.url).startswith(
            "https://openai.example.com/openai/deployments/text-embedding-ada-002/embeddings"
        )
        assert sent.url.params["api-version"] == settings.azure_openai_api_version
        assert sent.headers["api-key"] == "openai-key"
        assert upstream.body() == {"input": ["hello"]}

    def test_upstream_status_relayed(self, settings):
        upstream = Upstream(lambda request: httpx.Response(429, json={"error": {"message": "Rate limit"}}))

        response = make_client(settings, upstream).post(
            "/api/openai/deployments/gpt-4o-mini/chat/completions", json={"messages": []}
        )

        assert response.status_code == 429
        assert response.json() == {"error": {"message": "Rate limit"}}

    def test_catch_all_path(self, settings):
        upstream = Upstream()
        make_client(settings, upstream).post("/api/openai/deployments/x/audio/speech", json={"input": "hi"})
        assert upstream.last.url.path == "/openai/deployments/x/audio/speech"

    def test_missing_configuration(self, settings):
        settings = settings.model_copy(update={"azure_openai_api_key": ""})
        upstream = Upstream()

        response = make_client(settings, upstream).post(
            "/api/openai/deployments/x/embeddings", json={"input": ["a"]}
        )

        assert response.status_code == 500
        assert response.json()["error_code"] == "CONFIGURATION_ERROR"
        assert upstream.requests == []

    def test_unreachable_upstream(self, settings):
        def responder(request):
            raise httpx.ConnectError("connection refused")

        response = make_client(settings, Upstream(responder)).post(
            "/api/openai/deployments/x/embeddings", json={"input": ["a"]}
        )

        assert response.status_code == 500
        assert response.json()["error_code"] == "UPSTREAM_UNREACHABLE"
        assert "Failed to fetch" in response.json()["error"]


class TestSearchIndexRoutes:
    """Test suite for index management routes."""

    def test_create_index(self, settings):
        upstream = Upstream(lambda request: httpx.Response(201, json={"name": "security-docs-index"}))

        response = make_client(settings, upstream).post("/api/search/create-index", json={})

        assert response.status_code == 200
        assert upstream.last.method == "PUT"
        assert upstream.last.url.path == "/indexes/security-docs-index"
        assert upstream.last.headers["api-key"] == "search-key"
        assert upstream.body()["fields"][-1]["dimensions"] == 1536

    def test_create_index_failure_relays_status(self, settings):
        upstream = Upstream(lambda request: httpx.Response(400, text="Invalid index definition"))

        response = make_client(settings, upstream).post("/api/search/create-index", json={"indexName": "bad"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid index definition"}
        assert upstream.last.url.path == "/indexes/bad"

    def test_delete_missing_index_succeeds(self, settings):
        upstream = Upstream(lambda request: httpx.Response(404, json={"error": "not found"}))

        response = make_client(settings, upstream).request(
            "DELETE", "/api/search/delete-index", json={"indexName": "old"}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert upstream.last.method == "DELETE"

    def test_index_exists(self, settings):
        upstream = Upstream(lambda request: httpx.Response(200, json={"name": "security-docs-index"}))
        response = make_client(settings, upstream).post("/api/search/index-exists", json={})
        assert response.json() == {"exists": True}

    def test_index_missing(self, settings):
        upstream = Upstream(lambda request: httpx.Response(404, json={}))
        response = make_client(settings, upstream).post("/api/search/index-exists", json={"indexName": "nope"})
        assert response.json() == {"exists": False}

    def test_index_exists_unreachable(self, settings):
        def responder(request):
            raise httpx.ConnectError("down")

        response = make_client(settings, Upstream(responder)).post("/api/search/index-exists", json={})
        assert response.status_code == 200
        assert response.json() == {"exists": False}

    def test_index_stats(self, settings):
        upstream = Upstream(lambda request: httpx.Response(200, json={"documentCount": 3, "storageSize": 900}))

        response = make_client(settings, upstream).get("/api/search/index-stats")

        assert response.json() == {"documentCount": 3, "storageSize": 900}
        assert upstream.last.url.path == "/indexes/security-docs-index/stats"

    def test_index_status_missing(self, settings):
        upstream = Upstream(lambda request: httpx.Response(404, json={}))

        data = make_client(settings, upstream).get("/api/search/index/status").json()

        assert data == {"indexName": "security-docs-index", "exists": False, "documentCount": 0, "storageSize": 0}

    def test_index_status_existing(self, settings):
        def responder(request):
            if request.url.path.endswith("/stats"):
                return httpx.Response(200, json={"documentCount": 2, "storageSize": 10})
            return httpx.Response(200, json={"name": "security-docs-index"})

        data = make_client(settings, Upstream(responder)).get("/api/search/index/status").json()
        assert data["exists"] is True
        assert data["documentCount"] == 2

    def test_clear_index(self, settings):
        def responder(request):
            if request.url.path.endswith("/docs/search"):
                return httpx.Response(200, json={"value": [{"id": "a"}, {"id": "b"}]})
            return httpx.Response(200, json={"value": []})

        upstream = Upstream(responder)
        response = make_client(settings, upstream).delete("/api/search/index/clear")

        assert response.json() == {"deleted": 2}
        assert upstream.body(-1) == {
            "value": [{"@search.action": "delete", "id": "a"}, {"@search.action": "delete", "id": "b"}]
        }

    def test_not_configured(self, settings):
        settings = settings.model_copy(update={"azure_search_endpoint": ""})
        response = make_client(settings, Upstream()).get("/api/search/index-stats")
        assert response.status_code == 500
        assert response.json()["error_code"] == "CONFIGURATION_ERROR"


class TestSearchDocumentRoutes:
    """Test suite for document upload and search routes."""

    @pytest.fixture
    def document(self):
        return {
            "id": "abc",
            "title": "policy",
            "content": "text",
            "filename": "policy.md",
            "category": "security-policy",
            "contentVector": [0.1, 0.2],
        }

    def test_index_document(self, settings, document):
        upstream = Upstream(lambda request: httpx.Response(200, json={"value": [{"key": "abc", "status": True}]}))

        response = make_client(settings, upstream).post("/api/search/index-document", json=document)

        assert response.status_code == 200
        assert upstream.last.url.path == "/indexes/security-docs-index/docs/index"
        assert upstream.body() == {"value": [{"@search.action": "upload", **document}]}

    def test_index_documents_requires_documents(self, settings):
        response = make_client(settings, Upstream()).post("/api/search/index-documents", json={"documents": []})

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_hybrid_search(self, settings):
        hits = [
            {
                "id": "1",
                "title": "Input validation",
                "content": "Validate input",
                "filename": "p.md",
                "category": "security-policy",
                "@search.score": 2.5,
                "@search.highlights": {"content": ["<mark>Validate</mark> input"]},
            }
        ]
        upstream = Upstream(lambda request: httpx.Response(200, json={"value": hits}))

        response = make_client(settings, upstream).post(
            "/api/search/hybrid-search",
            json={"query": "validation", "queryVector": [0.1, 0.2], "top": 3, "highlight": "content"},
        )

        body = upstream.body()
        assert body["search"] == "validation"
        assert body["queryType"] == "full"
        assert body["highlight"] == "content"
        assert body["vectorQueries"] == [{"kind": "vector", "vector": [0.1, 0.2], "fields": "contentVector", "k": 3}]
        result = response.json()["results"][0]
        assert result["@search.score"] == 2.5
        assert result["@search.highlights"] == {"content": ["<mark>Validate</mark> input"]}

    def test_hybrid_search_without_vector(self, settings):
        upstream = Upstream(lambda request: httpx.Response(200, json={"value": []}))

        make_client(settings, upstream).post("/api/search/hybrid-search", json={"query": "xss"})

        assert "vectorQueries" not in upstream.body()
        assert "highlight" not in upstream.body()

    def test_hybrid_search_upstream_error(self, settings):
        upstream = Upstream(lambda request: httpx.Response(400, text="Invalid vector field"))

        response = make_client(settings, upstream).post("/api/search/hybrid-search", json={"query": "xss"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid vector field"}

    def test_keyword_search(self, settings):
        upstream = Upstream(lambda request: httpx.Response(200, json={"value": [{"id": "1", "@search.score": 1}]}))

        response = make_client(settings, upstream).post("/api/search/keyword-search", json={"query": '"xss"~2'})

        assert upstream.body()["search"] == '"xss"~2'
        assert "vectorQueries" not in upstream.body()
        assert response.json()["results"][0]["id"] == "1"

    def test_category_search_filter(self, settings):
        upstream = Upstream(lambda request: httpx.Response(200, json={"value": []}))

        make_client(settings, upstream).post("/api/search/category-search", json={"category": "it's-policy"})

        assert upstream.body()["filter"] == "category eq 'it''s-policy'"
        assert upstream.body()["top"] == 10

    def test_category_search_requires_category(self, settings):
        response = make_client(settings, Upstream()).post("/api/search/category-search", json={"query": "x"})
        assert response.status_code == 422
