"""Azure AI Search relay routes.

Each route shapes one request against the configured search service with
the server-held admin key and reshapes the answer for the service layer.
"""

import logging
from typing import Any

import httpx
from fastapi import APIRouter, Depends

from app.api.deps import get_app_settings, get_http_client, require_search
from app.api.schemas import (
    CategorySearchRequest,
    ClearIndexResponse,
    HybridSearchRequest,
    IndexDocumentsRequest,
    IndexExistsResponse,
    IndexNameRequest,
    IndexStatsResponse,
    IndexStatusResponse,
    KeywordSearchRequest,
    SearchResponse,
    SuccessResponse,
)
from app.api.upstream import raise_for_upstream, response_json, send_upstream
from app.core.config import Settings
from app.core.errors import ProxyRequestError
from app.domain.models import SearchDocument

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])

# Largest page the search service returns and the largest indexing batch.
PAGE_SIZE = 1000

HIT_FIELDS = ("id", "title", "content", "filename", "category")


def build_index_schema(index_name: str, dimensions: int = 1536) -> dict[str, Any]:
    """Return the schema of the policy document index.

    ``contentVector`` is searched with HNSW over cosine similarity.
    """
    return {
        "name": index_name,
        "fields": [
            {"name": "id", "type": "Edm.String", "key": True, "searchable": False,
             "filterable": False, "sortable": False, "facetable": False},
            {"name": "title", "type": "Edm.String", "searchable": True,
             "filterable": True, "sortable": True, "facetable": False},
            {"name": "content", "type": "Edm.String", "searchable": True,
             "filterable": False, "sortable": False, "facetable": False},
            {"name": "category", "type": "Edm.String", "searchable": True,
             "filterable": True, "sortable": True, "facetable": True},
            {"name": "filename", "type": "Edm.String", "searchable": True,
             "filterable": True, "sortable": True, "facetable": False},
            {"name": "contentVector", "type": "Collection(Edm.Single)", "searchable": True,
             "filterable": False, "sortable": False, "facetable": False,
             "dimensions": dimensions, "vectorSearchProfile": "defaultProfile"},
        ],
        "vectorSearch": {
            "profiles": [{"name": "defaultProfile", "algorithm": "defaultAlgorithm"}],
            "algorithms": [
                {
                    "name": "defaultAlgorithm",
                    "kind": "hnsw",
                    "hnswParameters": {"metric": "cosine", "m": 4, "efConstruction": 400, "efSearch": 500},
                }
            ],
        },
    }  # fmt: skip


def reshape_hit(item: dict[str, Any]) -> dict[str, Any]:
    """Keep the document fields plus score and highlights of one hit."""
    hit = {name: item.get(name) for name in HIT_FIELDS}
    hit["@search.score"] = item.get("@search.score") or 0
    if "@search.highlights" in item:
        hit["@search.highlights"] = item["@search.highlights"]
    return hit


def escape_odata(value: str) -> str:
    """Escape a string literal for an OData filter."""
    return value.replace("'", "''")


class SearchRelay:
    """Builds upstream URLs and sends requests for one settings object."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        require_search(settings)
        self.settings = settings
        self.client = client

    @property
    def params(self) -> dict[str, str]:
        return {"api-version": self.settings.azure_search_api_version}

    def index_url(self, index_name: str | None = None) -> str:
        return f"{self.settings.azure_search_endpoint}/indexes/{index_name or self.settings.search_index_name}"

    async def send(
        self,
        method: str,
        path: str,
        operation: str,
        json: Any = None,
        index_name: str | None = None,
    ) -> httpx.Response:
        return await send_upstream(
            self.client,
            method,
            f"{self.index_url(index_name)}{path}",
            api_key=self.settings.azure_search_api_key,
            operation=operation,
            json=json,
            params=self.params,
        )

    async def search(self, body: dict[str, Any], operation: str) -> list[dict[str, Any]]:
        response = await self.send("POST", "/docs/search", operation, json=body)
        raise_for_upstream(response, operation)
        return response.json().get("value", [])

    async def upload(self, documents: list[SearchDocument], operation: str) -> Any:
        batch = {
            "value": [
                {"@search.action": "upload", **document.model_dump(by_alias=True)} for document in documents
            ]
        }
        response = await self.send("POST", "/docs/index", operation, json=batch)
        raise_for_upstream(response, operation)
        return response_json(response)

    async def stats(self) -> IndexStatsResponse:
        response = await self.send("GET", "/stats", "index-stats")
        raise_for_upstream(response, "Index stats lookup")
        data = response.json()
        return IndexStatsResponse(
            document_count=data.get("documentCount") or 0,
            storage_size=data.get("storageSize") or 0,
        )


def get_relay(
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> SearchRelay:
    return SearchRelay(settings, client)


# =============================================================================
# Index management
# =============================================================================


@router.post("/create-index")
async def create_index(request: IndexNameRequest, relay: SearchRelay = Depends(get_relay)) -> Any:
    """Create the index with the policy document schema."""
    index_name = request.index_name or relay.settings.search_index_name
    schema = build_index_schema(index_name, relay.settings.embedding_dimensions)

    response = await relay.send("PUT", "", "create-index", json=schema, index_name=index_name)
    raise_for_upstream(response, "Index creation")

    logger.info(f"Created search index '{index_name}'")
    return response_json(response)


@router.delete("/delete-index", response_model=SuccessResponse)
async def delete_index(
    request: IndexNameRequest | None = None, relay: SearchRelay = Depends(get_relay)
) -> SuccessResponse:
    """Delete an index; a missing index counts as deleted."""
    index_name = (request.index_name if request else None) or relay.settings.search_index_name

    response = await relay.send("DELETE", "", "delete-index", index_name=index_name)
    raise_for_upstream(response, "Index deletion", allowed_statuses=frozenset({404}))

    logger.info(f"Deleted search index '{index_name}' (status {response.status_code})")
    return SuccessResponse()


@router.post("/index-exists", response_model=IndexExistsResponse)
async def index_exists(
    request: IndexNameRequest | None = None, relay: SearchRelay = Depends(get_relay)
) -> IndexExistsResponse:
    """Report whether an index exists; unreachable upstream means no."""
    index_name = (request.index_name if request else None) or relay.settings.search_index_name
    try:
        response = await relay.send("GET", "", "index-exists", index_name=index_name)
    except ProxyRequestError as e:
        logger.warning(f"Index existence check failed: {e}")
        return IndexExistsResponse(exists=False)

    return IndexExistsResponse(exists=response.is_success)


@router.get("/index-stats", response_model=IndexStatsResponse)
async def index_stats(relay: SearchRelay = Depends(get_relay)) -> IndexStatsResponse:
    """Return document count and storage size of the index."""
    return await relay.stats()


@router.get("/index/status", response_model=IndexStatusResponse)
async def index_status(relay: SearchRelay = Depends(get_relay)) -> IndexStatusResponse:
    """Return existence plus statistics of the index."""
    index_name = relay.settings.search_index_name
    response = await relay.send("GET", "", "index-status")
    if response.status_code == 404:
        return IndexStatusResponse(index_name=index_name, exists=False)
    raise_for_upstream(response, "Index status lookup")

    stats = await relay.stats()
    return IndexStatusResponse(
        index_name=index_name,
        exists=True,
        document_count=stats.document_count,
        storage_size=stats.storage_size,
    )


@router.delete("/index/clear", response_model=ClearIndexResponse)
async def clear_index(relay: SearchRelay = Depends(get_relay)) -> ClearIndexResponse:
    """Delete every document while keeping the index definition."""
    ids: list[str] = []
    skip = 0
    while True:
        page = await relay.search({"search": "*", "select": "id", "top": PAGE_SIZE, "skip": skip}, "index-clear")
        ids.extend(item["id"] for item in page if item.get("id"))
        if len(page) < PAGE_SIZE:
            break
        skip += PAGE_SIZE

    for start in range(0, len(ids), PAGE_SIZE):
        batch = {"value": [{"@search.action": "delete", "id": doc_id} for doc_id in ids[start : start + PAGE_SIZE]]}
        response = await relay.send("POST", "/docs/index", "index-clear", json=batch)
        raise_for_upstream(response, "Index clearing")

    logger.info(f"Cleared {len(ids)} document(s) from '{relay.settings.search_index_name}'")
    return ClearIndexResponse(deleted=len(ids))


# =============================================================================
# Documents
# =============================================================================


@router.post("/index-document")
async def index_document(document: SearchDocument, relay: SearchRelay = Depends(get_relay)) -> Any:
    """Upload one document."""
    return await relay.upload([document], "Document indexing")


@router.post("/index-documents")
async def index_documents(request: IndexDocumentsRequest, relay: SearchRelay = Depends(get_relay)) -> Any:
    """Upload a batch of documents."""
    return await relay.upload(request.documents, "Batch indexing")


# =============================================================================
# Search
# =============================================================================


@router.post("/hybrid-search", response_model=SearchResponse)
async def hybrid_search(request: HybridSearchRequest, relay: SearchRelay = Depends(get_relay)) -> SearchResponse:
    """Full-Lucene keyword search, combined with vector search when a vector is given."""
    body: dict[str, Any] = {
        "search": request.query,
        "top": request.top,
        "select": request.select,
        "searchMode": request.search_mode,
        "queryType": "full",
        "searchFields": "title,content,category",
        **request.to_search_body(),
    }
    if request.query_vector:
        body["vectorQueries"] = [
            {"kind": "vector", "vector": request.query_vector, "fields": "contentVector", "k": request.top}
        ]

    hits = await relay.search(body, "Hybrid search")
    return SearchResponse(results=[reshape_hit(item) for item in hits])


@router.post("/keyword-search", response_model=SearchResponse)
async def keyword_search(request: KeywordSearchRequest, relay: SearchRelay = Depends(get_relay)) -> SearchResponse:
    """Keyword-only search, used when hybrid search is unavailable."""
    body = {
        "search": request.query,
        "top": request.top,
        "select": request.select,
        "searchMode": "any",
        "queryType": "full",
        **request.to_search_body(),
    }
    hits = await relay.search(body, "Keyword search")
    return SearchResponse(results=[reshape_hit(item) for item in hits])


@router.post("/category-search", response_model=SearchResponse)
async def category_search(request: CategorySearchRequest, relay: SearchRelay = Depends(get_relay)) -> SearchResponse:
    """Search restricted to one category."""
    body = {
        "search": request.query,
        "filter": f"category eq '{escape_odata(request.category)}'",
        "top": request.top,
        "select": request.select,
        **request.to_search_body(),
    }
    hits = await relay.search(body, "Category search")
    return SearchResponse(results=[reshape_hit(item) for item in hits])
