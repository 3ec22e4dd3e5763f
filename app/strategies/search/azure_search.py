"""Azure AI Search index accessed through the relay proxy.

The proxy holds the admin key; this client only shapes JSON requests for
the ``/api/search/*`` endpoints and turns the hits into SecurityRules.
"""

import logging
import re
from typing import Any

import httpx

from app.core.errors import ProxyRequestError, UpstreamError
from app.domain.models import IndexStats, SearchDocument, SecurityRule
from app.interfaces.search_index import TOP_RULES, BaseSearchIndex

logger = logging.getLogger(__name__)

# Raw scores above this are treated as fully relevant.
MAX_EXPECTED_SCORE = 4.0
MAX_RULE_CONTENT = 800
HIGHLIGHT_FRAGMENTS = 3
DEFAULT_CATEGORY = "security-policy"

_HEADING_PATTERN = re.compile(r"^#### ", re.MULTILINE)


def summarize_content(content: str, max_length: int = 500) -> str:
    """Shorten a policy document for use in a prompt.

    Content within the limit is returned unchanged. Otherwise the content
    is split at its ``#### `` headings, any text before the first heading
    counting as a section of its own, and the leading sections that fit
    are kept whole, so the summary is always a prefix of the content. If
    there are no headings or nothing fits, the text is cut hard and an
    ellipsis appended.

    Args:
        content: The document text.
        max_length: Character budget.

    Returns:
        The shortened text.
    """
    if len(content) <= max_length:
        return content

    starts = [match.start() for match in _HEADING_PATTERN.finditer(content)]
    if starts:
        bounds = [*sorted({0, *starts}), len(content)]
        summary = ""
        for start, end in zip(bounds, bounds[1:]):
            section = content[start:end]
            if len(summary) + len(section) > max_length:
                break
            summary += section

        if summary.strip():
            return summary.rstrip()

    return content[:max_length] + "..."


def normalize_relevance(score: float) -> float:
    """Map a raw search score into [0, 1]."""
    return max(0.0, min(score / MAX_EXPECTED_SCORE, 1.0))


def to_security_rule(hit: dict[str, Any]) -> SecurityRule:
    """Convert one search hit into a SecurityRule.

    Highlighted fragments are preferred over the raw content.
    """
    highlights = (hit.get("@search.highlights") or {}).get("content") or []

    if highlights:
        content = "... ".join(highlights[:HIGHLIGHT_FRAGMENTS])[:MAX_RULE_CONTENT] + "..."
    elif hit.get("content"):
        content = summarize_content(hit["content"], MAX_RULE_CONTENT)
    else:
        content = ""

    return SecurityRule(
        id=str(hit.get("id") or ""),
        title=hit.get("title") or "",
        content=content,
        filename=hit.get("filename") or "",
        category=hit.get("category") or DEFAULT_CATEGORY,
        relevance=normalize_relevance(float(hit.get("@search.score") or 0)),
    )


class AzureAISearchIndex(BaseSearchIndex):
    """Search index implementation that calls the proxy's search routes.

    Attributes:
        proxy_url: Base URL of the relay proxy.
        index_name: Name of the index.
    """

    def __init__(
        self,
        proxy_url: str,
        index_name: str = "security-docs-index",
        timeout: float | None = None,
        recreate_delay: float = 2.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the search client.

        Args:
            proxy_url: Base URL of the proxy (e.g. "http://localhost:3001").
            index_name: Name of the security policy index.
            timeout: Request timeout in seconds; None waits indefinitely.
            recreate_delay: Pause between delete and create on recreation.
            client: Pre-built HTTP client, mainly for tests.
        """
        self._base_url = f"{proxy_url.rstrip('/')}/api/search"
        self.index_name = index_name
        self.recreate_delay = recreate_delay
        self._timeout = timeout
        self._client = client

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json: Any = None,
        allowed_statuses: frozenset[int] = frozenset(),
    ) -> httpx.Response:
        """Send a request to the proxy and raise on error statuses.

        Args:
            method: HTTP method.
            path: Path below ``/api/search``.
            operation: Human-readable name used in error messages.
            json: Optional JSON body.
            allowed_statuses: Error statuses that are not treated as failures.

        Raises:
            ProxyRequestError: If the proxy cannot be reached.
            UpstreamError: If the proxy answers with an error status.
        """
        url = f"{self._base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.request(method, url, json=json)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(method, url, json=json)
        except httpx.HTTPError as e:
            logger.error(f"{operation}: proxy unreachable at {url}: {e}")
            raise ProxyRequestError(f"Failed to fetch {url}: {e}") from e

        if response.is_error and response.status_code not in allowed_statuses:
            logger.error(f"{operation} failed: {response.status_code} {response.text}")
            raise UpstreamError(
                f"{operation} failed: {response.status_code} {response.reason_phrase}\n"
                f"Details: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        return response

    async def create_index(self) -> None:
        """Create the index with the policy document schema."""
        await self._request(
            "POST", "/create-index", "Index creation", json={"indexName": self.index_name}
        )
        logger.info(f"Created index '{self.index_name}'")

    async def delete_index(self) -> None:
        """Delete the index; 404 is tolerated."""
        await self._request(
            "DELETE",
            "/delete-index",
            "Index deletion",
            json={"indexName": self.index_name},
            allowed_statuses=frozenset({404}),
        )
        logger.info(f"Deleted index '{self.index_name}'")

    async def clear_index(self) -> int:
        """Delete every document but keep the index."""
        response = await self._request("DELETE", "/index/clear", "Index clearing")
        deleted = int(response.json().get("deleted", 0))
        logger.info(f"Cleared {deleted} document(s) from '{self.index_name}'")
        return deleted

    async def index_exists(self) -> bool:
        """Return True if the index exists; any failure counts as missing."""
        try:
            response = await self._request(
                "POST", "/index-exists", "Index lookup", json={"indexName": self.index_name}
            )
        except (ProxyRequestError, UpstreamError) as e:
            logger.warning(f"Index existence check failed, assuming missing: {e}")
            return False

        return bool(response.json().get("exists", False))

    async def index_document(self, document: SearchDocument) -> None:
        """Upload a single document."""
        await self._request(
            "POST",
            "/index-document",
            "Document indexing",
            json=document.model_dump(by_alias=True),
        )
        logger.debug(f"Indexed document {document.id} ({document.filename})")

    async def index_documents(self, documents: list[SearchDocument]) -> None:
        """Upload a batch of documents in one request."""
        if not documents:
            return

        await self._request(
            "POST",
            "/index-documents",
            "Batch indexing",
            json={"documents": [doc.model_dump(by_alias=True) for doc in documents]},
        )
        logger.info(f"Indexed batch of {len(documents)} document(s)")

    async def search_security_rules(
        self,
        query: str,
        query_vector: list[float] | None = None,
        top: int = TOP_RULES,
    ) -> list[SecurityRule]:
        """Run a hybrid search and post-process the hits."""
        body = {
            "query": query,
            "queryVector": query_vector,
            "top": top,
            "select": "id,title,content,filename,category",
            "highlight": "content",
            "highlightPreTag": "<mark>",
            "highlightPostTag": "</mark>",
            "searchMode": "any",
        }
        response = await self._request("POST", "/hybrid-search", "Search", json=body)
        rules = [to_security_rule(hit) for hit in response.json().get("results", [])]

        logger.info(f"Hybrid search returned {len(rules)} rule(s)")
        return rules

    async def keyword_search(self, query: str, top: int = TOP_RULES) -> list[SecurityRule]:
        """Run a keyword-only search through the fallback endpoint."""
        body = {
            "query": query,
            "top": top,
            "highlight": "content",
            "highlightPreTag": "<mark>",
            "highlightPostTag": "</mark>",
        }
        response = await self._request("POST", "/keyword-search", "Keyword search", json=body)
        rules = [to_security_rule(hit) for hit in response.json().get("results", [])]

        logger.info(f"Keyword search returned {len(rules)} rule(s)")
        return rules

    async def search_by_category(
        self, category: str, query: str | None = None
    ) -> list[SecurityRule]:
        """Search within one document category."""
        body = {
            "category": category,
            "query": query or "*",
            "highlight": "content",
            "highlightPreTag": "<mark>",
            "highlightPostTag": "</mark>",
        }
        response = await self._request("POST", "/category-search", "Category search", json=body)
        return [to_security_rule(hit) for hit in response.json().get("results", [])]

    async def get_index_stats(self) -> IndexStats:
        """Return document count and storage size."""
        response = await self._request("GET", "/index-stats", "Index stats lookup")
        data = response.json()
        return IndexStats(
            document_count=data.get("documentCount") or 0,
            storage_size=data.get("storageSize") or 0,
        )
