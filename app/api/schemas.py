"""API request and response schemas.

Pydantic v2 models for the relay endpoints. Field names on the wire are
camelCase to match the service-layer clients.
"""

from typing import Any

from pydantic import BaseModel, Field

from app.domain.models import CamelModel, SearchDocument


# =============================================================================
# Search Request Schemas
# =============================================================================


class IndexNameRequest(CamelModel):
    """Body naming an index; falls back to the configured index."""

    index_name: str | None = None


class IndexDocumentsRequest(CamelModel):
    """Batch upload body."""

    documents: list[SearchDocument] = Field(min_length=1)


class HighlightOptions(CamelModel):
    """Hit highlighting options shared by the search endpoints."""

    highlight: str | None = None
    highlight_pre_tag: str = "<mark>"
    highlight_post_tag: str = "</mark>"

    def to_search_body(self) -> dict[str, Any]:
        if not self.highlight:
            return {}
        return {
            "highlight": self.highlight,
            "highlightPreTag": self.highlight_pre_tag,
            "highlightPostTag": self.highlight_post_tag,
        }


class HybridSearchRequest(HighlightOptions):
    """Keyword query plus optional query vector."""

    query: str = "*"
    query_vector: list[float] | None = None
    top: int = Field(default=5, ge=1, le=1000)
    select: str = "id,title,content,filename,category"
    search_mode: str = Field(default="any", pattern="^(any|all)$")


class KeywordSearchRequest(HighlightOptions):
    """Keyword-only query."""

    query: str = "*"
    top: int = Field(default=5, ge=1, le=1000)
    select: str = "id,title,content,filename,category"


class CategorySearchRequest(HighlightOptions):
    """Query restricted to one category."""

    category: str = Field(min_length=1)
    query: str = "*"
    top: int = Field(default=10, ge=1, le=1000)
    select: str = "id,title,content,filename,category"


# =============================================================================
# Response Schemas
# =============================================================================


class SearchResponse(BaseModel):
    """Reshaped search hits."""

    results: list[dict[str, Any]]


class IndexStatsResponse(CamelModel):
    document_count: int = 0
    storage_size: int = 0


class IndexStatusResponse(CamelModel):
    index_name: str
    exists: bool
    document_count: int = 0
    storage_size: int = 0


class IndexExistsResponse(BaseModel):
    exists: bool


class ClearIndexResponse(BaseModel):
    deleted: int


class SuccessResponse(BaseModel):
    success: bool = True


class HealthEnvironment(CamelModel):
    openai_configured: bool
    search_configured: bool


class HealthResponse(BaseModel):
    status: str = "OK"
    timestamp: str
    environment: HealthEnvironment


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(description="Error message")
    error_code: str | None = Field(default=None, description="Machine-readable error code")
    details: dict[str, Any] | None = Field(default=None, description="Additional error details")
