"""Concrete search index implementations."""

from app.strategies.search.azure_search import (
    AzureAISearchIndex,
    normalize_relevance,
    summarize_content,
    to_security_rule,
)

__all__ = [
    "AzureAISearchIndex",
    "normalize_relevance",
    "summarize_content",
    "to_security_rule",
]
