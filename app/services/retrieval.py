"""Retrieval of the security rules relevant to a code analysis."""

import logging
import re

from app.core.errors import UpstreamError
from app.domain.models import CodeAnalysisResult, SecurityRule
from app.interfaces.embedder import BaseEmbedder
from app.interfaces.search_index import TOP_RULES, BaseSearchIndex, build_keyword_query

logger = logging.getLogger(__name__)

MAX_KEYWORDS = 20

# Path segments that carry no meaning for a policy search.
_API_NOISE = {"api", "v1", "v2", "v3", "get", "post", "put", "patch", "delete", "http", "https"}
_API_TOKEN = re.compile(r"[A-Za-z][A-Za-z0-9_-]{2,}")


def api_tokens(api: str) -> list[str]:
    """Split an endpoint such as ``POST /api/users/{id}`` into search terms."""
    return [
        token.lower()
        for token in _API_TOKEN.findall(api)
        if token.lower() not in _API_NOISE
    ]


def build_keywords(analysis: CodeAnalysisResult, limit: int = MAX_KEYWORDS) -> list[str]:
    """Collect de-duplicated search keywords from an analysis.

    Analysis keywords come first, then security concerns, then tokens of
    the backend API names.
    """
    candidates = [*analysis.keywords, *analysis.security_concerns]
    for api in analysis.backend_apis:
        candidates.extend(api_tokens(api))

    keywords: list[str] = []
    seen: set[str] = set()
    for candidate in candidates:
        keyword = candidate.strip()
        if not keyword or keyword.lower() in seen:
            continue
        seen.add(keyword.lower())
        keywords.append(keyword)

    return keywords[:limit]


def build_search_query(keywords: list[str]) -> str:
    """Build the natural-language query that is embedded for vector search."""
    if not keywords:
        return "security rules for web application input validation, authentication and access control"
    return f"security rules and test requirements for: {', '.join(keywords)}"


class SecurityRuleRetriever:
    """Finds the security rules that apply to analyzed code.

    Attributes:
        search_index: The security policy index.
        embedder: Embeds the natural-language query.
    """

    def __init__(self, search_index: BaseSearchIndex, embedder: BaseEmbedder) -> None:
        self.search_index = search_index
        self.embedder = embedder

    async def retrieve(self, analysis: CodeAnalysisResult) -> list[SecurityRule]:
        """Run vector and keyword search for an analysis.

        If the hybrid search endpoint fails, a plain keyword search is
        tried once.

        Args:
            analysis: Result of the code analysis step.

        Returns:
            At most five rules, most relevant first. Empty when the keyword
            search fails as well, so generation continues without rules.

        Raises:
            ProxyRequestError: If the proxy cannot be reached.
        """
        keywords = build_keywords(analysis)
        query = build_search_query(keywords)
        logger.info(f"Retrieving security rules for {len(keywords)} keyword(s)")

        query_vector = await self.embedder.embed_single(query)

        try:
            return await self.search_index.search_for_code_analysis(keywords, query_vector)
        except UpstreamError as e:
            logger.warning(f"Hybrid search failed ({e.status_code}), falling back to keyword search")

        fallback_query = build_keyword_query(keywords) if keywords else "*"
        try:
            return await self.search_index.keyword_search(fallback_query, top=TOP_RULES)
        except UpstreamError as e:
            logger.warning(f"Keyword search failed ({e.status_code}), continuing without security rules")
            return []
