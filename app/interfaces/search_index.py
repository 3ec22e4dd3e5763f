"""Abstract base class for security-rule search indexes.

The Strategy Pattern keeps the orchestration code independent of the
concrete search backend and lets tests run against in-memory fakes.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

from app.domain.models import IndexStats, SearchDocument, SecurityRule

logger = logging.getLogger(__name__)

# Number of rules handed to the generation prompt.
TOP_RULES = 5


def build_keyword_query(keywords: list[str]) -> str:
    """Build a full-Lucene OR query with a proximity of 2 per keyword.

    Quotes are dropped and backslashes escaped so every keyword stays a
    closed phrase.

    Example:
        ``["sql injection", "xss"]`` -> ``"sql injection"~2 OR "xss"~2``
    """
    terms = [keyword.replace('"', "").strip().replace("\\", "\\\\") for keyword in keywords]
    return " OR ".join(f'"{term}"~2' for term in terms if term)


def merge_rule_sets(*rule_sets: list[SecurityRule], limit: int = TOP_RULES) -> list[SecurityRule]:
    """Merge result sets by id, keeping the first hit per id.

    Returns:
        Rules sorted by relevance (descending), at most ``limit``.
    """
    merged: list[SecurityRule] = []
    seen: set[str] = set()
    for rules in rule_sets:
        for rule in rules:
            if rule.id in seen:
                continue
            seen.add(rule.id)
            merged.append(rule)

    merged.sort(key=lambda rule: rule.relevance, reverse=True)
    return merged[:limit]


class BaseSearchIndex(ABC):
    """Abstract base class for the security policy index.

    Subclasses implement the primitive operations; the keyword, vector and
    combined searches plus index recreation are built on top of them.

    Attributes:
        index_name: Name of the index the operations act on.
        recreate_delay: Seconds to wait between deleting and re-creating
            the index (the service needs a moment to release the name).
    """

    index_name: str = "security-docs-index"
    recreate_delay: float = 2.0

    @abstractmethod
    async def create_index(self) -> None:
        """Create the index with the policy document schema."""
        ...

    @abstractmethod
    async def delete_index(self) -> None:
        """Delete the index. A missing index is not an error."""
        ...

    @abstractmethod
    async def clear_index(self) -> int:
        """Delete every document but keep the index.

        Returns:
            Number of documents deleted.
        """
        ...

    @abstractmethod
    async def index_exists(self) -> bool:
        """Return True if the index exists."""
        ...

    @abstractmethod
    async def index_document(self, document: SearchDocument) -> None:
        """Upload a single document."""
        ...

    @abstractmethod
    async def index_documents(self, documents: list[SearchDocument]) -> None:
        """Upload a batch of documents in one request."""
        ...

    @abstractmethod
    async def search_security_rules(
        self,
        query: str,
        query_vector: list[float] | None = None,
        top: int = TOP_RULES,
    ) -> list[SecurityRule]:
        """Run a hybrid (keyword + optional vector) search."""
        ...

    @abstractmethod
    async def keyword_search(self, query: str, top: int = TOP_RULES) -> list[SecurityRule]:
        """Run a pure keyword search."""
        ...

    @abstractmethod
    async def search_by_category(
        self, category: str, query: str | None = None
    ) -> list[SecurityRule]:
        """Search within one document category."""
        ...

    @abstractmethod
    async def get_index_stats(self) -> IndexStats:
        """Return document count and storage size."""
        ...

    async def search_by_keywords(self, keywords: list[str]) -> list[SecurityRule]:
        """Search with an OR query built from keywords."""
        return await self.search_security_rules(build_keyword_query(keywords))

    async def search_by_vector(self, query_vector: list[float]) -> list[SecurityRule]:
        """Search by vector similarity only."""
        return await self.search_security_rules("*", query_vector)

    async def search_for_code_analysis(
        self,
        keywords: list[str],
        query_vector: list[float] | None = None,
    ) -> list[SecurityRule]:
        """Combine vector and keyword results for a code analysis.

        Args:
            keywords: Keywords derived from the analysis.
            query_vector: Embedding of the natural-language query.

        Returns:
            At most five rules, most relevant first.
        """
        vector_results: list[SecurityRule] = []
        keyword_results: list[SecurityRule] = []

        if query_vector:
            logger.info("Running vector search")
            vector_results = await self.search_by_vector(query_vector)

        if keywords:
            logger.info(f"Running keyword search for {len(keywords)} keyword(s)")
            keyword_results = await self.search_by_keywords(keywords)

        results = merge_rule_sets(vector_results, keyword_results)
        logger.info(f"Combined search returned {len(results)} rule(s)")
        return results

    async def recreate_index(self) -> None:
        """Drop the index, then create it again.

        The delete is sent without an existence check; deleting a missing
        index is a no-op, and creating over an existing one keeps its
        documents.
        """
        logger.info(f"Deleting index '{self.index_name}'")
        await self.delete_index()
        if self.recreate_delay > 0:
            await asyncio.sleep(self.recreate_delay)

        logger.info(f"Creating index '{self.index_name}'")
        await self.create_index()
