"""Abstract base class for text embedding strategies.

Embeddings are used twice: once per policy document at indexing time
(stored in the index's ``contentVector`` field) and once per code
analysis for the natural-language search query.
"""

from abc import ABC, abstractmethod


class BaseEmbedder(ABC):
    """Abstract base class for text embedding strategies.

    The vector size must match the ``contentVector`` dimension of the
    search index, otherwise vector queries are rejected by the service.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts in one request.

        Args:
            texts: Texts to embed.

        Returns:
            One vector per text, in input order.

        Raises:
            UpstreamError: If the embedding service answers with an error status.
            ProxyRequestError: If the embedding service cannot be reached.
        """
        ...

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Embed one text, such as a document body or a search query.

        Raises:
            ValueError: If the text is blank.
        """
        ...

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the vector size."""
        ...
