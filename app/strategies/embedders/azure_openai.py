"""Azure OpenAI text embedder.

Calls an Azure OpenAI embeddings deployment, either directly or through
the relay proxy (which injects the API key).
"""

import logging

from openai import APIConnectionError, APIStatusError, AsyncAzureOpenAI

from app.core.errors import ProxyRequestError, UpstreamError
from app.interfaces.embedder import BaseEmbedder

logger = logging.getLogger(__name__)


class AzureOpenAIEmbedder(BaseEmbedder):
    """Embedder implementation using an Azure OpenAI embeddings deployment.

    Attributes:
        deployment: The embedding deployment name.
        dimension: The dimension of the embedding vectors.
    """

    # Map known models to their dimensions
    _MODEL_DIMENSIONS: dict[str, int] = {
        "text-embedding-ada-002": 1536,
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
    }

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        deployment: str = "text-embedding-ada-002",
        api_version: str = "2024-02-15-preview",
        dimension: int | None = None,
        timeout: float | None = None,
        client: AsyncAzureOpenAI | None = None,
    ) -> None:
        """Initialize the embedder.

        Args:
            endpoint: Azure OpenAI endpoint, or ``<proxy>/api`` when proxied.
            api_key: API key. Ignored by the proxy, which uses its own.
            deployment: Embedding deployment name.
            api_version: Azure OpenAI REST API version.
            dimension: Vector size. Looked up from the model name if None.
            timeout: Request timeout in seconds; None waits indefinitely.
            client: Pre-built client, mainly for tests.
        """
        self._client = client or AsyncAzureOpenAI(
            azure_endpoint=endpoint,
            api_key=api_key,
            api_version=api_version,
            timeout=timeout,
            max_retries=0,
        )
        self._deployment = deployment

        if dimension is not None:
            self._dimension = dimension
        elif deployment in self._MODEL_DIMENSIONS:
            self._dimension = self._MODEL_DIMENSIONS[deployment]
        else:
            logger.warning(
                f"Unknown embedding deployment '{deployment}', defaulting to dimension 1536. "
                f"Known models: {list(self._MODEL_DIMENSIONS.keys())}"
            )
            self._dimension = 1536

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts.

        Args:
            texts: A list of strings to embed.

        Returns:
            A list of embedding vectors, in input order.

        Raises:
            UpstreamError: If the deployment answers with an error status.
            ProxyRequestError: If the endpoint cannot be reached.
        """
        if not texts:
            return []

        logger.debug(f"Generating embeddings for {len(texts)} text(s) using {self._deployment}")

        try:
            response = await self._client.embeddings.create(
                input=texts,
                model=self._deployment,
                encoding_format="float",
            )
        except APIStatusError as e:
            logger.error(f"Embedding API error: {e.status_code} {e.message}")
            raise UpstreamError(
                f"Embedding generation failed: {e.status_code}\nDetails: {e.message}",
                status_code=e.status_code,
                body=e.body,
            ) from e
        except APIConnectionError as e:
            logger.error(f"Embedding endpoint unreachable: {e}")
            raise ProxyRequestError(f"Failed to fetch embeddings: {e}") from e

        embeddings = [item.embedding for item in sorted(response.data, key=lambda d: d.index)]
        logger.info(f"Generated {len(embeddings)} embedding(s)")
        return embeddings

    async def embed_single(self, text: str) -> list[float]:
        """Generate embedding for a single text.

        Raises:
            ValueError: If text is empty.
        """
        if not text.strip():
            raise ValueError("Cannot embed empty text")

        embeddings = await self.embed([text])
        return embeddings[0]

    @property
    def dimension(self) -> int:
        """Return the dimension of the embedding vectors."""
        return self._dimension

    @property
    def deployment(self) -> str:
        """Return the deployment name."""
        return self._deployment
