"""Azure OpenAI chat completion model."""

import logging

from openai import APIConnectionError, APIStatusError, AsyncAzureOpenAI

from app.core.errors import ProxyRequestError, UpstreamError
from app.interfaces.chat import DEFAULT_SYSTEM_PROMPT, BaseChatModel

logger = logging.getLogger(__name__)


class AzureOpenAIChatModel(BaseChatModel):
    """Chat model backed by an Azure OpenAI chat deployment."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        deployment: str = "gpt-4o-mini",
        api_version: str = "2024-02-15-preview",
        max_tokens: int = 2000,
        temperature: float = 0.3,
        timeout: float | None = None,
        client: AsyncAzureOpenAI | None = None,
    ) -> None:
        """Initialize the chat model.

        Args:
            endpoint: Azure OpenAI endpoint, or ``<proxy>/api`` when proxied.
            api_key: API key. Ignored by the proxy, which uses its own.
            deployment: Chat deployment name.
            api_version: Azure OpenAI REST API version.
            max_tokens: Completion token limit.
            temperature: Sampling temperature.
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
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def complete(self, prompt: str, system_prompt: str = DEFAULT_SYSTEM_PROMPT) -> str:
        """Run one chat completion and return the first choice's text."""
        logger.debug(f"Chat completion with {self._deployment}: {len(prompt)} prompt chars")

        try:
            response = await self._client.chat.completions.create(
                model=self._deployment,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except APIStatusError as e:
            logger.error(f"Chat completion API error: {e.status_code} {e.message}")
            raise UpstreamError(
                f"Chat completion failed: {e.status_code}\nDetails: {e.message}",
                status_code=e.status_code,
                body=e.body,
            ) from e
        except APIConnectionError as e:
            logger.error(f"Chat endpoint unreachable: {e}")
            raise ProxyRequestError(f"Failed to fetch chat completion: {e}") from e

        if not response.choices:
            logger.warning("Chat completion returned no choices")
            return ""

        content = response.choices[0].message.content or ""
        logger.info(f"Chat completion received: {len(content)} chars")
        return content

    @property
    def model(self) -> str:
        """Return the deployment name."""
        return self._deployment
