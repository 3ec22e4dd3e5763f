"""Abstract base class for chat completion strategies."""

from abc import ABC, abstractmethod

DEFAULT_SYSTEM_PROMPT = (
    "You are a software testing expert. You specialize in producing accurate, "
    "practical test scenarios that reflect security rules. "
    "Always respond with valid JSON only."
)


class BaseChatModel(ABC):
    """Abstract base class for chat completion backends.

    Implementations send a single user prompt (plus a system prompt) and
    return the raw text of the first choice.
    """

    @abstractmethod
    async def complete(self, prompt: str, system_prompt: str = DEFAULT_SYSTEM_PROMPT) -> str:
        """Run one chat completion.

        Args:
            prompt: The user message.
            system_prompt: The system message.

        Returns:
            The assistant message content (empty string if none).

        Raises:
            UpstreamError: If the service answers with an error status.
            ProxyRequestError: If the service cannot be reached.
        """
        ...

    @property
    @abstractmethod
    def model(self) -> str:
        """Return the deployment/model name."""
        ...
