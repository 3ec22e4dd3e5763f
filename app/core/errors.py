"""Application exceptions and user-facing error hints."""

from typing import Any


class ScenarioGeneratorError(Exception):
    """Base class for all application errors."""


class ConfigurationError(ScenarioGeneratorError):
    """Raised when a required setting is missing."""


class ProxyRequestError(ScenarioGeneratorError):
    """Raised when the proxy (or Azure) cannot be reached at all."""


class UpstreamError(ScenarioGeneratorError):
    """Raised when the proxy or an Azure service answers with an error status.

    Attributes:
        status_code: HTTP status returned upstream.
        body: Raw response body, kept for display.
    """

    def __init__(self, message: str, status_code: int, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class JsonExtractionError(ScenarioGeneratorError, ValueError):
    """Raised when no JSON object or array can be located in an LLM answer."""


class TemplateError(ScenarioGeneratorError):
    """Raised when a template cannot be found, stored or imported."""


class TemplateValidationError(TemplateError):
    """Raised when a template fails validation."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class FileValidationError(ScenarioGeneratorError):
    """Raised when an uploaded file is rejected."""


class WizardError(ScenarioGeneratorError):
    """Raised on an illegal wizard step transition."""


# Ordered: first match wins.
_HINTS: list[tuple[tuple[str, ...], str]] = [
    (
        ("fetch", "connect"),
        "Check that the proxy server is running (python -m app.main) "
        "and that PROXY_URL points to it.",
    ),
    (
        ("401", "403", "access denied", "unauthorized"),
        "Check AZURE_OPENAI_API_KEY / AZURE_SEARCH_API_KEY in the proxy's .env file.",
    ),
    (
        ("429", "rate limit"),
        "The Azure quota was exceeded. Wait a moment and try again.",
    ),
    (
        ("embedding",),
        "Check that EMBEDDING_MODEL_NAME matches an embedding deployment in Azure OpenAI.",
    ),
    (
        ("404", "deployment"),
        "Check the deployment names (CHAT_MODEL_NAME, EMBEDDING_MODEL_NAME) "
        "and that the search index exists.",
    ),
    (
        ("index",),
        "Check AZURE_SEARCH_ENDPOINT and try re-uploading the documents in replace mode.",
    ),
    (
        ("json",),
        "The model answered in an unexpected format. Try generating again.",
    ),
    (
        ("template",),
        "Check the template name and columns.",
    ),
]

_DEFAULT_HINT = "Check the logs for details and try again."


def error_hint(message: str) -> str:
    """Return a static troubleshooting hint for an error message.

    Args:
        message: The error message shown to the user.

    Returns:
        The hint whose keywords first match the message, or a generic hint.
    """
    lowered = message.lower()
    for keywords, hint in _HINTS:
        if any(keyword in lowered for keyword in keywords):
            return hint
    return _DEFAULT_HINT
