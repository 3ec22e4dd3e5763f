"""FastAPI dependencies for dependency injection.

Provides reusable dependencies for the relay routes:
- Settings bound to the running app
- The shared upstream HTTP client
"""

import logging

import httpx
from fastapi import Request

from app.core.config import Settings
from app.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Return the settings the application was created with."""
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Return the HTTP client opened in the application lifespan."""
    return request.app.state.http_client


def require_openai(settings: Settings) -> None:
    """Ensure the proxy can reach Azure OpenAI.

    Raises:
        ConfigurationError: If the endpoint or key is missing.
    """
    if not settings.openai_configured:
        logger.error("Azure OpenAI relay called without endpoint/key configured")
        raise ConfigurationError("AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY are not configured")


def require_search(settings: Settings) -> None:
    """Ensure the proxy can reach Azure AI Search.

    Raises:
        ConfigurationError: If the endpoint or key is missing.
    """
    if not settings.search_configured:
        logger.error("Azure AI Search relay called without endpoint/key configured")
        raise ConfigurationError("AZURE_SEARCH_ENDPOINT and AZURE_SEARCH_API_KEY are not configured")
