"""Relay proxy routes for Azure OpenAI and Azure AI Search."""

from app.api.openai_proxy import router as openai_router
from app.api.search_proxy import router as search_router

__all__ = [
    "openai_router",
    "search_router",
]
