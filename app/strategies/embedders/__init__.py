"""Concrete embedder implementations."""

from app.strategies.embedders.azure_openai import AzureOpenAIEmbedder

__all__ = [
    "AzureOpenAIEmbedder",
]
