"""Concrete chat model implementations."""

from app.strategies.chat.azure_openai import AzureOpenAIChatModel

__all__ = [
    "AzureOpenAIChatModel",
]
