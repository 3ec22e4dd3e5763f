"""Concrete strategy implementations."""

from app.strategies.chat import AzureOpenAIChatModel
from app.strategies.chunkers import LineChunker
from app.strategies.embedders import AzureOpenAIEmbedder
from app.strategies.parsers import DocxParser, SimpleTextParser
from app.strategies.search import AzureAISearchIndex

__all__ = [
    "AzureOpenAIChatModel",
    "LineChunker",
    "AzureOpenAIEmbedder",
    "DocxParser",
    "SimpleTextParser",
    "AzureAISearchIndex",
]
