"""Abstract base classes for the service-layer strategies."""

from app.interfaces.chat import BaseChatModel
from app.interfaces.chunker import BaseChunker, Chunk
from app.interfaces.embedder import BaseEmbedder
from app.interfaces.parser import BaseParser, Document
from app.interfaces.search_index import BaseSearchIndex

__all__ = [
    "BaseChatModel",
    "BaseChunker",
    "BaseEmbedder",
    "BaseParser",
    "BaseSearchIndex",
    "Chunk",
    "Document",
]
