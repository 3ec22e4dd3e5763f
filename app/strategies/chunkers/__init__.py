"""Concrete chunker implementations."""

from app.strategies.chunkers.lines import LineChunker

__all__ = [
    "LineChunker",
]
