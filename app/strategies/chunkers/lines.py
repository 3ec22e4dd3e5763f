"""Line-respecting chunker.

Splits source code into chunks bounded by a character budget without
ever cutting a line in half, so each chunk stays readable for the model.
"""

import logging

from app.interfaces.chunker import BaseChunker, Chunk

logger = logging.getLogger(__name__)


class LineChunker(BaseChunker):
    """Chunker that packs whole lines into chunks of at most ``chunk_size`` chars.

    A line longer than the budget is never split; it becomes a chunk of
    its own (and is the only case where a chunk exceeds the budget).

    Attributes:
        chunk_size: Maximum characters per chunk (roughly 1500 tokens at 6000).
    """

    def __init__(self, chunk_size: int = 6000) -> None:
        """Initialize the line chunker.

        Args:
            chunk_size: Maximum characters per chunk.
        """
        self._chunk_size = max(1, chunk_size)

    def chunk(self, text: str, **kwargs: object) -> list[Chunk]:
        """Split text into line-aligned chunks.

        Args:
            text: The text to chunk.
            **kwargs: Optional override for chunk_size.

        Returns:
            A list of Chunks in input order.
        """
        chunk_size = int(kwargs.get("chunk_size", self._chunk_size))

        if not text.strip():
            return []

        pieces = self._split_lines(text, chunk_size)

        result = [
            Chunk(
                content=piece,
                metadata={
                    "chunker": "lines",
                    "chunk_index": i,
                    "char_count": len(piece),
                    "chunk_size": chunk_size,
                },
            )
            for i, piece in enumerate(pieces)
        ]

        logger.info(f"Split {len(text)} chars into {len(result)} chunk(s) of <= {chunk_size}")
        return result

    def _split_lines(self, text: str, chunk_size: int) -> list[str]:
        """Greedily pack lines; a newline joins lines inside a chunk."""
        chunks: list[str] = []
        current = ""

        for line in text.split("\n"):
            if current and len(current) + len(line) + 1 > chunk_size:
                chunks.append(current)
                current = ""
            current = f"{current}\n{line}" if current else line

        if current:
            chunks.append(current)

        return chunks

    @property
    def max_chunk_size(self) -> int:
        """Return the maximum chunk size."""
        return self._chunk_size
