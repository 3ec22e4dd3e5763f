"""Abstract base class for splitting source code into prompt-sized pieces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Chunk:
    """A piece of the combined source code.

    Attributes:
        content: The code text sent in one analysis prompt.
        metadata: Chunker name, position and size.
    """

    content: str
    metadata: dict = field(default_factory=dict)


class BaseChunker(ABC):
    """Splits the combined code of all uploaded files for analysis.

    Each chunk becomes one chat completion, so ``max_chunk_size`` bounds
    the code part of a prompt.
    """

    @abstractmethod
    def chunk(self, text: str, **kwargs: object) -> list[Chunk]:
        """Split text into chunks in input order.

        Args:
            text: The combined source code.
            **kwargs: Strategy-specific overrides.

        Returns:
            The chunks; empty for blank input.
        """
        ...

    @property
    @abstractmethod
    def max_chunk_size(self) -> int:
        """Return the maximum number of characters per chunk."""
        ...
