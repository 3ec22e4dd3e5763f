"""Abstract base class for document parsers.

The Strategy Pattern allows different parsing implementations
to be chosen per uploaded file.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Document:
    """Represents a parsed document with metadata.

    Attributes:
        content: The extracted text content from the document.
        metadata: Additional parser-specific information.
        source: The original file name.
    """

    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    source: str = ""


class BaseParser(ABC):
    """Abstract base class for document parsing strategies.

    Parsers receive the raw bytes of an uploaded file, since uploads
    never touch the disk.
    """

    @abstractmethod
    async def aload_data(self, filename: str, data: bytes) -> list[Document]:
        """Asynchronously parse an uploaded file.

        Args:
            filename: The original file name.
            data: The raw file content.

        Returns:
            A list of Document objects containing the parsed content and metadata.

        Raises:
            ValueError: If the file cannot be parsed.
        """
        ...

    @property
    @abstractmethod
    def supported_extensions(self) -> set[str]:
        """Return the set of file extensions supported by this parser."""
        ...

    def supports_file(self, filename: str) -> bool:
        """Check if this parser supports the given file.

        Args:
            filename: The name of the file to check.

        Returns:
            True if the file extension is supported, False otherwise.
        """
        _, ext = os.path.splitext(filename)
        return ext.lower() in self.supported_extensions
