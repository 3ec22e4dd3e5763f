"""Simple text-based document parser.

Decodes plain text and markdown uploads without any extraction logic.
"""

import logging

from app.interfaces.parser import BaseParser, Document

logger = logging.getLogger(__name__)


class SimpleTextParser(BaseParser):
    """Parser for plain text, markdown and source code files."""

    def __init__(
        self,
        encoding: str = "utf-8",
        extensions: set[str] | None = None,
    ) -> None:
        """Initialize the simple text parser.

        Args:
            encoding: The character encoding used to decode uploads.
            extensions: Extensions accepted by this parser.
        """
        self._encoding = encoding
        self._extensions = extensions or {".txt", ".md"}

    async def aload_data(self, filename: str, data: bytes) -> list[Document]:
        """Decode an uploaded text file.

        Undecodable bytes are replaced rather than rejected.

        Args:
            filename: The original file name.
            data: The raw file content.

        Returns:
            A list containing a single Document with the file's content.
        """
        content = data.decode(self._encoding, errors="replace")

        logger.info(f"Read {len(content)} characters from {filename}")
        return [
            Document(
                content=content,
                metadata={
                    "parser": "simple_text",
                    "source_file": filename,
                    "file_size": len(data),
                },
                source=filename,
            )
        ]

    @property
    def supported_extensions(self) -> set[str]:
        """Return supported file extensions."""
        return self._extensions
