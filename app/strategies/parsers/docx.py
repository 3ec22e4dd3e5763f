"""Word document parser based on python-docx."""

import io
import logging

from app.interfaces.parser import BaseParser, Document

logger = logging.getLogger(__name__)


class DocxParser(BaseParser):
    """Extracts paragraph and table text from .docx uploads."""

    async def aload_data(self, filename: str, data: bytes) -> list[Document]:
        """Extract the text of a Word document.

        Args:
            filename: The original file name.
            data: The raw .docx bytes.

        Returns:
            A list containing a single Document.

        Raises:
            ValueError: If the bytes are not a readable .docx package.
        """
        from docx import Document as WordDocument

        try:
            word_doc = WordDocument(io.BytesIO(data))
        except Exception as e:
            logger.error(f"Failed to open {filename} as .docx: {e}")
            raise ValueError(f"Cannot read Word document {filename}: {e}") from e

        lines = [p.text for p in word_doc.paragraphs if p.text.strip()]

        for table in word_doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                if any(cells):
                    lines.append(" | ".join(cells))

        content = "\n".join(lines)
        logger.info(f"Extracted {len(content)} characters from {filename}")

        return [
            Document(
                content=content,
                metadata={
                    "parser": "docx",
                    "source_file": filename,
                    "file_size": len(data),
                    "paragraphs": len(word_doc.paragraphs),
                },
                source=filename,
            )
        ]

    @property
    def supported_extensions(self) -> set[str]:
        """Return supported file extensions."""
        return {".docx"}
