"""Indexing of security policy documents into the search index."""

import hashlib
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field

from app.domain.models import SearchDocument, UploadMode
from app.interfaces.embedder import BaseEmbedder
from app.interfaces.parser import BaseParser
from app.interfaces.search_index import BaseSearchIndex
from app.services.files import SourceFile

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

DEFAULT_CATEGORY = "security-policy"


def document_id(index_name: str, filename: str) -> str:
    """Return a stable id for a file in an index.

    Uploading the same file again maps to the same id, so the upload
    overwrites the stored document.
    """
    digest = hashlib.sha256(f"{index_name}:{filename}".encode("utf-8")).hexdigest()
    return digest[:32]


@dataclass
class IndexingReport:
    """Outcome of an indexing run.

    Attributes:
        mode: Upload mode that was applied.
        indexed: Names of the files uploaded, in order.
        recreated: Whether the index was dropped and created again.
    """

    mode: UploadMode
    indexed: list[str] = field(default_factory=list)
    recreated: bool = False

    @property
    def count(self) -> int:
        return len(self.indexed)


class DocumentIndexer:
    """Parses, embeds and uploads policy documents one at a time.

    Attributes:
        search_index: Target index.
        embedder: Embeds the document text.
        parser_for: Returns the parser for a file name.
        max_embedding_chars: Characters of a document sent to the embedder.
    """

    def __init__(
        self,
        search_index: BaseSearchIndex,
        embedder: BaseEmbedder,
        parser_for: Callable[[str], BaseParser],
        max_embedding_chars: int = 8000,
    ) -> None:
        self.search_index = search_index
        self.embedder = embedder
        self.parser_for = parser_for
        self.max_embedding_chars = max_embedding_chars

    async def prepare_index(self, mode: UploadMode) -> bool:
        """Get the index ready for an upload.

        ``replace`` recreates the index; ``append`` only creates it if
        missing and never deletes anything.

        Returns:
            True if the index was recreated.
        """
        if mode == UploadMode.REPLACE:
            logger.info(f"Replace mode: recreating index '{self.search_index.index_name}'")
            await self.search_index.recreate_index()
            return True

        if not await self.search_index.index_exists():
            logger.info(f"Append mode: index '{self.search_index.index_name}' missing, creating it")
            await self.search_index.create_index()

        return False

    async def build_document(self, source: SourceFile) -> SearchDocument:
        """Parse and embed one file into an uploadable document.

        Raises:
            ValueError: If the file cannot be parsed or holds no text.
        """
        parser = self.parser_for(source.name)
        parsed = await parser.aload_data(source.name, source.data)
        content = "\n\n".join(doc.content for doc in parsed).strip()
        if not content:
            raise ValueError(f"{source.name} contains no text to index")

        vector = await self.embedder.embed_single(content[: self.max_embedding_chars])

        return SearchDocument(
            id=document_id(self.search_index.index_name, source.name),
            title=os.path.splitext(source.name)[0],
            content=content,
            filename=source.name,
            category=DEFAULT_CATEGORY,
            content_vector=vector,
        )

    async def index_files(
        self,
        files: list[SourceFile],
        mode: UploadMode = UploadMode.REPLACE,
        on_progress: ProgressCallback | None = None,
    ) -> IndexingReport:
        """Index documents sequentially.

        There is no rollback: documents uploaded before a failure stay in
        the index and the error propagates.

        Args:
            files: Uploaded policy documents.
            mode: Replace or append.
            on_progress: Called with ``(done, total)`` after each document.

        Returns:
            An IndexingReport.
        """
        report = IndexingReport(mode=mode)
        report.recreated = await self.prepare_index(mode)

        total = len(files)
        for done, source in enumerate(files, start=1):
            logger.info(f"Indexing document {done}/{total}: {source.name}")
            document = await self.build_document(source)
            await self.search_index.index_document(document)
            report.indexed.append(source.name)

            if on_progress is not None:
                on_progress(done, total)

        logger.info(f"Indexed {report.count} document(s) in {mode.value} mode")
        return report
