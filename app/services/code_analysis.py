"""LLM-based extraction of test-relevant facts from uploaded source code.

The combined code is split into line-aligned chunks and each chunk is
analyzed by one chat completion. Chunk answers are merged and
de-duplicated into a single CodeAnalysisResult.
"""

import json
import logging
from collections.abc import Callable

from pydantic import ValidationError

from app.core.errors import JsonExtractionError
from app.domain.models import CodeAnalysisResult
from app.interfaces.chat import BaseChatModel
from app.interfaces.chunker import BaseChunker
from app.services.files import SourceFile
from app.services.json_repair import parse_json_response

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

CODE_ANALYSIS_PROMPT = """Analyze the following code fragment and extract the information needed to generate test scenarios.
(This is part {part}/{total} of the complete code.)

Code:
```
{code}
```

Respond ONLY with valid JSON of the following shape. Do not include any other explanation or text:

{{
  "keywords": ["security related keywords"],
  "uiElements": ["UI components or form elements"],
  "backendApis": ["API endpoints"],
  "securityConcerns": ["security concerns"],
  "functions": ["main function names"],
  "components": ["component names"]
}}
"""

_FIELDS = (
    "keywords",
    "ui_elements",
    "backend_apis",
    "security_concerns",
    "functions",
    "components",
)


def combine_source_files(files: list[SourceFile]) -> str:
    """Join files as ``// File: <name>`` blocks separated by blank lines."""
    return "\n\n".join(f"// File: {source.name}\n{source.text}" for source in files)


def merge_analysis_results(results: list[CodeAnalysisResult]) -> CodeAnalysisResult:
    """Concatenate every field across results, keeping first-seen order without duplicates."""
    merged: dict[str, list[str]] = {}
    for field_name in _FIELDS:
        values = (value for result in results for value in getattr(result, field_name))
        merged[field_name] = list(dict.fromkeys(values))
    return CodeAnalysisResult(**merged)


class CodeAnalyzer:
    """Analyzes source files chunk by chunk with a chat model.

    Attributes:
        chat_model: Chat completion backend.
        chunker: Splits the combined code into prompt-sized pieces.
    """

    def __init__(self, chat_model: BaseChatModel, chunker: BaseChunker) -> None:
        self.chat_model = chat_model
        self.chunker = chunker

    async def analyze(
        self,
        files: list[SourceFile],
        on_progress: ProgressCallback | None = None,
    ) -> CodeAnalysisResult:
        """Analyze source files.

        Chunks are processed sequentially. A chunk whose answer cannot be
        parsed contributes nothing; service errors propagate.

        Args:
            files: Uploaded source files.
            on_progress: Called with ``(done, total)`` after each chunk.

        Returns:
            The merged analysis.

        Raises:
            UpstreamError: If the chat service answers with an error status.
            ProxyRequestError: If the chat service cannot be reached.
        """
        chunks = self.chunker.chunk(combine_source_files(files))
        total = len(chunks)
        logger.info(f"Analyzing {len(files)} file(s) in {total} chunk(s)")

        results: list[CodeAnalysisResult] = []
        for index, chunk in enumerate(chunks, start=1):
            logger.info(f"Analyzing code chunk {index}/{total}")
            prompt = CODE_ANALYSIS_PROMPT.format(part=index, total=total, code=chunk.content)
            response = await self.chat_model.complete(prompt)
            results.append(self._parse_chunk_result(response, index))

            if on_progress is not None:
                on_progress(index, total)

        merged = merge_analysis_results(results)
        logger.info(
            f"Analysis found {len(merged.keywords)} keyword(s), "
            f"{len(merged.backend_apis)} API(s), "
            f"{len(merged.security_concerns)} security concern(s)"
        )
        return merged

    def _parse_chunk_result(self, response: str, index: int) -> CodeAnalysisResult:
        """Parse one chunk answer; failures yield an empty result."""
        try:
            data = parse_json_response(response)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            return CodeAnalysisResult.model_validate(data)
        except (JsonExtractionError, json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.error(f"Chunk {index} analysis could not be parsed: {e}")
            logger.debug(f"Raw answer for chunk {index}: {response}")
            return CodeAnalysisResult()
