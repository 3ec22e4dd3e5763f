"""Helpers for uploaded files: validation, language detection and previews."""

import math
import os
from dataclasses import dataclass

from app.core.errors import FileValidationError

SUPPORTED_CODE_EXTENSIONS = [
    ".js", ".jsx", ".ts", ".tsx", ".vue", ".svelte",
    ".py", ".java", ".cpp", ".c", ".cs", ".php",
    ".go", ".rs", ".rb", ".swift", ".kt", ".scala",
]  # fmt: skip

SUPPORTED_DOC_EXTENSIONS = [".txt", ".md", ".docx"]

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024

_MIME_TYPES = {
    ".js": "text/javascript",
    ".jsx": "text/javascript",
    ".ts": "text/typescript",
    ".tsx": "text/typescript",
    ".vue": "text/plain",
    ".svelte": "text/plain",
    ".py": "text/x-python",
    ".java": "text/x-java-source",
    ".cpp": "text/x-c++src",
    ".c": "text/x-csrc",
    ".cs": "text/x-csharp",
    ".php": "text/x-php",
    ".go": "text/x-go",
    ".rs": "text/x-rust",
    ".rb": "text/x-ruby",
    ".swift": "text/x-swift",
    ".kt": "text/x-kotlin",
    ".scala": "text/x-scala",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".md": "text/markdown",
}

_LANGUAGES = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".vue": "vue",
    ".svelte": "svelte",
    ".py": "python",
    ".java": "java",
    ".cpp": "cpp",
    ".c": "c",
    ".cs": "csharp",
    ".php": "php",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
}


@dataclass(frozen=True)
class SourceFile:
    """An uploaded file held in memory.

    Attributes:
        name: The original file name.
        data: The raw bytes.
    """

    name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def text(self) -> str:
        """The content decoded as UTF-8, undecodable bytes replaced."""
        return self.data.decode("utf-8", errors="replace")


def get_file_extension(filename: str) -> str:
    """Return the lowercased extension including the dot, or ``""``."""
    return os.path.splitext(filename)[1].lower()


def format_file_size(size: int) -> str:
    """Format a byte count, e.g. ``1536`` -> ``"1.5 KB"``."""
    if size == 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB"]
    exponent = min(int(math.floor(math.log(size, 1024))), len(units) - 1)
    value = round(size / 1024**exponent, 1)
    return f"{value:g} {units[exponent]}"


def validate_file(
    name: str,
    size: int,
    allowed_extensions: list[str],
    max_size: int = DEFAULT_MAX_FILE_SIZE,
) -> None:
    """Check an upload against the size limit and the allowed extensions.

    Args:
        name: File name.
        size: File size in bytes.
        allowed_extensions: Accepted extensions, including the dot.
        max_size: Largest accepted size in bytes.

    Raises:
        FileValidationError: If the file is too large or of the wrong type.
    """
    if size > max_size:
        raise FileValidationError(
            f"{name}: file is too large. Maximum allowed size is "
            f"{max_size / 1024 / 1024:.1f}MB."
        )

    if get_file_extension(name) not in allowed_extensions:
        raise FileValidationError(
            f"{name}: unsupported file type. Allowed extensions: {', '.join(allowed_extensions)}"
        )


def get_mime_type(filename: str) -> str:
    return _MIME_TYPES.get(get_file_extension(filename), "text/plain")


def detect_code_language(filename: str, content: str | None = None) -> str:
    """Guess the language of a source file.

    The extension decides; for unknown extensions a few content markers
    are checked. Falls back to ``"text"``.
    """
    language = _LANGUAGES.get(get_file_extension(filename))
    if language:
        return language

    if content:
        if "import React" in content or "useState" in content:
            return "javascript"
        if "def " in content and "import " in content:
            return "python"
        if "public class" in content and "static void main" in content:
            return "java"

    return "text"


def generate_file_preview(content: str, max_lines: int = 5) -> str:
    """Return the first lines of a file with a note on how many were cut."""
    lines = content.split("\n")
    preview = "\n".join(lines[:max_lines])

    if len(lines) > max_lines:
        return f"{preview}\n... (showing {max_lines} of {len(lines)} lines)"

    return preview


def create_file_archive(files: list[SourceFile]) -> str:
    """Concatenate files into a plain-text archive."""
    parts = ["=== File archive ===\n\n"]
    for index, source in enumerate(files, start=1):
        parts.append(f"=== File {index}: {source.name} ===\n{source.text}\n\n")
    return "".join(parts)
