"""Concrete parser implementations."""

from app.strategies.parsers.docx import DocxParser
from app.strategies.parsers.simple import SimpleTextParser

__all__ = [
    "DocxParser",
    "SimpleTextParser",
]
