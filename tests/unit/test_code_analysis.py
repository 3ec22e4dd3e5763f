"""Unit tests for chunked code analysis."""

import asyncio

import pytest

from app.core.errors import UpstreamError
from app.domain.models import CodeAnalysisResult
from app.interfaces.chat import BaseChatModel
from app.services.code_analysis import CodeAnalyzer, combine_source_files, merge_analysis_results
from app.services.files import SourceFile
from app.strategies.chunkers.lines import LineChunker
from tests.unit.fakes import FakeChatModel


class TestLineChunker:
    """Test suite for LineChunker."""

    def test_never_splits_lines(self):
        text = "\n".join(f"line {i:03d}" for i in range(100))
        chunks = LineChunker(chunk_size=50).chunk(text)

        assert len(chunks) > 1
        for chunk in chunks:
            assert len(chunk.content) <= 50
            for line in chunk.content.split("\n"):
                assert line.startswith("line ")
        assert "\n".join(chunk.content for chunk in chunks) == text

    def test_long_line_becomes_own_chunk(self):
        text = "short\n" + "x" * 80 + "\nshort"
        chunks = LineChunker(chunk_size=20).chunk(text)
        assert [chunk.content for chunk in chunks] == ["short", "x" * 80, "short"]

    def test_small_text_single_chunk(self):
        chunks = LineChunker(chunk_size=6000).chunk("a\nb\nc")
        assert len(chunks) == 1
        assert chunks[0].metadata["chunker"] == "lines"

    def test_blank_text_no_chunks(self):
        assert LineChunker().chunk("  \n ") == []


class TestHelpers:
    """Test suite for combining files and merging results."""

    def test_combine_source_files(self):
        files = [SourceFile("a.js", b"let a;"), SourceFile("b.py", b"b = 1")]
        assert combine_source_files(files) == "// File: a.js\nlet a;\n\n// File: b.py\nb = 1"

    def test_merge_deduplicates_in_order(self):
        merged = merge_analysis_results(
            [
                CodeAnalysisResult(keywords=["login", "xss"], backend_apis=["/api/login"]),
                CodeAnalysisResult(keywords=["xss", "csrf"], backend_apis=["/api/login", "/api/users"]),
            ]
        )
        assert merged.keywords == ["login", "xss", "csrf"]
        assert merged.backend_apis == ["/api/login", "/api/users"]


class TestCodeAnalyzer:
    """Test suite for CodeAnalyzer."""

    @pytest.fixture
    def files(self):
        body = "\n".join(f"fetch('/api/item/{i}');" for i in range(40))
        return [SourceFile("app.js", body.encode())]

    def test_single_chunk_analysis(self):
        chat = FakeChatModel(['```json\n{"keywords": ["login"], "backendApis": ["/api/login"]}\n```'])
        analyzer = CodeAnalyzer(chat, LineChunker(chunk_size=6000))

        result = asyncio.run(analyzer.analyze([SourceFile("login.js", b"fetch('/api/login')")]))

        assert result.keywords == ["login"]
        assert result.backend_apis == ["/api/login"]
        assert "part 1/1" in chat.prompts[0]
        assert "// File: login.js" in chat.prompts[0]

    def test_failed_chunk_contributes_nothing(self, files):
        chat = FakeChatModel(
            [
                '{"keywords": ["auth"]}',
                "Sorry, I cannot analyze this.",
                '{"keywords": ["auth", "xss"], "securityConcerns": ["stored XSS"]}',
            ]
        )
        progress = []
        analyzer = CodeAnalyzer(chat, LineChunker(chunk_size=400))

        result = asyncio.run(analyzer.analyze(files, on_progress=lambda done, total: progress.append((done, total))))

        total = len(chat.prompts)
        assert total >= 3
        assert progress == [(i, total) for i in range(1, total + 1)]
        assert result.keywords == ["auth", "xss"]
        assert result.security_concerns == ["stored XSS"]

    def test_non_object_answer_is_empty(self):
        chat = FakeChatModel(['["not", "an", "object"]'])
        result = asyncio.run(CodeAnalyzer(chat, LineChunker()).analyze([SourceFile("a.js", b"x")]))
        assert result.is_empty()

    def test_service_errors_propagate(self):
        class FailingChat(BaseChatModel):
            async def complete(self, prompt, system_prompt=""):
                raise UpstreamError("Chat completion failed: 401", status_code=401)

            @property
            def model(self):
                return "failing"

        with pytest.raises(UpstreamError):
            asyncio.run(CodeAnalyzer(FailingChat(), LineChunker()).analyze([SourceFile("a.js", b"x")]))
