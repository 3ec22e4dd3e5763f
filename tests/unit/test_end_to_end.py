"""End-to-end flow: service clients talk to the proxy app, which talks to a mock Azure.

Documents are indexed, code is analyzed, rules are retrieved and scenarios
are generated and exported, with every HTTP hop going through the real
proxy routes.
"""

import asyncio
import json
import re

import httpx
from openai import AsyncAzureOpenAI

from app.domain.models import UploadMode
from app.main import create_app
from app.services.code_analysis import CodeAnalyzer
from app.services.export import ReportMetadata, generate_csv, generate_test_scenario_markdown
from app.services.files import SourceFile
from app.services.indexing import DocumentIndexer
from app.services.pipeline import ScenarioPipeline
from app.services.retrieval import SecurityRuleRetriever
from app.services.scenario_generation import ScenarioGenerator
from app.strategies.chat.azure_openai import AzureOpenAIChatModel
from app.strategies.chunkers.lines import LineChunker
from app.strategies.embedders.azure_openai import AzureOpenAIEmbedder
from app.strategies.parsers.simple import SimpleTextParser
from app.strategies.search.azure_search import AzureAISearchIndex

FETCH_PATTERN = re.compile(r"fetch\('([^']+)'")


class FakeAzure:
    """Minimal stand-in for Azure OpenAI and Azure AI Search."""

    def __init__(self, template_columns: list[str]):
        self.template_columns = template_columns
        self.index_exists = False
        self.documents: dict[str, dict] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith("/openai/"):
            return self.openai(path, json.loads(request.content))
        return self.search(request.method, path, request.content)

    def openai(self, path: str, body: dict) -> httpx.Response:
        if path.endswith("/embeddings"):
            return httpx.Response(
                200,
                json={
                    "object": "list",
                    "data": [
                        {"object": "embedding", "index": i, "embedding": [0.1, 0.2, 0.3]}
                        for i, _ in enumerate(body["input"])
                    ],
                    "model": "text-embedding-ada-002",
                    "usage": {"prompt_tokens": 1, "total_tokens": 1},
                },
            )

        prompt = body["messages"][-1]["content"]
        if "Analyze the following code fragment" in prompt:
            content = json.dumps(
                {
                    "keywords": ["password", "login"],
                    "backendApis": FETCH_PATTERN.findall(prompt),
                    "securityConcerns": ["credential stuffing"],
                    "functions": ["login"],
                }
            )
        else:
            rows = [
                {name: f"TC{number:03d} {name}" for name in self.template_columns} for number in range(1, 4)
            ]
            content = f"```json\n{json.dumps(rows)}\n```"

        return httpx.Response(
            200,
            json={
                "id": "chatcmpl-1",
                "object": "chat.completion",
                "created": 0,
                "model": "gpt-4o-mini",
                "choices": [
                    {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
                ],
            },
        )

    def search(self, method: str, path: str, content: bytes) -> httpx.Response:
        if path.endswith("/docs/index"):
            for action in json.loads(content)["value"]:
                self.documents[action["id"]] = action
            return httpx.Response(200, json={"value": []})

        if path.endswith("/docs/search"):
            hits = [
                {
                    "id": doc["id"],
                    "title": doc["title"],
                    "content": doc["content"],
                    "filename": doc["filename"],
                    "category": doc["category"],
                    "@search.score": 2.0,
                }
                for doc in self.documents.values()
            ]
            return httpx.Response(200, json={"value": hits})

        if method == "GET":
            return httpx.Response(200 if self.index_exists else 404, json={})
        if method == "PUT":
            self.index_exists = True
            return httpx.Response(201, json={})
        if method == "DELETE":
            self.index_exists = False
            self.documents.clear()
            return httpx.Response(204)
        return httpx.Response(400, text=f"unexpected {method} {path}")


class TestEndToEnd:
    """Test suite for the full document-to-report flow."""

    def test_document_and_code_to_report(self, settings, template):
        azure = FakeAzure(template.column_names)
        proxy_app = create_app(
            settings=settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(azure))
        )

        def proxy_client() -> httpx.AsyncClient:
            return httpx.AsyncClient(transport=httpx.ASGITransport(app=proxy_app), base_url="http://proxy.test")

        async def scenario():
            openai_client = AsyncAzureOpenAI(
                azure_endpoint="http://proxy.test/api",
                api_key="proxy-managed",
                api_version=settings.azure_openai_api_version,
                max_retries=0,
                http_client=proxy_client(),
            )
            embedder = AzureOpenAIEmbedder("", "", deployment=settings.embedding_model, client=openai_client)
            chat = AzureOpenAIChatModel("", "", deployment=settings.chat_model, client=openai_client)
            search_index = AzureAISearchIndex("http://proxy.test", recreate_delay=0, client=proxy_client())
            parser = SimpleTextParser()

            indexer = DocumentIndexer(search_index, embedder, lambda filename: parser)
            report = await indexer.index_files(
                [SourceFile("password-policy.md", b"#### Passwords\nLock the account after 5 failed logins.\n")],
                mode=UploadMode.REPLACE,
            )

            pipeline = ScenarioPipeline(
                analyzer=CodeAnalyzer(chat, LineChunker()),
                retriever=SecurityRuleRetriever(search_index, embedder),
                generator=ScenarioGenerator(chat),
            )
            code = b"async function login(user, password) {\n  return fetch('/api/login', {method: 'POST'});\n}\n"
            result = await pipeline.run(template, [SourceFile("login.js", code)])
            return report, result

        report, result = asyncio.run(scenario())

        assert report.recreated
        assert azure.index_exists
        assert len(azure.documents) == 1

        assert result.analysis.backend_apis == ["/api/login"]
        assert [rule.filename for rule in result.rules] == ["password-policy.md"]
        assert result.rules[0].relevance == 0.5

        table = result.scenarios
        assert not table.from_fallback
        assert len(table) >= 1
        for row in table.rows:
            assert list(row) == template.column_names

        markdown = generate_test_scenario_markdown(
            table.rows,
            template,
            ReportMetadata(code_analysis=result.analysis, security_rules=result.rules),
        )
        data_rows = [line for line in markdown.splitlines() if line.startswith("| TC")]
        assert len(data_rows) == len(table)
        assert "### 1. password-policy" in markdown
        assert len(generate_csv(table.rows, template).splitlines()) == len(table) + 1
