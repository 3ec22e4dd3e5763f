"""Unit tests for ComponentFactory."""

import pytest

from app.core.errors import ConfigurationError
from app.core.factory import ComponentFactory
from app.services.pipeline import ScenarioPipeline
from app.strategies.chat.azure_openai import AzureOpenAIChatModel
from app.strategies.embedders.azure_openai import AzureOpenAIEmbedder
from app.strategies.parsers.docx import DocxParser
from app.strategies.parsers.simple import SimpleTextParser
from app.strategies.search.azure_search import AzureAISearchIndex


class TestComponentFactory:
    """Test suite for ComponentFactory."""

    def test_proxy_mode_points_sdk_at_proxy(self, settings):
        factory = ComponentFactory(settings)

        embedder = factory.get_embedder()

        assert isinstance(embedder, AzureOpenAIEmbedder)
        assert str(embedder._client.base_url).startswith("http://proxy.test/api/openai")
        assert embedder.dimension == settings.embedding_dimensions

    def test_direct_mode_uses_azure_endpoint(self, settings):
        factory = ComponentFactory(settings.model_copy(update={"use_proxy": False}))

        chat = factory.get_chat_model()

        assert isinstance(chat, AzureOpenAIChatModel)
        assert str(chat._client.base_url).startswith("https://openai.example.com/openai")
        assert chat.model == settings.chat_model

    def test_direct_mode_requires_credentials(self, settings):
        factory = ComponentFactory(settings.model_copy(update={"use_proxy": False, "azure_openai_api_key": ""}))
        with pytest.raises(ConfigurationError):
            factory.get_embedder()

    def test_components_are_cached(self, settings):
        factory = ComponentFactory(settings)
        embedder = factory.get_embedder()
        search_index = factory.get_search_index()

        assert factory.get_embedder() is embedder
        assert factory.get_search_index() is search_index

        factory.clear_cache()
        assert factory.get_embedder() is not embedder

    def test_parser_selection(self, settings):
        factory = ComponentFactory(settings)

        assert isinstance(factory.get_parser("policy.md"), SimpleTextParser)
        assert isinstance(factory.get_parser("Policy.DOCX"), DocxParser)
        with pytest.raises(ValueError, match="Unsupported document type"):
            factory.get_parser("policy.pdf")

    def test_chunker(self, settings):
        factory = ComponentFactory(settings)
        assert factory.get_chunker().max_chunk_size == settings.analysis_chunk_size
        assert factory.get_chunker(100).max_chunk_size == 100

    def test_services(self, settings):
        factory = ComponentFactory(settings)

        assert factory.get_template_service().path == settings.template_store_path
        assert isinstance(factory.get_pipeline(), ScenarioPipeline)
        assert factory.get_document_indexer().search_index is factory.get_search_index()

        search_index = factory.get_search_index()
        assert isinstance(search_index, AzureAISearchIndex)
        assert search_index.index_name == settings.search_index_name
