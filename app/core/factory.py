"""Component Factory for strategy instantiation.

The Factory Pattern lets the UI, the scripts and the tests build fully
configured clients from Settings instead of reaching for module-level
service singletons.
"""

import logging

from app.core.config import Settings, get_settings
from app.core.errors import ConfigurationError
from app.interfaces.chat import BaseChatModel
from app.interfaces.chunker import BaseChunker
from app.interfaces.embedder import BaseEmbedder
from app.interfaces.parser import BaseParser
from app.interfaces.search_index import BaseSearchIndex
from app.strategies.chat import AzureOpenAIChatModel
from app.strategies.chunkers import LineChunker
from app.strategies.embedders import AzureOpenAIEmbedder
from app.strategies.parsers import DocxParser, SimpleTextParser
from app.strategies.search import AzureAISearchIndex

logger = logging.getLogger(__name__)

# The proxy injects the real key; the SDK still insists on having one.
PROXY_API_KEY_PLACEHOLDER = "proxy-managed"


class ComponentFactory:
    """Factory for creating component instances based on configuration.

    Example:
        ```python
        factory = ComponentFactory(get_settings())

        embedder = factory.get_embedder()
        search_index = factory.get_search_index()
        pipeline = factory.get_pipeline()
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the factory with optional settings.

        Args:
            settings: Application settings. If None, uses global settings.
        """
        self._settings = settings or get_settings()
        self._chunker_cache: BaseChunker | None = None
        self._embedder_cache: BaseEmbedder | None = None
        self._chat_model_cache: BaseChatModel | None = None
        self._search_index_cache: BaseSearchIndex | None = None
        self._parsers: list[BaseParser] = [SimpleTextParser(), DocxParser()]

    @property
    def settings(self) -> Settings:
        """Return the settings the factory was built with."""
        return self._settings

    def _openai_connection(self) -> tuple[str, str]:
        """Return the (endpoint, api key) pair for Azure OpenAI calls.

        Raises:
            ConfigurationError: If direct access is configured without credentials.
        """
        if self._settings.use_proxy:
            return f"{self._settings.proxy_url}/api", PROXY_API_KEY_PLACEHOLDER

        if not self._settings.openai_configured:
            raise ConfigurationError(
                "AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY are required when USE_PROXY is false"
            )
        return self._settings.azure_openai_endpoint, self._settings.azure_openai_api_key

    def get_parser(self, filename: str) -> BaseParser:
        """Get the parser for an uploaded document.

        Args:
            filename: Name of the uploaded file.

        Returns:
            A BaseParser that supports the file's extension.

        Raises:
            ValueError: If no parser supports the file.
        """
        for parser in self._parsers:
            if parser.supports_file(filename):
                return parser

        supported = sorted(ext for parser in self._parsers for ext in parser.supported_extensions)
        raise ValueError(f"Unsupported document type: {filename}. Supported: {', '.join(supported)}")

    def get_chunker(self, chunk_size: int | None = None) -> BaseChunker:
        """Get the line chunker used for code analysis.

        Args:
            chunk_size: Override for the analysis chunk size.

        Returns:
            A BaseChunker implementation instance.
        """
        if chunk_size is not None:
            return LineChunker(chunk_size=chunk_size)

        if self._chunker_cache is None:
            logger.info(f"Instantiating line chunker ({self._settings.analysis_chunk_size} chars)")
            self._chunker_cache = LineChunker(chunk_size=self._settings.analysis_chunk_size)

        return self._chunker_cache

    def get_embedder(self) -> BaseEmbedder:
        """Get the Azure OpenAI embedder.

        Returns:
            A BaseEmbedder implementation instance.

        Raises:
            ConfigurationError: If direct access lacks credentials.
        """
        if self._embedder_cache is None:
            endpoint, api_key = self._openai_connection()
            logger.info(
                f"Instantiating embedder: {self._settings.embedding_model} "
                f"({'proxy' if self._settings.use_proxy else 'direct'})"
            )
            self._embedder_cache = AzureOpenAIEmbedder(
                endpoint=endpoint,
                api_key=api_key,
                deployment=self._settings.embedding_model,
                api_version=self._settings.azure_openai_api_version,
                dimension=self._settings.embedding_dimensions,
                timeout=self._settings.request_timeout,
            )

        return self._embedder_cache

    def get_chat_model(self) -> BaseChatModel:
        """Get the Azure OpenAI chat model.

        Returns:
            A BaseChatModel implementation instance.

        Raises:
            ConfigurationError: If direct access lacks credentials.
        """
        if self._chat_model_cache is None:
            endpoint, api_key = self._openai_connection()
            logger.info(
                f"Instantiating chat model: {self._settings.chat_model} "
                f"({'proxy' if self._settings.use_proxy else 'direct'})"
            )
            self._chat_model_cache = AzureOpenAIChatModel(
                endpoint=endpoint,
                api_key=api_key,
                deployment=self._settings.chat_model,
                api_version=self._settings.azure_openai_api_version,
                max_tokens=self._settings.chat_max_tokens,
                temperature=self._settings.chat_temperature,
                timeout=self._settings.request_timeout,
            )

        return self._chat_model_cache

    def get_search_index(self) -> BaseSearchIndex:
        """Get the search index client. Search always goes through the proxy.

        Returns:
            A BaseSearchIndex implementation instance.
        """
        if self._search_index_cache is None:
            logger.info(f"Instantiating search index client: {self._settings.search_index_name}")
            self._search_index_cache = AzureAISearchIndex(
                proxy_url=self._settings.proxy_url,
                index_name=self._settings.search_index_name,
                timeout=self._settings.request_timeout,
            )

        return self._search_index_cache

    def get_template_service(self):
        """Get a template service backed by the JSON template store."""
        from app.services.templates import TemplateService

        return TemplateService(self._settings.template_store_path)

    def get_document_indexer(self):
        """Get a document indexer wired to the search index and embedder."""
        from app.services.indexing import DocumentIndexer

        return DocumentIndexer(
            search_index=self.get_search_index(),
            embedder=self.get_embedder(),
            parser_for=self.get_parser,
            max_embedding_chars=self._settings.max_embedding_chars,
        )

    def get_pipeline(self):
        """Get the analyze, retrieve and generate pipeline."""
        from app.services.code_analysis import CodeAnalyzer
        from app.services.pipeline import ScenarioPipeline
        from app.services.retrieval import SecurityRuleRetriever
        from app.services.scenario_generation import ScenarioGenerator

        chat_model = self.get_chat_model()
        return ScenarioPipeline(
            analyzer=CodeAnalyzer(chat_model, self.get_chunker()),
            retriever=SecurityRuleRetriever(self.get_search_index(), self.get_embedder()),
            generator=ScenarioGenerator(chat_model),
        )

    def clear_cache(self) -> None:
        """Clear all cached component instances.

        This forces new instances to be created on next access.
        Useful for testing or when settings change.
        """
        self._chunker_cache = None
        self._embedder_cache = None
        self._chat_model_cache = None
        self._search_index_cache = None
        logger.debug("Component factory cache cleared")
