"""Application configuration using Pydantic v2 Settings.

Centralized configuration that loads from environment variables
and provides type-safe access to the proxy, the service layer and the UI.

Variable names from earlier revisions of the project (``VITE_`` prefixed)
are still accepted as aliases.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults and can be overridden via
    environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Azure OpenAI
    azure_openai_endpoint: str = Field(
        default="",
        validation_alias=AliasChoices("AZURE_OPENAI_ENDPOINT", "VITE_AZURE_OPENAI_ENDPOINT"),
        description="Azure OpenAI resource endpoint, e.g. https://<name>.openai.azure.com",
    )
    azure_openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("AZURE_OPENAI_API_KEY", "VITE_AZURE_OPENAI_API_KEY"),
        description="Azure OpenAI API key (held by the proxy).",
    )
    azure_openai_api_version: str = Field(
        default="2024-02-15-preview",
        validation_alias=AliasChoices(
            "AZURE_OPENAI_API_VERSION", "VITE_AZURE_OPENAI_API_VERSION"
        ),
        description="Azure OpenAI REST API version.",
    )
    chat_model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices(
            "CHAT_MODEL_NAME",
            "GPT_MODEL_NAME",
            "VITE_CHAT_MODEL_NAME",
            "VITE_GPT_MODEL_NAME",
        ),
        description="Chat completion deployment name.",
    )
    embedding_model: str = Field(
        default="text-embedding-ada-002",
        validation_alias=AliasChoices("EMBEDDING_MODEL_NAME", "VITE_EMBEDDING_MODEL_NAME"),
        description="Embedding deployment name.",
    )
    embedding_dimensions: int = Field(
        default=1536,
        validation_alias=AliasChoices("EMBEDDING_DIMENSIONS"),
        description="Dimension of the contentVector field in the search index.",
    )
    max_embedding_chars: int = Field(
        default=8000,
        validation_alias=AliasChoices("MAX_EMBEDDING_CHARS"),
        description="Characters of a document sent to the embedding model.",
    )

    # Azure AI Search
    azure_search_endpoint: str = Field(
        default="",
        validation_alias=AliasChoices("AZURE_SEARCH_ENDPOINT", "VITE_AZURE_SEARCH_ENDPOINT"),
        description="Azure AI Search service endpoint.",
    )
    azure_search_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("AZURE_SEARCH_API_KEY", "VITE_AZURE_SEARCH_API_KEY"),
        description="Azure AI Search admin key (held by the proxy).",
    )
    azure_search_api_version: str = Field(
        default="2023-11-01",
        validation_alias=AliasChoices("AZURE_SEARCH_API_VERSION"),
        description="Azure AI Search REST API version.",
    )
    search_index_name: str = Field(
        default="security-docs-index",
        validation_alias=AliasChoices("SEARCH_INDEX_NAME", "VITE_SEARCH_INDEX_NAME"),
        description="Name of the index holding security policy documents.",
    )

    # Proxy server
    port: int = Field(
        default=3001,
        validation_alias=AliasChoices("PORT"),
        description="Port the proxy server listens on.",
    )
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:8501",
        ],
        validation_alias=AliasChoices("CORS_ORIGINS"),
        description="Origins allowed to call the proxy.",
    )
    request_timeout: float | None = Field(
        default=None,
        validation_alias=AliasChoices("REQUEST_TIMEOUT"),
        description="Network timeout in seconds. None disables timeouts.",
    )

    # Service layer
    proxy_url: str = Field(
        default="http://localhost:3001",
        validation_alias=AliasChoices("PROXY_URL", "VITE_PROXY_URL"),
        description="Base URL of the proxy used by the service layer.",
    )
    use_proxy: bool = Field(
        default=True,
        validation_alias=AliasChoices("USE_PROXY", "VITE_USE_PROXY"),
        description="Route Azure OpenAI calls through the proxy instead of calling Azure directly.",
    )
    analysis_chunk_size: int = Field(
        default=6000,
        validation_alias=AliasChoices("ANALYSIS_CHUNK_SIZE"),
        description="Maximum characters of code sent per analysis call.",
    )
    chat_max_tokens: int = Field(
        default=2000,
        validation_alias=AliasChoices("CHAT_MAX_TOKENS"),
    )
    chat_temperature: float = Field(
        default=0.3,
        validation_alias=AliasChoices("CHAT_TEMPERATURE"),
    )
    max_file_size: int = Field(
        default=10 * 1024 * 1024,
        validation_alias=AliasChoices("MAX_FILE_SIZE", "VITE_MAX_FILE_SIZE"),
        description="Largest accepted upload in bytes.",
    )

    # Storage
    data_dir: Path = Field(
        default=Path("./data"),
        validation_alias=AliasChoices("DATA_DIR"),
        description="Directory for the template store.",
    )
    log_dir: Path = Field(
        default=Path("./logs"),
        validation_alias=AliasChoices("LOG_DIR"),
        description="Directory for info.log and error.log.",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL"),
        description="Logging level: DEBUG, INFO, WARNING, ERROR.",
    )

    @field_validator("azure_openai_endpoint", "azure_search_endpoint", "proxy_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Remove the trailing slash so paths can be appended safely."""
        return v.rstrip("/")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, v: Any) -> Any:
        """Accept a comma-separated list or a JSON array."""
        if not isinstance(v, str):
            return v
        if v.strip().startswith("["):
            return json.loads(v)
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        return v.upper()

    @property
    def openai_configured(self) -> bool:
        """Whether the proxy can reach Azure OpenAI."""
        return bool(self.azure_openai_endpoint and self.azure_openai_api_key)

    @property
    def search_configured(self) -> bool:
        """Whether the proxy can reach Azure AI Search."""
        return bool(self.azure_search_endpoint and self.azure_search_api_key)

    @property
    def template_store_path(self) -> Path:
        """JSON file backing the template store."""
        return self.data_dir / "testTemplates.json"

    def configure_logging(self) -> None:
        """Configure global logging based on settings."""
        import structlog

        level = getattr(logging, self.log_level, logging.INFO)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        logging.basicConfig(
            format="%(message)s",
            level=level,
        )

        logger.setLevel(level)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global Settings instance.

    Returns:
        The singleton Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.configure_logging()
    return _settings
