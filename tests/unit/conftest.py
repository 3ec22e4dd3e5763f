"""Shared fixtures for unit tests."""

from datetime import datetime, timezone

import pytest

from app.core.config import Settings
from app.domain.models import Template, TemplateColumn


@pytest.fixture
def template() -> Template:
    """A four-column template."""
    return Template(
        id=1,
        name="Security",
        columns=[
            TemplateColumn(name="ID", description="Identifier", example="TC001"),
            TemplateColumn(name="Scenario", description="What to test", example="Login"),
            TemplateColumn(name="Security Rule", description="Applied rule", example="Auth"),
            TemplateColumn(name="Expected", description="Expected result", example="Success"),
        ],
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at fake Azure endpoints and a temporary data dir."""
    return Settings(
        azure_openai_endpoint="https://openai.example.com/",
        azure_openai_api_key="openai-key",
        azure_search_endpoint="https://search.example.net",
        azure_search_api_key="search-key",
        proxy_url="http://proxy.test",
        data_dir=tmp_path / "data",
        log_dir=tmp_path / "logs",
    )
