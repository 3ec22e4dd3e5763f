"""Domain models.

Pydantic models shared by the service layer, the proxy schemas and the UI.
Serialized field names are camelCase so stored templates and LLM answers
keep the shape used by the rest of the tooling.
"""

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# One generated row: column name -> cell text.
TestScenario = dict[str, str]


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadMode(str, enum.Enum):
    """How policy documents are added to the search index."""

    REPLACE = "replace"
    APPEND = "append"


class TemplateColumn(CamelModel):
    """A single column of a scenario template."""

    name: str
    description: str = ""
    example: str = ""


class Template(CamelModel):
    """A user-defined scenario template."""

    id: int
    name: str
    columns: list[TemplateColumn]
    created_at: datetime
    updated_at: datetime | None = None

    @property
    def column_names(self) -> list[str]:
        """Return the column names in display order."""
        return [column.name for column in self.columns]


class ValidationResult(BaseModel):
    """Outcome of template validation."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)


class TemplateStats(BaseModel):
    """Aggregate information about stored templates."""

    total_templates: int
    average_columns: int
    most_used_column_names: list[str]
    oldest_template: Template | None = None
    newest_template: Template | None = None


class CodeAnalysisResult(CamelModel):
    """Information extracted from uploaded source code."""

    keywords: list[str] = Field(default_factory=list)
    ui_elements: list[str] = Field(default_factory=list)
    backend_apis: list[str] = Field(default_factory=list)
    security_concerns: list[str] = Field(default_factory=list)
    functions: list[str] = Field(default_factory=list)
    components: list[str] = Field(default_factory=list)

    @field_validator(
        "keywords",
        "ui_elements",
        "backend_apis",
        "security_concerns",
        "functions",
        "components",
        mode="before",
    )
    @classmethod
    def coerce_string_list(cls, v: Any) -> list[str]:
        """Accept loosely shaped LLM output: drop nulls, stringify the rest."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        if not isinstance(v, (list, tuple, set)):
            return [str(v)]
        return [item if isinstance(item, str) else str(item) for item in v if item is not None]

    def is_empty(self) -> bool:
        """Return True if no field holds any entry."""
        return not any(
            (
                self.keywords,
                self.ui_elements,
                self.backend_apis,
                self.security_concerns,
                self.functions,
                self.components,
            )
        )


class SecurityRule(BaseModel):
    """A search hit describing one security rule."""

    id: str
    title: str
    content: str
    filename: str = ""
    category: str = "security-policy"
    relevance: float = Field(ge=0.0, le=1.0)


class SearchDocument(CamelModel):
    """Payload uploaded to the search index for one policy document."""

    id: str
    title: str
    content: str
    filename: str
    category: str
    content_vector: list[float]


class IndexStats(CamelModel):
    """Document count and storage usage of the search index."""

    document_count: int = 0
    storage_size: int = 0


class ScenarioTable(BaseModel):
    """Generated scenarios together with their ordered column names."""

    columns: list[str]
    rows: list[TestScenario] = Field(default_factory=list)
    from_fallback: bool = False

    def __len__(self) -> int:
        return len(self.rows)
