"""Domain models for the test scenario generator."""

from app.domain.models import (
    CodeAnalysisResult,
    IndexStats,
    ScenarioTable,
    SearchDocument,
    SecurityRule,
    Template,
    TemplateColumn,
    TemplateStats,
    TestScenario,
    UploadMode,
    ValidationResult,
)

__all__ = [
    "CodeAnalysisResult",
    "IndexStats",
    "ScenarioTable",
    "SearchDocument",
    "SecurityRule",
    "Template",
    "TemplateColumn",
    "TemplateStats",
    "TestScenario",
    "UploadMode",
    "ValidationResult",
]
