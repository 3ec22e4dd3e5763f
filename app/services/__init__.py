"""Orchestration services built on the strategy interfaces."""

from app.services.code_analysis import CodeAnalyzer
from app.services.files import SourceFile
from app.services.indexing import DocumentIndexer, IndexingReport
from app.services.json_repair import clean_json_response
from app.services.pipeline import PipelineResult, ScenarioPipeline
from app.services.retrieval import SecurityRuleRetriever
from app.services.scenario_generation import ScenarioGenerator
from app.services.templates import TemplateService
from app.services.wizard import Wizard, WizardStep

__all__ = [
    "CodeAnalyzer",
    "DocumentIndexer",
    "IndexingReport",
    "PipelineResult",
    "ScenarioGenerator",
    "ScenarioPipeline",
    "SecurityRuleRetriever",
    "SourceFile",
    "TemplateService",
    "Wizard",
    "WizardStep",
    "clean_json_response",
]
