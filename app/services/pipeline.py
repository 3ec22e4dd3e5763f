"""End-to-end scenario pipeline: analyze code, retrieve rules, generate."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from app.domain.models import CodeAnalysisResult, ScenarioTable, SecurityRule, Template
from app.services.code_analysis import CodeAnalyzer
from app.services.files import SourceFile
from app.services.retrieval import SecurityRuleRetriever
from app.services.scenario_generation import ScenarioGenerator

logger = logging.getLogger(__name__)

# Called with (percent, message).
PipelineProgress = Callable[[int, str], None]

# Share of the progress bar covered by code analysis.
ANALYSIS_SHARE = 40


@dataclass
class PipelineResult:
    """Outputs of every pipeline stage, kept for regeneration and export.

    ``template`` is the template the scenarios were shaped to, which may
    differ from the one selected later in the UI.
    """

    analysis: CodeAnalysisResult
    rules: list[SecurityRule] = field(default_factory=list)
    scenarios: ScenarioTable | None = None
    template: Template | None = None


class ScenarioPipeline:
    """Runs the three stages in sequence.

    Attributes:
        analyzer: Code analysis stage.
        retriever: Security rule retrieval stage.
        generator: Scenario generation stage.
    """

    def __init__(
        self,
        analyzer: CodeAnalyzer,
        retriever: SecurityRuleRetriever,
        generator: ScenarioGenerator,
    ) -> None:
        self.analyzer = analyzer
        self.retriever = retriever
        self.generator = generator

    async def run(
        self,
        template: Template,
        code_files: list[SourceFile],
        on_progress: PipelineProgress | None = None,
    ) -> PipelineResult:
        """Generate scenarios for uploaded code.

        Args:
            template: Active template.
            code_files: Uploaded source files.
            on_progress: Progress callback taking a percentage and a message.

        Returns:
            A PipelineResult with analysis, rules and scenarios.
        """

        def report(percent: int, message: str) -> None:
            logger.info(f"[{percent}%] {message}")
            if on_progress is not None:
                on_progress(percent, message)

        report(0, "Analyzing code")
        analysis = await self.analyzer.analyze(
            code_files,
            on_progress=lambda done, total: report(
                int(ANALYSIS_SHARE * done / total), f"Analyzed chunk {done}/{total}"
            ),
        )

        report(50, "Searching security rules")
        rules = await self.retriever.retrieve(analysis)

        report(70, "Generating test scenarios")
        scenarios = await self.generator.generate(template, analysis, rules)

        report(100, "Done")
        return PipelineResult(analysis=analysis, rules=rules, scenarios=scenarios, template=template)

    async def regenerate(
        self,
        result: PipelineResult,
        template: Template,
        custom_prompt: str,
    ) -> PipelineResult:
        """Generate again from stored analysis and rules with extra requirements."""
        scenarios = await self.generator.regenerate(template, result.analysis, result.rules, custom_prompt)
        return PipelineResult(analysis=result.analysis, rules=result.rules, scenarios=scenarios, template=template)
