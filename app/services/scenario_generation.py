"""Synthesis of template-shaped test scenarios with a chat model."""

import json
import logging
from typing import Any

from app.core.errors import JsonExtractionError
from app.domain.models import CodeAnalysisResult, ScenarioTable, SecurityRule, Template, TestScenario
from app.interfaces.chat import BaseChatModel
from app.services.json_repair import parse_json_response

logger = logging.getLogger(__name__)

MIN_SCENARIOS = 5

SCENARIO_PROMPT = """Generate test scenarios based on the following information.

## Template structure:
{columns}

## Code analysis result:
- Security keywords: {keywords}
- UI elements: {ui_elements}
- API endpoints: {backend_apis}
- Security concerns: {security_concerns}
- Main functions: {functions}
- Components: {components}

## Security rules to apply:
{rules}

Generate at least {min_scenarios} test scenarios and respond ONLY with a valid JSON array like the one below. Do not include any other explanation or text:

{example}
"""

CUSTOM_REQUIREMENTS_BLOCK = """
## Additional user requirements:
{custom_prompt}

Reflect the additional requirements above in every scenario while keeping the same JSON array format.
"""

# (id, scenario, security rule, expected result) mapped onto the first four columns.
DEFAULT_SCENARIOS = [
    (
        "TC001",
        "Valid user login",
        "User authentication security rule",
        "Login succeeds and the user is redirected to the dashboard",
    ),
    (
        "TC002",
        "Login with a wrong password",
        "Login failure handling rule",
        "An error message is shown and retry is allowed",
    ),
    (
        "TC003",
        "SQL injection attempt",
        "Input validation security rule",
        "Malicious input is blocked and logged",
    ),
    (
        "TC004",
        "Personal data masking",
        "Personal data protection rule",
        "Sensitive information is displayed masked",
    ),
    (
        "TC005",
        "Unauthorized access attempt",
        "Access control security rule",
        "Access is denied and logged",
    ),
]


def _format_column(column) -> str:
    return f"- {column.name}: {column.description} (e.g. {column.example})"


def _example_row(template: Template) -> str:
    names = template.column_names
    placeholders = ["TC001", "Test scenario description", "Applied security rule", "Expected result"]
    defaults = ["ID", "Scenario", "Security", "Expected"]
    example = {
        (names[i] if i < len(names) else defaults[i]): placeholders[i] for i in range(4)
    }
    return json.dumps([example], ensure_ascii=False, indent=2)


def build_scenario_prompt(
    template: Template,
    analysis: CodeAnalysisResult,
    rules: list[SecurityRule],
    custom_prompt: str | None = None,
) -> str:
    """Assemble the generation prompt.

    Args:
        template: Active template; its columns become the JSON keys.
        analysis: Result of the code analysis step.
        rules: Retrieved security rules.
        custom_prompt: Optional free-text requirements appended at the end.

    Returns:
        The user prompt.
    """
    prompt = SCENARIO_PROMPT.format(
        columns="\n".join(_format_column(column) for column in template.columns),
        keywords=", ".join(analysis.keywords),
        ui_elements=", ".join(analysis.ui_elements),
        backend_apis=", ".join(analysis.backend_apis),
        security_concerns=", ".join(analysis.security_concerns),
        functions=", ".join(analysis.functions),
        components=", ".join(analysis.components),
        rules="\n".join(f"- {rule.title}: {rule.content}" for rule in rules),
        min_scenarios=MIN_SCENARIOS,
        example=_example_row(template),
    )

    if custom_prompt and custom_prompt.strip():
        prompt += CUSTOM_REQUIREMENTS_BLOCK.format(custom_prompt=custom_prompt.strip())

    return prompt


def default_scenarios(template: Template) -> list[TestScenario]:
    """Map the built-in scenarios onto a template's columns by position.

    Columns beyond the fourth get a ``Default <n>`` placeholder, ``n`` being
    the 1-based column number.
    """
    rows: list[TestScenario] = []
    for base in DEFAULT_SCENARIOS:
        row: TestScenario = {}
        for index, name in enumerate(template.column_names):
            row[name] = base[index] if index < len(base) else f"Default {index + 1}"
        rows.append(row)
    return rows


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def normalize_rows(data: Any, columns: list[str]) -> list[TestScenario]:
    """Keep the object rows of a parsed answer, shaped to exactly ``columns``.

    Raises:
        ValueError: If the answer is not an array or holds no object.
    """
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array, got {type(data).__name__}")

    rows = [{name: _cell(item.get(name)) for name in columns} for item in data if isinstance(item, dict)]
    if not rows:
        raise ValueError("the JSON array contains no scenario objects")

    return rows


class ScenarioGenerator:
    """Generates scenarios for a template from analysis and rules.

    Attributes:
        chat_model: Chat completion backend.
    """

    def __init__(self, chat_model: BaseChatModel) -> None:
        self.chat_model = chat_model

    async def generate(
        self,
        template: Template,
        analysis: CodeAnalysisResult,
        rules: list[SecurityRule],
        custom_prompt: str | None = None,
    ) -> ScenarioTable:
        """Ask the model for scenarios and parse the answer.

        An unparsable answer yields the built-in scenarios instead of an
        error; service errors propagate.

        Args:
            template: Active template.
            analysis: Result of the code analysis step.
            rules: Retrieved security rules.
            custom_prompt: Optional extra requirements.

        Returns:
            A ScenarioTable whose rows have exactly the template's columns.

        Raises:
            UpstreamError: If the chat service answers with an error status.
            ProxyRequestError: If the chat service cannot be reached.
        """
        columns = template.column_names
        prompt = build_scenario_prompt(template, analysis, rules, custom_prompt)
        logger.info(
            f"Generating scenarios for template '{template.name}' "
            f"with {len(rules)} rule(s){' and custom requirements' if custom_prompt else ''}"
        )

        response = await self.chat_model.complete(prompt)

        try:
            rows = normalize_rows(parse_json_response(response), columns)
        except (JsonExtractionError, json.JSONDecodeError, ValueError) as e:
            logger.error(f"Scenario answer could not be parsed, using default scenarios: {e}")
            logger.debug(f"Raw scenario answer: {response}")
            return ScenarioTable(columns=columns, rows=default_scenarios(template), from_fallback=True)

        logger.info(f"Generated {len(rows)} scenario(s)")
        return ScenarioTable(columns=columns, rows=rows)

    async def regenerate(
        self,
        template: Template,
        analysis: CodeAnalysisResult,
        rules: list[SecurityRule],
        custom_prompt: str,
    ) -> ScenarioTable:
        """Generate again with free-text requirements appended to the prompt."""
        return await self.generate(template, analysis, rules, custom_prompt=custom_prompt)
