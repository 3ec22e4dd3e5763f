"""Rendering of generated scenarios as Markdown reports, CSV and JSON."""

import csv
import io
import json
import platform
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.domain.models import CodeAnalysisResult, SecurityRule, Template, TestScenario

UNCLASSIFIED = "Unclassified"


@dataclass
class ReportMetadata:
    """Optional information printed in the report header and appendix."""

    project_name: str | None = None
    version: str | None = None
    author: str | None = None
    code_analysis: CodeAnalysisResult | None = None
    security_rules: list[SecurityRule] | None = None

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.project_name:
            data["projectName"] = self.project_name
        if self.version:
            data["version"] = self.version
        if self.author:
            data["author"] = self.author
        if self.code_analysis is not None:
            data["codeAnalysis"] = self.code_analysis.model_dump(by_alias=True)
        if self.security_rules is not None:
            data["securityRules"] = [rule.model_dump() for rule in self.security_rules]
        return data


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _cell(scenario: TestScenario, column: str) -> str:
    return _stringify(scenario.get(column) or "")


def _table(scenarios: list[TestScenario], template: Template, newline: str) -> str:
    headers = template.column_names
    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join("---" for _ in headers) + " |",
    ]
    for scenario in scenarios:
        cells = [_cell(scenario, name).replace("|", "\\|").replace("\n", newline) for name in headers]
        lines.append("| " + " | ".join(cells) + " |")
    return "\n".join(lines) + "\n"


def _bullets(items: list[str], fmt: str = "{}") -> str:
    return "\n".join(f"- {fmt.format(item)}" for item in items)


# =============================================================================
# Report sections
# =============================================================================


def _header(template_name: str, metadata: ReportMetadata, now: datetime) -> str:
    return f"""# Test Scenario Report

**Project**: {metadata.project_name or "Unspecified"}  
**Template**: {template_name}  
**Version**: {metadata.version or "v1.0.0"}  
**Author**: {metadata.author or "AI generated"}  
**Generated**: {now.strftime("%Y-%m-%d %H:%M")}  
**Tool**: Test Scenario Generator (Azure OpenAI + RAG)

---

"""


def _table_of_contents() -> str:
    return """## 📋 Table of Contents

- [Overview](#overview)
- [Test Environment](#test-environment)
- [Applied Security Rules](#applied-security-rules)
- [Test Scenarios](#test-scenarios)
- [Statistics](#statistics)
- [Appendix](#appendix)

---

"""


def _overview(scenario_count: int) -> str:
    return f"""## 📖 Overview

This document contains test cases produced by the AI-based test scenario generator.

### Generation
- **Total test cases**: {scenario_count}
- **Method**: code analysis + RAG-based security rule retrieval
- **AI model**: Azure OpenAI
- **Search engine**: Azure AI Search (hybrid search)

### Contents
1. Main characteristics of the analyzed code
2. Applied security policies and rules
3. Generated test scenarios
4. Test coverage statistics

---

"""


def _environment(analysis: CodeAnalysisResult) -> str:
    return f"""## 🔧 Test Environment

### Analyzed code

#### 🔑 Security keywords
{_bullets(analysis.keywords, "`{}`")}

#### 🎨 UI elements
{_bullets(analysis.ui_elements)}

#### 🌐 API endpoints
{_bullets(analysis.backend_apis, "`{}`")}

#### ⚠️ Security concerns
{_bullets(analysis.security_concerns)}

#### 🔧 Main functions
{_bullets(analysis.functions, "`{}()`")}

#### 📦 Components
{_bullets(analysis.components, "`{}`")}

---

"""


def _security_rules(rules: list[SecurityRule]) -> str:
    section = "## 🛡️ Applied Security Rules\n\nThe following rules were applied when generating the scenarios:\n\n"
    for index, rule in enumerate(rules, start=1):
        section += (
            f"### {index}. {rule.title}\n\n"
            f"**Category**: {rule.category}  \n"
            f"**Relevance**: {rule.relevance * 100:.1f}%\n\n"
            f"{rule.content}\n\n"
        )
    return section + "---\n\n"


def _scenario_section(scenarios: list[TestScenario], template: Template) -> str:
    if not scenarios:
        return "## 📝 Test Scenarios\n\nNo test scenarios were generated.\n\n---\n\n"

    return (
        f"## 📝 Test Scenarios\n\n{len(scenarios)} test case(s) were generated.\n\n"
        f"{_table(scenarios, template, '<br>')}\n---\n\n"
    )


def column_statistics(scenarios: list[TestScenario], column: str) -> dict[str, int]:
    """Count scenarios per value of a column; empty values count as unclassified."""
    return dict(Counter(_cell(scenario, column) or UNCLASSIFIED for scenario in scenarios))


def average_scenario_length(scenarios: list[TestScenario], template: Template) -> int:
    """Average character length of a row, cells joined by single spaces."""
    if not scenarios:
        return 0
    total = sum(len(" ".join(_cell(scenario, name) for name in template.column_names)) for scenario in scenarios)
    return int(total / len(scenarios) + 0.5)


def _find_column(template: Template, needle: str) -> str | None:
    return next((name for name in template.column_names if needle in name.lower()), None)


def _statistics(scenarios: list[TestScenario], template: Template) -> str:
    if not scenarios:
        return ""

    section = "## 📊 Statistics\n\n### Distribution\n\n"

    for needle, title in (("priority", "By priority"), ("security", "By security rule")):
        column = _find_column(template, needle)
        if column is not None:
            counts = column_statistics(scenarios, column)
            section += f"#### {title}\n" + "\n".join(f"- {key}: {count}" for key, count in counts.items()) + "\n\n"

    section += f"""### Totals

- **Test cases**: {len(scenarios)}
- **Columns**: {len(template.columns)}
- **Average scenario length**: {average_scenario_length(scenarios, template)} chars

---

"""
    return section


def _appendix(now: datetime) -> str:
    return f"""## 📎 Appendix

### A. Generation environment

- **Platform**: {platform.system()} {platform.release()}
- **Python**: {platform.python_version()}
- **Generated at**: {now.isoformat()}
- **Time zone**: {now.astimezone().tzname()}

### B. Usage guide

#### Running the tests
1. Plan the test run from each case's scenario
2. Prepare the test data (see the examples)
3. Compare expected and actual results
4. Verify compliance with the security rules

#### Notes
- The test cases were generated by AI; review them before use
- Run security tests in an isolated environment
- Replace sensitive data with dummy test data

---

*This document was generated automatically by the Test Scenario Generator.*
"""


# =============================================================================
# Public renderers
# =============================================================================


def generate_test_scenario_markdown(
    scenarios: list[TestScenario],
    template: Template,
    metadata: ReportMetadata | None = None,
) -> str:
    """Render the full Markdown report.

    Args:
        scenarios: Generated rows.
        template: Template whose columns define the table.
        metadata: Optional header details, analysis and rules.

    Returns:
        The Markdown document.
    """
    metadata = metadata or ReportMetadata()
    now = datetime.now()

    parts = [_header(template.name, metadata, now), _table_of_contents(), _overview(len(scenarios))]
    if metadata.code_analysis is not None:
        parts.append(_environment(metadata.code_analysis))
    if metadata.security_rules:
        parts.append(_security_rules(metadata.security_rules))
    parts.append(_scenario_section(scenarios, template))
    parts.append(_statistics(scenarios, template))
    parts.append(_appendix(now))

    return "".join(parts)


def generate_simple_markdown(scenarios: list[TestScenario], template: Template) -> str:
    """Render a short Markdown table for previews."""
    markdown = (
        "# Test Scenarios\n\n"
        f"**Generated**: {datetime.now().strftime('%Y-%m-%d %H:%M')}  \n"
        f"**Template**: {template.name}  \n"
        f"**Cases**: {len(scenarios)}\n\n"
        "## Test Cases\n\n"
    )

    if not scenarios:
        return markdown + "No test cases were generated.\n"

    return markdown + _table(scenarios, template, " ")


def generate_csv(scenarios: list[TestScenario], template: Template) -> str:
    """Render scenarios as CSV with every field quoted. Empty input gives ``""``."""
    if not scenarios:
        return ""

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(template.column_names)
    for scenario in scenarios:
        writer.writerow([_cell(scenario, name) for name in template.column_names])
    return buffer.getvalue()


def generate_json(
    scenarios: list[TestScenario],
    template: Template,
    metadata: ReportMetadata | None = None,
) -> str:
    """Render ``{metadata, template, scenarios}`` as indented JSON."""
    output = {
        "metadata": {
            "generatedAt": datetime.now().astimezone().isoformat(),
            "templateName": template.name,
            "totalScenarios": len(scenarios),
            "generator": "AI Test Scenario Generator",
            **(metadata.to_json() if metadata else {}),
        },
        "template": {
            "name": template.name,
            "columns": [column.model_dump(by_alias=True) for column in template.columns],
        },
        "scenarios": scenarios,
    }
    return json.dumps(output, ensure_ascii=False, indent=2)
