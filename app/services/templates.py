"""Template store backed by a JSON file.

Templates are kept as a camelCase JSON array, the same shape the
export/import format uses for columns.
"""

import json
import logging
import math
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from app.core.errors import TemplateError, TemplateValidationError
from app.domain.models import Template, TemplateColumn, TemplateStats, ValidationResult

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"

_templates_adapter = TypeAdapter(list[Template])

DEFAULT_TEMPLATE_COLUMNS = [
    TemplateColumn(name="Test Case ID", description="Unique identifier of the test case", example="TC001"),
    TemplateColumn(
        name="Test Scenario",
        description="Detailed description of the test to perform",
        example="User login functionality test",
    ),
    TemplateColumn(
        name="Applied Security Rule",
        description="Security policy covered by the test",
        example="User authentication security rule",
    ),
    TemplateColumn(
        name="Expected Result",
        description="Outcome expected after running the test",
        example="Login succeeds and the dashboard page is shown",
    ),
    TemplateColumn(
        name="Test Data",
        description="Input data used by the test",
        example="valid_user@example.com / password123",
    ),
]

WEB_APP_TEMPLATE_COLUMNS = [
    TemplateColumn(name="Test ID", description="Unique identifier for test case", example="WEB-001"),
    TemplateColumn(name="Feature", description="Feature being tested", example="User Authentication"),
    TemplateColumn(
        name="Test Scenario",
        description="Detailed test scenario description",
        example="User login with valid credentials",
    ),
    TemplateColumn(
        name="Security Rule", description="Applied security policy", example="Password complexity validation"
    ),
    TemplateColumn(
        name="Test Steps",
        description="Step-by-step test execution",
        example="1. Navigate to login page 2. Enter credentials 3. Click login",
    ),
    TemplateColumn(
        name="Expected Result",
        description="Expected outcome",
        example="User successfully logged in and redirected to dashboard",
    ),
    TemplateColumn(name="Priority", description="Test case priority", example="High"),
]

API_TEMPLATE_COLUMNS = [
    TemplateColumn(name="API Test ID", description="API test case identifier", example="API-001"),
    TemplateColumn(name="Endpoint", description="API endpoint being tested", example="POST /api/v1/auth/login"),
    TemplateColumn(name="Test Scenario", description="API test scenario", example="Login with valid credentials"),
    TemplateColumn(
        name="Security Check",
        description="Security validation performed",
        example="Input validation, SQL injection prevention",
    ),
    TemplateColumn(
        name="Request Body",
        description="API request payload",
        example='{"email": "user@test.com", "password": "test123"}',
    ),
    TemplateColumn(name="Expected Status", description="Expected HTTP status code", example="200 OK"),
    TemplateColumn(
        name="Expected Response",
        description="Expected response structure",
        example='{"token": "jwt_token", "user": {...}}',
    ),
]

# kind -> (template name, columns)
BUILTIN_TEMPLATES: dict[str, tuple[str, list[TemplateColumn]]] = {
    "default": ("Default Test Template", DEFAULT_TEMPLATE_COLUMNS),
    "web app": ("Web Application Test Template", WEB_APP_TEMPLATE_COLUMNS),
    "api": ("API Test Template", API_TEMPLATE_COLUMNS),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _clean_columns(columns: list[TemplateColumn]) -> list[TemplateColumn]:
    return [column.model_copy() for column in columns if column.name.strip()]


def _checked_columns(name: str, columns: list[TemplateColumn]) -> list[TemplateColumn]:
    cleaned = _clean_columns(columns)
    result = validate_template(name, cleaned)
    if not result.is_valid:
        raise TemplateValidationError(result.errors)
    return cleaned


def validate_template(name: str | None, columns: list[TemplateColumn] | None) -> ValidationResult:
    """Check a template before it is saved.

    A template is invalid if its name is blank, it has no columns, a column
    name is blank, or two column names collide case-insensitively.
    """
    errors: list[str] = []

    if not name or not name.strip():
        errors.append("A template name is required.")

    if columns is None:
        errors.append("Column information is required.")
    else:
        if not columns:
            errors.append("At least one column is required.")

        for index, column in enumerate(columns, start=1):
            if not column.name or not column.name.strip():
                errors.append(f"Column {index} needs a name.")

        names = [column.name.strip().lower() for column in columns]
        duplicates = [name for name, count in Counter(names).items() if count > 1]
        if duplicates:
            errors.append(f"Duplicate column names: {', '.join(duplicates)}")

    return ValidationResult(is_valid=not errors, errors=errors)


class TemplateService:
    """CRUD, import/export and statistics for scenario templates.

    Attributes:
        path: JSON file holding the templates.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    # =========================================================================
    # Storage
    # =========================================================================

    def get_all_templates(self) -> list[Template]:
        """Return every stored template; unreadable storage yields an empty list."""
        if not self.path.exists():
            return []

        try:
            return _templates_adapter.validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.error(f"Failed to read templates from {self.path}: {e}")
            return []

    def _write(self, templates: list[Template], action: str) -> None:
        data = [template.model_dump(mode="json", by_alias=True, exclude_none=True) for template in templates]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to {action} template store {self.path}: {e}")
            raise TemplateError(f"Failed to {action} the template.") from e

    @staticmethod
    def _next_id(templates: list[Template]) -> int:
        candidate = int(time.time() * 1000)
        highest = max((template.id for template in templates), default=0)
        return max(candidate, highest + 1)

    # =========================================================================
    # CRUD
    # =========================================================================

    def save_template(self, name: str, columns: list[TemplateColumn]) -> Template:
        """Store a new template. Blank-named columns are dropped.

        Raises:
            TemplateValidationError: If the name is blank, no column is left
                or column names collide.
            TemplateError: If the store cannot be written.
        """
        cleaned = _checked_columns(name, columns)
        templates = self.get_all_templates()
        template = Template(
            id=self._next_id(templates),
            name=name.strip(),
            columns=cleaned,
            created_at=_now(),
        )
        templates.append(template)
        self._write(templates, "save")

        logger.info(f"Saved template '{template.name}' ({len(template.columns)} columns)")
        return template

    def update_template(self, template_id: int, name: str, columns: list[TemplateColumn]) -> Template:
        """Replace the name and columns of a stored template.

        Raises:
            TemplateValidationError: If the new name or columns are invalid.
            TemplateError: If the template does not exist or the store cannot be written.
        """
        cleaned = _checked_columns(name, columns)
        templates = self.get_all_templates()
        for index, existing in enumerate(templates):
            if existing.id == template_id:
                break
        else:
            raise TemplateError(f"Template {template_id} not found.")

        updated = existing.model_copy(
            update={"name": name.strip(), "columns": cleaned, "updated_at": _now()}
        )
        templates[index] = updated
        self._write(templates, "update")

        logger.info(f"Updated template '{updated.name}'")
        return updated

    def delete_template(self, template_id: int) -> bool:
        """Delete a template. Returns False if it did not exist."""
        templates = self.get_all_templates()
        remaining = [template for template in templates if template.id != template_id]
        if len(remaining) == len(templates):
            return False

        self._write(remaining, "delete")
        logger.info(f"Deleted template {template_id}")
        return True

    def get_template(self, template_id: int) -> Template | None:
        return next((t for t in self.get_all_templates() if t.id == template_id), None)

    def get_template_by_name(self, name: str) -> Template | None:
        """Find a template by name, ignoring case."""
        wanted = name.lower()
        return next((t for t in self.get_all_templates() if t.name.lower() == wanted), None)

    def duplicate_template(self, template_id: int, new_name: str | None = None) -> Template:
        """Copy a template, named ``"<name> (copy)"`` unless a name is given.

        Raises:
            TemplateError: If the template does not exist.
        """
        original = self.get_template(template_id)
        if original is None:
            raise TemplateError(f"Template {template_id} to duplicate was not found.")

        return self.save_template(new_name or f"{original.name} (copy)", original.columns)

    def clear_all_templates(self) -> bool:
        """Remove the template store. Returns False if it could not be removed."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to clear template store {self.path}: {e}")
            return False
        return True

    # =========================================================================
    # Import / export
    # =========================================================================

    def export_template(self, template_id: int) -> str:
        """Serialize a template to the portable JSON format.

        Raises:
            TemplateError: If the template does not exist.
        """
        template = self.get_template(template_id)
        if template is None:
            raise TemplateError(f"Template {template_id} to export was not found.")

        export_data = {
            "version": EXPORT_VERSION,
            "exportedAt": _now().isoformat(),
            "template": {
                "name": template.name,
                "columns": [column.model_dump(by_alias=True) for column in template.columns],
            },
        }
        return json.dumps(export_data, ensure_ascii=False, indent=2)

    def import_template(self, json_string: str) -> Template:
        """Store a template from the portable JSON format.

        Columns without a name are dropped. A name that already exists gets
        an ``" (imported)"`` suffix.

        Raises:
            TemplateError: If the JSON is malformed or holds no usable column.
        """
        try:
            import_data: Any = json.loads(json_string)
        except json.JSONDecodeError as e:
            raise TemplateError(f"Failed to import template: invalid JSON ({e})") from e

        template_data = import_data.get("template") if isinstance(import_data, dict) else None
        if (
            not isinstance(template_data, dict)
            or not template_data.get("name")
            or not isinstance(template_data.get("columns"), list)
        ):
            raise TemplateError("Failed to import template: invalid template format.")

        columns = [
            TemplateColumn(
                name=column["name"],
                description=column.get("description") or "",
                example=column.get("example") or "",
            )
            for column in template_data["columns"]
            if isinstance(column, dict) and isinstance(column.get("name"), str) and column["name"].strip()
        ]
        if not columns:
            raise TemplateError("Failed to import template: no valid columns.")

        name = str(template_data["name"])
        if self.get_template_by_name(name) is not None:
            name = f"{name} (imported)"

        return self.save_template(name, columns)

    # =========================================================================
    # Built-in templates
    # =========================================================================

    def create_builtin_template(self, kind: str) -> Template:
        """Store one of the built-in templates (``default``, ``web app``, ``api``).

        Raises:
            ValueError: If the kind is unknown.
        """
        if kind not in BUILTIN_TEMPLATES:
            raise ValueError(f"Unknown built-in template: {kind}. Valid options: {', '.join(BUILTIN_TEMPLATES)}")

        name, columns = BUILTIN_TEMPLATES[kind]
        return self.save_template(name, columns)

    def create_default_template(self) -> Template:
        return self.create_builtin_template("default")

    def create_web_app_template(self) -> Template:
        return self.create_builtin_template("web app")

    def create_api_template(self) -> Template:
        return self.create_builtin_template("api")

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_template_stats(self) -> TemplateStats:
        """Summarize the stored templates."""
        templates = self.get_all_templates()
        if not templates:
            return TemplateStats(total_templates=0, average_columns=0, most_used_column_names=[])

        total_columns = sum(len(template.columns) for template in templates)
        average_columns = math.floor(total_columns / len(templates) + 0.5)

        counts = Counter(column.name.lower() for template in templates for column in template.columns)
        most_used = [name for name, _ in counts.most_common(5)]

        by_date = sorted(templates, key=lambda template: template.created_at)
        return TemplateStats(
            total_templates=len(templates),
            average_columns=average_columns,
            most_used_column_names=most_used,
            oldest_template=by_date[0],
            newest_template=by_date[-1],
        )
