"""Unit tests for the JSON-file template store."""

import json

import pytest

from app.core.errors import TemplateError, TemplateValidationError
from app.domain.models import TemplateColumn
from app.services.templates import TemplateService, validate_template


def columns(*names: str) -> list[TemplateColumn]:
    return [TemplateColumn(name=name, description=f"{name} description", example=f"{name} example") for name in names]


class TestValidateTemplate:
    """Test suite for template validation."""

    def test_valid(self):
        result = validate_template("Login", columns("ID", "Scenario"))
        assert result.is_valid
        assert result.errors == []

    def test_missing_name_and_columns(self):
        result = validate_template("  ", [])
        assert not result.is_valid
        assert result.errors == ["A template name is required.", "At least one column is required."]

    def test_blank_column_name(self):
        result = validate_template("T", columns("ID", " "))
        assert "Column 2 needs a name." in result.errors

    def test_duplicate_names_ignore_case(self):
        result = validate_template("T", columns("ID", "id", "Scenario"))
        assert result.errors == ["Duplicate column names: id"]


class TestTemplateService:
    """Test suite for TemplateService."""

    @pytest.fixture
    def service(self, tmp_path):
        return TemplateService(tmp_path / "store" / "testTemplates.json")

    def test_empty_store(self, service):
        assert service.get_all_templates() == []

    def test_save_and_reload(self, service):
        saved = service.save_template(" Login ", columns("ID", "Scenario", " "))

        reloaded = TemplateService(service.path).get_template(saved.id)
        assert reloaded is not None
        assert reloaded.name == "Login"
        assert reloaded.column_names == ["ID", "Scenario"]
        assert reloaded.created_at == saved.created_at

    def test_store_is_camel_case_json(self, service):
        service.save_template("Login", columns("ID"))
        stored = json.loads(service.path.read_text(encoding="utf-8"))
        assert "createdAt" in stored[0]
        assert "updatedAt" not in stored[0]

    def test_ids_are_unique(self, service):
        first = service.save_template("A", columns("ID"))
        second = service.save_template("B", columns("ID"))
        assert first.id != second.id

    def test_update(self, service):
        saved = service.save_template("A", columns("ID"))
        updated = service.update_template(saved.id, "A2", columns("ID", "Result"))

        assert updated.updated_at is not None
        assert service.get_template(saved.id).column_names == ["ID", "Result"]

    def test_update_missing_raises(self, service):
        with pytest.raises(TemplateError):
            service.update_template(42, "x", columns("ID"))

    def test_save_rejects_invalid_template(self, service):
        with pytest.raises(TemplateValidationError) as excinfo:
            service.save_template("  ", columns(" "))

        assert excinfo.value.errors == ["A template name is required.", "At least one column is required."]
        assert service.get_all_templates() == []

    def test_update_rejects_duplicate_columns(self, service):
        saved = service.save_template("A", columns("ID"))

        with pytest.raises(TemplateValidationError):
            service.update_template(saved.id, "A", columns("ID", "id"))

        assert service.get_template(saved.id).column_names == ["ID"]

    def test_delete(self, service):
        saved = service.save_template("A", columns("ID"))
        assert service.delete_template(saved.id) is True
        assert service.delete_template(saved.id) is False
        assert service.get_all_templates() == []

    def test_get_by_name_ignores_case(self, service):
        service.save_template("Web Checks", columns("ID"))
        assert service.get_template_by_name("web checks") is not None
        assert service.get_template_by_name("other") is None

    def test_duplicate(self, service):
        saved = service.save_template("A", columns("ID", "Step"))
        copy = service.duplicate_template(saved.id)

        assert copy.name == "A (copy)"
        assert copy.id != saved.id
        assert copy.column_names == saved.column_names

    def test_corrupt_store_reads_as_empty(self, service):
        service.path.parent.mkdir(parents=True)
        service.path.write_text("{not json", encoding="utf-8")
        assert service.get_all_templates() == []

    def test_clear_all(self, service):
        service.save_template("A", columns("ID"))
        assert service.clear_all_templates() is True
        assert not service.path.exists()

    def test_export_import_round_trip(self, service):
        saved = service.save_template("API", columns("Endpoint", "Status"))
        exported = json.loads(service.export_template(saved.id))

        assert exported["version"] == "1.0"
        assert "exportedAt" in exported
        assert exported["template"]["columns"][0] == {
            "name": "Endpoint",
            "description": "Endpoint description",
            "example": "Endpoint example",
        }

        imported = service.import_template(json.dumps(exported))
        assert imported.name == "API (imported)"
        assert imported.column_names == ["Endpoint", "Status"]

    def test_import_defaults_missing_column_fields(self, service):
        data = {"template": {"name": "Bare", "columns": [{"name": "Only"}, {"description": "no name"}]}}
        imported = service.import_template(json.dumps(data))

        assert imported.name == "Bare"
        assert imported.columns == [TemplateColumn(name="Only", description="", example="")]

    @pytest.mark.parametrize(
        "payload",
        [
            "not json",
            json.dumps({"version": "1.0"}),
            json.dumps({"template": {"name": "x", "columns": "ID"}}),
            json.dumps({"template": {"name": "x", "columns": [{"description": "d"}]}}),
        ],
    )
    def test_import_rejects_bad_payloads(self, service, payload):
        with pytest.raises(TemplateError):
            service.import_template(payload)
        assert service.get_all_templates() == []

    def test_builtin_templates(self, service):
        default = service.create_default_template()
        web = service.create_web_app_template()
        api = service.create_api_template()

        assert default.name == "Default Test Template"
        assert len(default.columns) == 5
        assert web.column_names[-1] == "Priority"
        assert api.column_names[0] == "API Test ID"

        with pytest.raises(ValueError):
            service.create_builtin_template("mobile")

    def test_stats(self, service):
        service.save_template("A", columns("ID", "Scenario"))
        service.save_template("B", columns("id", "Scenario", "Priority"))

        stats = service.get_template_stats()

        assert stats.total_templates == 2
        assert stats.average_columns == 3
        assert stats.most_used_column_names[:2] == ["id", "scenario"]
        assert stats.oldest_template.name == "A"
        assert stats.newest_template.name == "B"

    def test_stats_empty(self, service):
        stats = service.get_template_stats()
        assert stats.total_templates == 0
        assert stats.oldest_template is None
