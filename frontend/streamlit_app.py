"""Streamlit frontend for the Test Scenario Generator.

A four-step wizard: upload security documents, choose a template,
analyze code and generate scenarios, review and export the results.
The service layer runs in-process; Azure calls go through the proxy.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar

import httpx
import streamlit as st
from streamlit.runtime.uploaded_file_manager import UploadedFile

from app.core.config import Settings, get_settings
from app.core.errors import (
    FileValidationError,
    ScenarioGeneratorError,
    TemplateError,
    TemplateValidationError,
    error_hint,
)
from app.core.factory import ComponentFactory
from app.core.logging_config import setup_logging
from app.domain.models import Template, TemplateColumn, UploadMode
from app.services.export import (
    ReportMetadata,
    generate_csv,
    generate_json,
    generate_simple_markdown,
    generate_test_scenario_markdown,
)
from app.services.files import (
    SUPPORTED_CODE_EXTENSIONS,
    SUPPORTED_DOC_EXTENSIONS,
    SourceFile,
    detect_code_language,
    format_file_size,
    generate_file_preview,
    validate_file,
)
from app.services.pipeline import PipelineResult
from app.services.templates import BUILTIN_TEMPLATES, TemplateService
from app.services.wizard import Wizard, WizardStep

T = TypeVar("T")

# Page config
st.set_page_config(
    page_title="Test Scenario Generator",
    page_icon="🧪",
    layout="wide",
    initial_sidebar_state="expanded",
)

setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a service coroutine from Streamlit's synchronous script."""
    return asyncio.run(coro)


def build_factory(settings: Settings) -> ComponentFactory:
    """Create a fresh factory so SDK clients never outlive their event loop."""
    return ComponentFactory(settings)


def show_error(action: str, exc: Exception) -> None:
    """Display an error together with a troubleshooting hint."""
    logger.error(f"{action} failed: {exc}", exc_info=not isinstance(exc, ScenarioGeneratorError))
    st.error(f"{action} failed: {exc}")
    st.info(f"💡 {error_hint(str(exc))}")


def to_source_files(uploads: list[UploadedFile], allowed: list[str], max_size: int) -> list[SourceFile]:
    """Validate uploads and keep the acceptable ones, reporting the rest."""
    files: list[SourceFile] = []
    for upload in uploads:
        try:
            validate_file(upload.name, upload.size, allowed, max_size)
        except FileValidationError as e:
            st.warning(str(e))
            continue
        files.append(SourceFile(name=upload.name, data=upload.getvalue()))
    return files


def proxy_health(settings: Settings) -> dict[str, Any] | None:
    """Return the proxy's health document, or None if unreachable."""
    try:
        response = httpx.get(f"{settings.proxy_url}/api/health", timeout=5.0)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPError as e:
        logger.warning(f"Proxy health check failed: {e}")
        return None


def init_session_state() -> None:
    """Initialize session state variables."""
    defaults: dict[str, Any] = {
        "wizard": Wizard(),
        "selected_template_id": None,
        "code_files": [],
        "pipeline_result": None,
        "indexing_report": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


# =============================================================================
# UI Components
# =============================================================================


def render_sidebar(settings: Settings, wizard: Wizard) -> None:
    """Render connection status and step navigation."""
    with st.sidebar:
        st.title("🧪 Scenario Generator")

        st.divider()

        health = proxy_health(settings)
        if health is None:
            st.error("❌ Proxy unreachable")
            st.caption(f"Proxy URL: `{settings.proxy_url}`")
        else:
            env = health.get("environment", {})
            st.success("✅ Proxy connected")
            st.write("OpenAI:", "✅" if env.get("openaiConfigured") else "❌ not configured")
            st.write("Search:", "✅" if env.get("searchConfigured") else "❌ not configured")

        st.divider()

        st.subheader("Steps")
        for step in WizardStep:
            marker = "✅" if wizard.is_completed(step) else ("▶️" if step == wizard.current else "⏺️")
            if st.button(
                f"{marker} {step.value}. {step.label}",
                key=f"nav_{step.value}",
                disabled=not wizard.can_go_to(step),
                use_container_width=True,
            ):
                wizard.go_to(step)
                st.rerun()

        st.divider()

        if st.button("🔄 Start over", use_container_width=True):
            wizard.reset()
            st.session_state.pipeline_result = None
            st.session_state.code_files = []
            st.session_state.indexing_report = None
            st.rerun()

        st.caption(f"Index: `{settings.search_index_name}`")


def render_upload_documents(settings: Settings, wizard: Wizard) -> None:
    """Step 1: index security policy documents."""
    st.header("📤 Step 1: Upload security documents")

    uploads = st.file_uploader(
        "Security policy documents",
        type=[ext.lstrip(".") for ext in SUPPORTED_DOC_EXTENSIONS],
        accept_multiple_files=True,
        help=f"Supported formats: {', '.join(SUPPORTED_DOC_EXTENSIONS)}",
    )

    mode_label = st.radio(
        "Upload mode",
        ["Replace existing documents", "Append to existing documents"],
        horizontal=True,
    )
    mode = UploadMode.REPLACE if mode_label.startswith("Replace") else UploadMode.APPEND

    col1, col2 = st.columns([1, 1])

    with col1:
        if st.button("Index documents", type="primary", disabled=not uploads):
            files = to_source_files(uploads or [], SUPPORTED_DOC_EXTENSIONS, settings.max_file_size)
            if files:
                progress = st.progress(0.0, text="Indexing documents...")
                try:
                    indexer = build_factory(settings).get_document_indexer()
                    report = run_async(
                        indexer.index_files(
                            files,
                            mode,
                            on_progress=lambda done, total: progress.progress(
                                done / total, text=f"Indexed {done}/{total}"
                            ),
                        )
                    )
                except (ScenarioGeneratorError, ValueError) as e:
                    show_error("Document indexing", e)
                else:
                    st.session_state.indexing_report = report
                    st.success(f"Indexed {report.count} document(s) in {mode.value} mode")
                    wizard.complete(WizardStep.UPLOAD_DOCUMENTS)
                    st.rerun()

    with col2:
        if st.button("Skip (use existing index)"):
            wizard.complete(WizardStep.UPLOAD_DOCUMENTS)
            st.rerun()

    with st.expander("Index status"):
        if st.button("Refresh statistics"):
            try:
                stats = run_async(build_factory(settings).get_search_index().get_index_stats())
            except ScenarioGeneratorError as e:
                show_error("Index statistics", e)
            else:
                st.metric("Documents", stats.document_count)
                st.metric("Storage", format_file_size(stats.storage_size))


def render_column_editor(prefix: str, columns: list[TemplateColumn]) -> list[TemplateColumn]:
    """Editable table of template columns."""
    rows = [column.model_dump() for column in columns] or [{"name": "", "description": "", "example": ""}]
    edited = st.data_editor(
        rows,
        key=f"{prefix}_columns",
        num_rows="dynamic",
        use_container_width=True,
        column_config={
            "name": st.column_config.TextColumn("Column name", required=True),
            "description": st.column_config.TextColumn("Description"),
            "example": st.column_config.TextColumn("Example"),
        },
    )
    return [
        TemplateColumn(
            name=str(row.get("name") or ""),
            description=str(row.get("description") or ""),
            example=str(row.get("example") or ""),
        )
        for row in edited
    ]


def render_template_editor(service: TemplateService, template: Template | None) -> None:
    """Create a new template or edit an existing one."""
    prefix = f"edit_{template.id}" if template else "new"
    name = st.text_input("Template name", value=template.name if template else "", key=f"{prefix}_name")
    columns = render_column_editor(prefix, template.columns if template else [])

    if st.button("💾 Save template", key=f"{prefix}_save", type="primary"):
        try:
            saved = (
                service.update_template(template.id, name, columns)
                if template
                else service.save_template(name, columns)
            )
        except TemplateValidationError as e:
            for message in e.errors:
                st.error(message)
            return
        except TemplateError as e:
            show_error("Saving template", e)
            return

        st.session_state.selected_template_id = saved.id
        st.success(f"Saved template '{saved.name}'")
        st.rerun()


def render_select_template(settings: Settings, wizard: Wizard) -> None:
    """Step 2: choose, create, edit, import or export a template."""
    st.header("📋 Step 2: Choose a template")
    service = build_factory(settings).get_template_service()
    templates = service.get_all_templates()

    if not templates:
        st.info("No templates yet. Create one below or add a built-in template.")

    tab_select, tab_edit, tab_manage = st.tabs(["Select", "Create / edit", "Import / export"])

    with tab_select:
        if templates:
            ids = [template.id for template in templates]
            current = st.session_state.selected_template_id
            index = ids.index(current) if current in ids else 0
            chosen = st.selectbox(
                "Template",
                templates,
                index=index,
                format_func=lambda t: f"{t.name} ({len(t.columns)} columns)",
            )
            st.session_state.selected_template_id = chosen.id
            st.dataframe([column.model_dump() for column in chosen.columns], use_container_width=True, hide_index=True)

            col1, col2, col3 = st.columns(3)
            with col1:
                if st.button("Use this template", type="primary"):
                    wizard.complete(WizardStep.SELECT_TEMPLATE)
                    st.rerun()
            with col2:
                if st.button("Duplicate"):
                    copy = service.duplicate_template(chosen.id)
                    st.session_state.selected_template_id = copy.id
                    st.rerun()
            with col3:
                if st.button("Delete"):
                    service.delete_template(chosen.id)
                    st.session_state.selected_template_id = None
                    st.rerun()

        st.divider()
        st.subheader("Built-in templates")
        cols = st.columns(len(BUILTIN_TEMPLATES))
        for col, (kind, (name, _)) in zip(cols, BUILTIN_TEMPLATES.items()):
            with col:
                if st.button(f"➕ {name}", key=f"builtin_{kind}"):
                    created = service.create_builtin_template(kind)
                    st.session_state.selected_template_id = created.id
                    st.rerun()

    with tab_edit:
        target = service.get_template(st.session_state.selected_template_id) if templates else None
        editing = st.toggle("Edit selected template", value=False, disabled=target is None)
        render_template_editor(service, target if editing else None)

    with tab_manage:
        imported = st.file_uploader("Import template (.json)", type=["json"], key="template_import")
        if imported is not None and st.button("Import"):
            try:
                template = service.import_template(imported.getvalue().decode("utf-8"))
            except TemplateError as e:
                show_error("Template import", e)
            else:
                st.session_state.selected_template_id = template.id
                st.success(f"Imported template '{template.name}'")

        selected = service.get_template(st.session_state.selected_template_id) if templates else None
        if selected is not None:
            st.download_button(
                f"⬇️ Export '{selected.name}'",
                data=service.export_template(selected.id),
                file_name=f"{selected.name}.json",
                mime="application/json",
            )

        stats = service.get_template_stats()
        st.caption(
            f"{stats.total_templates} template(s), {stats.average_columns} column(s) on average. "
            f"Common columns: {', '.join(stats.most_used_column_names) or '-'}"
        )


def render_generate(settings: Settings, wizard: Wizard) -> None:
    """Step 3: upload code, analyze it and generate scenarios."""
    st.header("🔍 Step 3: Analyze code & generate scenarios")
    service = build_factory(settings).get_template_service()
    template = service.get_template(st.session_state.selected_template_id)
    if template is None:
        st.warning("The selected template no longer exists. Choose one in step 2.")
        return

    st.write(f"**Template:** {template.name} ({', '.join(template.column_names)})")

    uploads = st.file_uploader(
        "Source code files",
        type=[ext.lstrip(".") for ext in SUPPORTED_CODE_EXTENSIONS],
        accept_multiple_files=True,
    )
    files = to_source_files(uploads or [], SUPPORTED_CODE_EXTENSIONS, settings.max_file_size)

    for source in files:
        with st.expander(f"{source.name} ({format_file_size(source.size)})"):
            st.code(generate_file_preview(source.text, 10), language=detect_code_language(source.name, source.text))

    if st.button("🚀 Generate test scenarios", type="primary", disabled=not files):
        progress = st.progress(0, text="Starting...")
        try:
            pipeline = build_factory(settings).get_pipeline()
            result = run_async(
                pipeline.run(template, files, on_progress=lambda pct, msg: progress.progress(pct, text=msg))
            )
        except ScenarioGeneratorError as e:
            show_error("Scenario generation", e)
        else:
            st.session_state.code_files = files
            st.session_state.pipeline_result = result
            wizard.complete(WizardStep.GENERATE)
            st.rerun()


def render_results(settings: Settings, wizard: Wizard) -> None:
    """Step 4: review, regenerate and export scenarios."""
    st.header("📊 Step 4: Results")
    result: PipelineResult | None = st.session_state.pipeline_result
    if result is None or result.scenarios is None or result.template is None:
        st.info("Nothing generated yet.")
        return

    template = result.template
    table = result.scenarios
    if template.id != st.session_state.selected_template_id:
        st.caption(f"Generated with template '{template.name}'. Generate again in step 3 to use the selected template.")
    if table.from_fallback:
        st.warning("The model's answer could not be parsed; showing generic default scenarios.")

    col1, col2, col3 = st.columns(3)
    col1.metric("Scenarios", len(table))
    col2.metric("Security rules", len(result.rules))
    col3.metric("Keywords", len(result.analysis.keywords))

    st.dataframe(table.rows, use_container_width=True, hide_index=True)

    with st.expander("Applied security rules"):
        for rule in result.rules:
            st.markdown(f"**{rule.title}** ({rule.relevance:.0%})")
            st.caption(rule.content)

    with st.expander("Code analysis"):
        st.json(result.analysis.model_dump(by_alias=True))

    st.subheader("Regenerate with extra requirements")
    custom_prompt = st.text_area("Additional requirements", placeholder="e.g. focus on file upload validation")
    if st.button("🔁 Regenerate", disabled=not custom_prompt.strip()):
        with st.spinner("Regenerating..."):
            try:
                pipeline = build_factory(settings).get_pipeline()
                st.session_state.pipeline_result = run_async(pipeline.regenerate(result, template, custom_prompt))
            except ScenarioGeneratorError as e:
                show_error("Regeneration", e)
            else:
                st.rerun()

    st.subheader("Export")
    metadata = ReportMetadata(code_analysis=result.analysis, security_rules=result.rules)
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.download_button(
            "📄 Markdown report",
            data=generate_test_scenario_markdown(table.rows, template, metadata),
            file_name="test-scenarios.md",
            mime="text/markdown",
        )
    with col2:
        st.download_button(
            "📝 Simple Markdown",
            data=generate_simple_markdown(table.rows, template),
            file_name="test-scenarios-simple.md",
            mime="text/markdown",
        )
    with col3:
        st.download_button(
            "📊 CSV", data=generate_csv(table.rows, template), file_name="test-scenarios.csv", mime="text/csv"
        )
    with col4:
        st.download_button(
            "🧾 JSON",
            data=generate_json(table.rows, template, metadata),
            file_name="test-scenarios.json",
            mime="application/json",
        )


# =============================================================================
# Main App
# =============================================================================


def main() -> None:
    """Main application entry point."""
    init_session_state()
    settings = get_settings()
    wizard: Wizard = st.session_state.wizard

    render_sidebar(settings, wizard)

    st.title("Security Test Scenario Generator")
    st.progress((wizard.current.value - 1) / (len(WizardStep) - 1), text=f"Step {wizard.current.value} of 4")

    match wizard.current:
        case WizardStep.UPLOAD_DOCUMENTS:
            render_upload_documents(settings, wizard)
        case WizardStep.SELECT_TEMPLATE:
            render_select_template(settings, wizard)
        case WizardStep.GENERATE:
            render_generate(settings, wizard)
        case WizardStep.RESULTS:
            render_results(settings, wizard)


if __name__ == "__main__":
    main()
