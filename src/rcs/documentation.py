# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Markdown documentation for stored components."""

import logging
import re
from collections import Counter
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path

from rcs.config import ScannerConfig
from rcs.model import ComponentRecord, ComponentType, ExportStatus, SecurityStatus
from rcs.persistence import ComponentStore, RecordNotFoundError, require_component
from rcs.source import SourceUnavailableError, read_source

logger = logging.getLogger(__name__)

EXAMPLE_COMMENT_PATTERN = re.compile(r"/\*\s*Example:?\s*([\s\S]*?)\*/", re.IGNORECASE)
EXPORTED_FUNCTION_PATTERN = re.compile(r"export\s+(?:async\s+)?function\s+(\w+)\s*\([^)]*\)")

CONFLICTING_PACKAGES: tuple[str, ...] = ("react", "react-dom", "next", "express")
OPTIONAL_PACKAGES: tuple[str, ...] = ("zod", "typescript", "lodash", "date-fns")

ADAPTATION_GUIDES: dict[ComponentType, tuple[str, ...]] = {
    ComponentType.SERVICE: (
        "### Service Adaptation",
        "This service can be adapted as an MCP server module:",
        "1. Wrap the service class in an MCP server handler",
        "2. Define tool schemas for each public method",
        "3. Handle async operations with proper error handling",
        "4. Add input validation using the existing interfaces",
    ),
    ComponentType.UTILITY: (
        "### Utility Function Adaptation",
        "This utility can be integrated as MCP tools:",
        "1. Export each function as a separate MCP tool",
        "2. Add parameter validation schemas",
        "3. Ensure functions are pure or handle side effects properly",
        "4. Add comprehensive error handling",
    ),
    ComponentType.PARSER: (
        "### Parser Adaptation",
        "This parser is highly suitable for MCP integration:",
        "1. Create MCP tools for different parsing operations",
        "2. Support streaming for large data processing",
        "3. Add format validation and error reporting",
        "4. Consider memory optimization for large files",
    ),
    ComponentType.VALIDATOR: (
        "### Validator Adaptation",
        "This validator can enhance MCP input validation:",
        "1. Integrate with MCP parameter validation",
        "2. Provide detailed error messages",
        "3. Support schema evolution and versioning",
        "4. Add performance optimizations for bulk validation",
    ),
    ComponentType.WORKFLOW: (
        "### Workflow Adaptation",
        "This workflow can be orchestrated through MCP tools:",
        "1. Expose each workflow stage as a separate MCP tool",
        "2. Persist intermediate state between tool calls",
        "3. Report stage progress and failures explicitly",
        "4. Keep external side effects behind injectable clients",
    ),
}

GENERIC_GUIDE: tuple[str, ...] = (
    "### General Adaptation",
    "This component can be adapted for MCP:",
    "1. Identify the core functionality to expose",
    "2. Define clear input/output schemas",
    "3. Add proper error handling and logging",
    "4. Ensure compatibility with MCP standards",
)

INDEX_FILE_NAME = "README.md"
INDEX_DESCRIPTION_LENGTH = 100


@dataclass(frozen=True)
class DependencyAnalysis:
    required: list[str]
    optional: list[str]
    conflicting: list[str]


def extract_code_examples(source_code: str) -> list[str]:
    """Collect ``/* Example: ... */`` comments and one stub per exported function."""
    examples = [match.strip() for match in EXAMPLE_COMMENT_PATTERN.findall(source_code)]
    for function_name in EXPORTED_FUNCTION_PATTERN.findall(source_code):
        examples.append(
            f"// Usage example for {function_name}\n"
            f"const result = await {function_name}(/* parameters */);"
        )
    return examples


def classify_dependencies(dependencies: list[str]) -> DependencyAnalysis:
    """Split dependencies into required, optional, and conflicting buckets.

    A dependency conflicts when it contains a UI or server framework name and
    is optional when it contains a general-purpose utility name. Everything
    else is required.
    """
    required: list[str] = []
    optional: list[str] = []
    conflicting: list[str] = []
    for dependency in dependencies:
        if any(name in dependency for name in CONFLICTING_PACKAGES):
            conflicting.append(dependency)
        elif any(name in dependency for name in OPTIONAL_PACKAGES):
            optional.append(dependency)
        else:
            required.append(dependency)
    return DependencyAnalysis(required=required, optional=optional, conflicting=conflicting)


def render_adaptation_guide(component: ComponentRecord) -> list[str]:
    lines = ["## MCP Module Adaptation Guide", ""]
    lines.extend(ADAPTATION_GUIDES.get(component.component_type, GENERIC_GUIDE))
    lines.append("")
    lines.append("### Technical Considerations")
    lines.append(
        f"- **Protocol Compatibility Score**: {component.protocol_compatibility_score}/100"
    )
    lines.append(f"- **Reusability Score**: {component.reusability_score}/100")
    lines.append(f"- **Security Status**: {component.security_status.value}")
    lines.append(f"- **Dependencies**: {len(component.dependencies)} external dependencies")
    lines.append("")
    lines.append("### Recommended MCP Pattern")
    lines.append(f"**Pattern**: {component.recommended_pattern}")
    return lines


def render_component_document(
    component: ComponentRecord,
    examples: list[str],
    dependencies: DependencyAnalysis,
    generated_at: datetime,
) -> str:
    """Render one component document as Markdown."""
    md = [
        f"# {component.name}",
        f"**Type**: {component.component_type.value}",
        f"**File**: {component.file_path}",
        f"**Reusability Score**: {component.reusability_score}/100",
        f"**Generated**: {generated_at.isoformat()}",
        "",
        "## Description",
        component.description or "No description available",
        "",
    ]

    api_sections = (
        ("Exports", component.api_surface.exports, "`{}`"),
        ("Functions", component.api_surface.functions, "`{}()`"),
        ("Classes", component.api_surface.classes, "`{}`"),
        ("Interfaces", component.api_surface.interfaces, "`{}`"),
    )
    md.append("## API Surface")
    for title, names, template in api_sections:
        if names:
            md.append(f"### {title}")
            md.extend(f"- {template.format(name)}" for name in names)
            md.append("")

    if examples:
        md.append("## Usage Examples")
        for index, example in enumerate(examples, start=1):
            md.extend([f"### Example {index}", "```typescript", example, "```", ""])

    md.append("## Dependencies")
    for title, names in (
        ("Required Dependencies", dependencies.required),
        ("Optional Dependencies", dependencies.optional),
    ):
        md.append(f"### {title}")
        if names:
            md.extend(f"- {name}" for name in names)
        else:
            md.append("- None")
        md.append("")
    if dependencies.conflicting:
        md.append("### Conflicting Dependencies (MCP)")
        md.extend(f"- CONFLICT: {name}" for name in dependencies.conflicting)
        md.append("")

    md.extend(render_adaptation_guide(component))
    md.append("")

    if component.security_status is not SecurityStatus.PENDING:
        md.append("## Security Analysis")
        md.append(f"**Status**: {component.security_status.value}")
        if component.vulnerabilities:
            md.append("### Identified Issues")
            for vulnerability in component.vulnerabilities:
                md.append(
                    f"- **{vulnerability.severity.value.upper()}**: {vulnerability.description}"
                )
                if vulnerability.line:
                    md.append(f"  - Line: {vulnerability.line}")
        else:
            md.append("No security issues identified.")
        md.append("")

    if component.tags:
        md.append("## Tags")
        md.extend(f"- {tag}" for tag in component.tags)
        md.append("")

    md.extend(
        [
            "## Metadata",
            f"- **Component ID**: {component.id}",
            f"- **Last Scanned**: {component.last_scanned.isoformat()}",
            f"- **Flagged By**: {component.flagged_by}",
            f"- **Export Status**: {component.export_status.value}",
        ]
    )
    return "\n".join(md)


def render_master_index(
    components: list[ComponentRecord], candidate_threshold: int, generated_at: datetime
) -> str:
    """Render the index of documented components grouped by type."""
    md = [
        "# Reusable Components Index",
        f"Generated: {generated_at.isoformat()}",
        "",
        "## Summary",
        f"Total Components: {len(components)}",
        "",
        "### By Type",
    ]
    by_type = Counter(component.component_type.value for component in components)
    md.extend(f"- **{component_type}**: {count}" for component_type, count in by_type.items())

    candidates = [
        component
        for component in components
        if component.protocol_compatibility_score >= candidate_threshold
    ]
    md.extend(["", f"### Cyrano MCP Candidates: {len(candidates)}", "", "## Components", ""])

    grouped: dict[str, list[ComponentRecord]] = {}
    for component in components:
        grouped.setdefault(component.component_type.value, []).append(component)
    for component_type, members in grouped.items():
        md.append(f"### {component_type.capitalize()} Components")
        md.append("")
        for component in members:
            md.append(f"#### [{component.name}](./{component.name}.md)")
            md.append(f"**Path**: {component.file_path}")
            md.append(f"**Reusability**: {component.reusability_score}/100")
            md.append(
                f"**Protocol Compatibility**: {component.protocol_compatibility_score}/100"
            )
            md.append(f"**Status**: {component.export_status.value}")
            if component.description:
                md.append(
                    f"**Description**: {component.description[:INDEX_DESCRIPTION_LENGTH]}..."
                )
            md.append("")
    return "\n".join(md)


class DocumentationGenerator:
    """Write per-component Markdown documents and a master index."""

    def __init__(self, store: ComponentStore, config: ScannerConfig) -> None:
        self._store = store
        self._config = config

    @property
    def output_path(self) -> Path:
        return self._config.docs_output_path

    def generate_component_documentation(self, component_id: str) -> Path:
        """Write the document for one component.

        Does not change the component's export status.

        Args:
            component_id: Component identifier.

        Returns:
            Path of the written document.

        Raises:
            RecordNotFoundError: If the component does not exist.
            SourceUnavailableError: If its source cannot be read.
            OSError: If the document cannot be written.
        """
        component = require_component(self._store, component_id)
        return self._write_component_document(component)

    def generate_all_documentation(self) -> list[Path]:
        """Document every ``identified`` component and write the index.

        A failing component is logged and skipped. Each documented component
        advances to ``documented``.

        Returns:
            Paths of the written component documents.
        """
        components = self._store.list_components(export_status=ExportStatus.IDENTIFIED)
        paths: list[Path] = []
        indexed: list[ComponentRecord] = []
        for component in components:
            try:
                paths.append(self._write_component_document(component))
            except (RecordNotFoundError, SourceUnavailableError, OSError) as exc:
                logger.warning(
                    f"Documentation failed; skipping component "
                    f"(component_id={component.id} name={component.name} error={exc})"
                )
                indexed.append(component)
                continue
            documented = replace(
                component,
                export_status=component.export_status.advance(ExportStatus.DOCUMENTED),
                updated_at=datetime.now(tz=timezone.utc),
            )
            indexed.append(self._store.update_component(documented))

        self._write_master_index(indexed)
        logger.info(
            f"Documentation generated (documents={len(paths)} candidates={len(components)} "
            f"output={self.output_path})"
        )
        return paths

    def _write_component_document(self, component: ComponentRecord) -> Path:
        source_code = read_source(self._config.project_root, component.file_path)
        document = render_component_document(
            component=component,
            examples=extract_code_examples(source_code),
            dependencies=classify_dependencies(component.dependencies),
            generated_at=datetime.now(tz=timezone.utc),
        )
        output_path = self.output_path / f"{component.name}.md"
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(document, encoding="utf-8")
        return output_path

    def _write_master_index(self, components: list[ComponentRecord]) -> Path:
        index_path = self.output_path / INDEX_FILE_NAME
        index_path.parent.mkdir(parents=True, exist_ok=True)
        index_path.write_text(
            render_master_index(
                components=components,
                candidate_threshold=self._config.protocol_candidate_threshold,
                generated_at=datetime.now(tz=timezone.utc),
            ),
            encoding="utf-8",
        )
        return index_path
