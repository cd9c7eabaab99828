# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Export stored components as adapted source bundles."""

import json
import logging
import re
import shutil
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from rcs.config import ScannerConfig
from rcs.model import (
    Adaptation,
    ComponentRecord,
    ComponentType,
    ExportFormat,
    ExportRecord,
    ExportRecordStatus,
    ExportStatus,
)
from rcs.persistence import ComponentStore, RecordNotFoundError, require_component
from rcs.source import SourceUnavailableError, read_source

logger = logging.getLogger(__name__)

UI_IMPORT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"import.*from\s+['\"`]react['\"`];?\n?"),
    re.compile(r"import.*from\s+['\"`]react-dom['\"`];?\n?"),
)
EXPORTED_CLASS_PATTERN = re.compile(r"export class (\w+)")

MCP_MODULE_BANNER = """// @CYRANO_REUSABLE: MCP Module Adaptation
import { Server } from '@modelcontextprotocol/sdk/server/index.js';
import { StdioServerTransport } from '@modelcontextprotocol/sdk/server/stdio.js';
import { CallToolRequestSchema, ListToolsRequestSchema } from '@modelcontextprotocol/sdk/types.js';

"""

STANDALONE_BANNER = """// @CYRANO_REUSABLE: Standalone Module
// This module has been extracted and adapted for standalone use

"""

LIBRARY_BANNER = """// @CYRANO_REUSABLE: Library Module
// This module is part of the LexFiat utilities library

"""

SERVICE_FACTORY_TEMPLATE = """

// @CYRANO_REUSABLE: MCP Service Wrapper
export function createMCPService(): %(class_name)s {
  return new %(class_name)s();
}

export const mcpServiceInstance = createMCPService();
"""

SERVER_WRAPPER_TEMPLATE = """// @CYRANO_REUSABLE: MCP Server Wrapper for %(name)s
import { Server } from '@modelcontextprotocol/sdk/server/index.js';
import { StdioServerTransport } from '@modelcontextprotocol/sdk/server/stdio.js';
import {
  CallToolRequestSchema,
  ListToolsRequestSchema,
  Tool
} from '@modelcontextprotocol/sdk/types.js';
%(service_import)s
class %(server_class)s {
  private server: Server;

  constructor() {
    this.server = new Server(
      {
        name: %(server_name)s,
        version: '1.0.0',
        description: %(description)s
      },
      {
        capabilities: {
          tools: {}
        }
      }
    );

    this.setupHandlers();
  }

  private setupHandlers() {
    this.server.setRequestHandler(ListToolsRequestSchema, async () => {
      return {
        tools: this.getTools()
      };
    });

    this.server.setRequestHandler(CallToolRequestSchema, async (request) => {
      const { name } = request.params;
      throw new Error(`Tool not implemented: ${name}`);
    });
  }

  private getTools(): Tool[] {
    const tools: Tool[] = [];
%(tools)s
    return tools;
  }

  async run() {
    const transport = new StdioServerTransport();
    await this.server.connect(transport);
    console.error(%(running_message)s);
  }
}

const server = new %(server_class)s();
server.run().catch(console.error);
"""

TOOL_ENTRY_TEMPLATE = """    tools.push({
      name: %(tool_name)s,
      description: %(tool_description)s,
      inputSchema: {
        type: 'object',
        properties: {},
        required: []
      }
    });
"""

TEST_FILE_MARKERS: tuple[str, ...] = ("test", "spec")
DEPENDENCY_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx")


class ExportError(RuntimeError):
    """Represent a failure while writing an export bundle."""


@dataclass(frozen=True)
class ExportOptions:
    """Control one export.

    Attributes:
        format: Output shape.
        include_tests: Copy sibling ``<name>.test.*``/``<name>.spec.*`` files.
        include_docs: Write a README for the bundle.
        adapt_for_cyrano: Recorded in the export metadata.
        output_path: Bundle directory; defaults to the export root plus the
            component name.
    """

    format: ExportFormat = ExportFormat.MCP_MODULE
    include_tests: bool = True
    include_docs: bool = True
    adapt_for_cyrano: bool = True
    output_path: Path | None = None


@dataclass(frozen=True)
class ExportMetadata:
    original_component: ComponentRecord
    exported_at: datetime
    file_count: int
    total_size: int


@dataclass(frozen=True)
class ExportResult:
    export_id: str
    output_path: Path
    adaptations: list[Adaptation]
    metadata: ExportMetadata


def adapt_for_mcp_module(
    component: ComponentRecord, code: str, adaptations: list[Adaptation]
) -> str:
    """Strip UI imports, prepend SDK imports, and add a service factory.

    The factory is only added for services whose source has an exported
    class; otherwise that step is skipped.
    """
    file_name = f"{component.name}.ts"
    adapted = code
    for pattern in UI_IMPORT_PATTERNS:
        adapted = pattern.sub("", adapted)
    if adapted != code:
        adaptations.append(
            Adaptation(
                type="remove_react_imports",
                description="Removed React-specific imports for MCP compatibility",
                file=file_name,
            )
        )

    adapted = MCP_MODULE_BANNER + adapted
    adaptations.append(
        Adaptation(
            type="add_mcp_imports",
            description="Added MCP SDK imports for server functionality",
            file=file_name,
        )
    )

    if component.component_type is ComponentType.SERVICE:
        match = EXPORTED_CLASS_PATTERN.search(adapted)
        if match is None:
            logger.debug(
                f"No exported class found; skipping service wrapper (component={component.name})"
            )
        else:
            class_name = match.group(1)
            adapted += SERVICE_FACTORY_TEMPLATE % {"class_name": class_name}
            adaptations.append(
                Adaptation(
                    type="add_mcp_wrapper",
                    description=f"Added MCP service wrapper for {class_name}",
                    file=file_name,
                )
            )
    return adapted


def adapt_for_standalone(
    component: ComponentRecord, code: str, adaptations: list[Adaptation]
) -> str:
    adaptations.append(
        Adaptation(
            type="standalone_wrapper",
            description="Added standalone module wrapper",
            file=f"{component.name}.ts",
        )
    )
    return STANDALONE_BANNER + code


def adapt_for_library(
    component: ComponentRecord, code: str, adaptations: list[Adaptation]
) -> str:
    adaptations.append(
        Adaptation(
            type="library_wrapper",
            description="Added library module wrapper",
            file=f"{component.name}.ts",
        )
    )
    return LIBRARY_BANNER + code


FORMAT_ADAPTERS: dict[
    ExportFormat, Callable[[ComponentRecord, str, list[Adaptation]], str]
] = {
    ExportFormat.MCP_MODULE: adapt_for_mcp_module,
    ExportFormat.STANDALONE: adapt_for_standalone,
    ExportFormat.LIBRARY: adapt_for_library,
}


def build_manifest(component: ComponentRecord, exported_at: datetime) -> dict[str, Any]:
    """Build the ``package.json`` payload for an MCP module bundle."""
    return {
        "name": f"@cyrano-mcp/{component.name.lower()}",
        "version": "1.0.0",
        "description": component.description or f"MCP module for {component.name}",
        "type": "module",
        "main": "server.js",
        "scripts": {"build": "tsc", "start": "node server.js", "dev": "tsx server.ts"},
        "dependencies": {"@modelcontextprotocol/sdk": "^1.0.0"},
        "devDependencies": {"typescript": "^5.0.0", "tsx": "^4.0.0"},
        "mcp": {"server": {"command": "node", "args": ["server.js"]}},
        "keywords": ["mcp", "cyrano", "reusable", component.component_type.value, "lexfiat"],
        "author": "LexFiat Component Export System",
        "license": "MIT",
        "reusabilityMetadata": {
            "originalPath": component.file_path,
            "reusabilityScore": component.reusability_score,
            "cypherCompatibility": component.protocol_compatibility_score,
            "exportedAt": exported_at.isoformat(),
        },
    }


def render_server_wrapper(component: ComponentRecord, imports_service: bool) -> str:
    """Render a stdio MCP server declaring one placeholder tool per function."""
    tools = "".join(
        TOOL_ENTRY_TEMPLATE
        % {
            "tool_name": _js_string(function_name),
            "tool_description": _js_string(
                f"Execute {function_name} function from {component.name}"
            ),
        }
        for function_name in component.api_surface.functions
    )
    service_import = (
        f"import {{ mcpServiceInstance }} from './{component.name}.js';\n"
        if imports_service
        else ""
    )
    return SERVER_WRAPPER_TEMPLATE % {
        "name": component.name,
        "service_import": service_import,
        "server_class": f"{_pascal_case(component.name)}MCPServer",
        "server_name": _js_string(component.name.lower()),
        "description": _js_string(
            component.description or f"MCP server for {component.name}"
        ),
        "tools": tools,
        "running_message": _js_string(f"{component.name} MCP server running on stdio"),
    }


def render_export_readme(
    component: ComponentRecord,
    export_format: ExportFormat,
    adaptations: list[Adaptation],
    exported_at: datetime,
) -> str:
    readme = [
        f"# {component.name}",
        f"Exported from LexFiat - {exported_at.isoformat()}",
        "",
        "## Overview",
        component.description or "No description available",
        "",
        "## Original Component Details",
        f"- **Type**: {component.component_type.value}",
        f"- **Original Path**: {component.file_path}",
        f"- **Reusability Score**: {component.reusability_score}/100",
        f"- **Protocol Compatibility**: {component.protocol_compatibility_score}/100",
        "",
    ]
    if export_format is ExportFormat.MCP_MODULE:
        readme.extend(
            [
                "## MCP Module Usage",
                "This component has been adapted as an MCP module for Cyrano integration.",
                "",
                "### Installation",
                "```bash",
                "npm install",
                "npm run build",
                "```",
                "",
                "### Running the MCP Server",
                "```bash",
                "npm start",
                "```",
                "",
            ]
        )
    if adaptations:
        readme.append("## Adaptations Made")
        for adaptation in adaptations:
            readme.extend(
                [
                    f"### {adaptation.type}",
                    f"**File**: {adaptation.file}",
                    f"**Description**: {adaptation.description}",
                    "",
                ]
            )
    readme.extend(
        [
            "## License",
            "This component is extracted from LexFiat and adapted for reuse.",
            "Please respect the original licensing terms.",
        ]
    )
    return "\n".join(readme)


class ExportAdapter:
    """Rewrite components into export bundles and record each export."""

    def __init__(self, store: ComponentStore, config: ScannerConfig) -> None:
        self._store = store
        self._config = config

    def export_component(
        self, component_id: str, options: ExportOptions | None = None
    ) -> ExportResult:
        """Export one component.

        The export record is created ``pending`` before any file is touched
        and finalized exactly once. Any error during the write sequence marks
        it ``failed`` and leaves the component as is.

        Args:
            component_id: Component identifier.
            options: Export options; defaults apply when omitted.

        Returns:
            The export result.

        Raises:
            RecordNotFoundError: If the component does not exist.
            SourceUnavailableError: If its source cannot be read.
            ExportError: If writing the bundle fails.
            Exception: Any other error from the write sequence, unchanged.
        """
        component = require_component(self._store, component_id)
        options = options or ExportOptions()
        output_path = options.output_path or self._config.export_output_path / component.name
        record = self._store.insert_export(
            ExportRecord(
                id=str(uuid.uuid4()),
                component_id=component.id,
                export_path=str(output_path),
                export_format=options.format,
                status=ExportRecordStatus.PENDING,
                created_at=datetime.now(tz=timezone.utc),
            )
        )

        try:
            result = self._perform_export(component, options, output_path, record.id)
        except Exception as exc:
            self._store.update_export(replace(record, status=ExportRecordStatus.FAILED))
            logger.warning(
                f"Export failed (component_id={component.id} export_id={record.id} "
                f"output_path={output_path} error={exc})"
            )
            if isinstance(exc, OSError):
                raise ExportError(f"Export of {component.name} failed: {exc}") from exc
            raise

        self._store.update_export(
            replace(
                record,
                status=ExportRecordStatus.COMPLETED,
                adaptations=result.adaptations,
                export_metadata={
                    "file_count": result.metadata.file_count,
                    "total_size": result.metadata.total_size,
                    "exported_at": result.metadata.exported_at.isoformat(),
                    "adapt_for_cyrano": options.adapt_for_cyrano,
                    "include_tests": options.include_tests,
                    "include_docs": options.include_docs,
                },
            )
        )
        self._store.update_component(
            replace(
                component,
                export_status=component.export_status.advance(ExportStatus.EXPORTED),
                updated_at=datetime.now(tz=timezone.utc),
            )
        )
        logger.info(
            f"Export completed (component_id={component.id} export_id={record.id} "
            f"format={options.format.value} files={result.metadata.file_count})"
        )
        return result

    def export_batch(
        self, component_ids: list[str], options: ExportOptions | None = None
    ) -> list[ExportResult]:
        """Export components one after another, skipping the ones that fail.

        Returns:
            Results for the components that exported successfully.
        """
        results: list[ExportResult] = []
        for component_id in component_ids:
            try:
                results.append(self.export_component(component_id, options))
            except (RecordNotFoundError, SourceUnavailableError, ExportError) as exc:
                logger.warning(
                    f"Failed to export component (component_id={component_id} error={exc})"
                )
        return results

    def list_exports(self, component_id: str | None = None) -> list[ExportRecord]:
        return self._store.list_exports(component_id=component_id)

    def _perform_export(
        self,
        component: ComponentRecord,
        options: ExportOptions,
        output_path: Path,
        export_id: str,
    ) -> ExportResult:
        exported_at = datetime.now(tz=timezone.utc)
        adaptations: list[Adaptation] = []
        output_path.mkdir(parents=True, exist_ok=True)

        original_code = read_source(self._config.project_root, component.file_path)
        adapted_code = FORMAT_ADAPTERS[options.format](component, original_code, adaptations)

        file_count = 1
        total_size = _write_text(output_path / f"{component.name}.ts", adapted_code)

        if options.format is ExportFormat.MCP_MODULE:
            manifest = json.dumps(build_manifest(component, exported_at), indent=2)
            total_size += _write_text(output_path / "package.json", manifest)
            server_code = render_server_wrapper(
                component,
                imports_service=any(item.type == "add_mcp_wrapper" for item in adaptations),
            )
            total_size += _write_text(output_path / "server.ts", server_code)
            file_count += 2
            adaptations.append(
                Adaptation(
                    type="mcp_server_wrapper",
                    description="Generated MCP server wrapper for the component",
                    file="server.ts",
                )
            )

        if options.include_tests:
            for test_file in self._find_test_files(component):
                target = output_path / "tests" / test_file.name
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(test_file, target)
                file_count += 1
                total_size += target.stat().st_size

        if options.include_docs:
            readme = render_export_readme(component, options.format, adaptations, exported_at)
            total_size += _write_text(output_path / "README.md", readme)
            file_count += 1

        self._copy_local_dependencies(component, output_path)

        return ExportResult(
            export_id=export_id,
            output_path=output_path,
            adaptations=adaptations,
            metadata=ExportMetadata(
                original_component=component,
                exported_at=exported_at,
                file_count=file_count,
                total_size=total_size,
            ),
        )

    def _find_test_files(self, component: ComponentRecord) -> list[Path]:
        source_dir = (self._config.project_root / component.file_path).parent
        found: list[Path] = []
        for marker in TEST_FILE_MARKERS:
            for extension in sorted(self._config.source_extensions):
                candidate = source_dir / f"{component.name}.{marker}{extension}"
                if candidate.is_file():
                    found.append(candidate)
        return found

    def _copy_local_dependencies(self, component: ComponentRecord, output_path: Path) -> None:
        """Copy relative-path dependencies into ``dependencies/``.

        Specifiers resolve against the component's directory; extensionless
        specifiers also try the source extensions. Failures are logged and
        skipped.
        """
        source_dir = (self._config.project_root / component.file_path).parent
        for dependency in component.dependencies:
            if not (dependency.startswith("./") or dependency.startswith("../")):
                continue
            resolved = _resolve_local_dependency(source_dir / dependency)
            if resolved is None:
                logger.warning(
                    f"Could not copy dependency; not found (component={component.name} "
                    f"dependency={dependency})"
                )
                continue
            target = output_path / "dependencies" / resolved.name
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                if resolved.is_dir():
                    shutil.copytree(resolved, target, dirs_exist_ok=True)
                else:
                    shutil.copy2(resolved, target)
            except OSError as exc:
                logger.warning(
                    f"Could not copy dependency (component={component.name} "
                    f"dependency={dependency} error={exc})"
                )


def _resolve_local_dependency(path: Path) -> Path | None:
    if path.exists():
        return path
    for extension in DEPENDENCY_EXTENSIONS:
        candidate = path.with_name(path.name + extension)
        if candidate.is_file():
            return candidate
    return None


def _write_text(path: Path, text: str) -> int:
    """Write UTF-8 text and return the number of bytes written."""
    data = text.encode("utf-8")
    path.write_bytes(data)
    return len(data)


def _js_string(value: str) -> str:
    # A JSON string literal is also a valid JavaScript string literal.
    return json.dumps(value)


def _pascal_case(name: str) -> str:
    parts = re.split(r"[^A-Za-z0-9]+", name)
    identifier = "".join(part[:1].upper() + part[1:] for part in parts if part)
    if not identifier or identifier[0].isdigit():
        identifier = f"Component{identifier}"
    return identifier
