# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Scanner configuration."""

from dataclasses import dataclass, field
from pathlib import Path

from rcs.model import ComponentType


@dataclass(frozen=True)
class ScanTarget:
    """One directory to walk and the component type assumed for its files.

    Attributes:
        path: Directory relative to the project root.
        component_type: Default type before path-based classification.
    """

    path: str
    component_type: ComponentType


DEFAULT_SCAN_TARGETS: tuple[ScanTarget, ...] = (
    ScanTarget(path="server/services", component_type=ComponentType.SERVICE),
    ScanTarget(path="client/src/components", component_type=ComponentType.COMPONENT),
    ScanTarget(path="client/src/lib", component_type=ComponentType.UTILITY),
    ScanTarget(path="shared", component_type=ComponentType.UTILITY),
    ScanTarget(path="server", component_type=ComponentType.WORKFLOW),
)

# gitignore syntax, matched against project-relative paths.
DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "node_modules/",
    ".git/",
    "dist/",
    "build/",
    "coverage/",
    ".next/",
    ".vscode/",
    ".DS_Store",
    "tmp/",
    "temp/",
)

DEFAULT_SOURCE_EXTENSIONS: frozenset[str] = frozenset({".ts", ".tsx", ".js", ".jsx"})


@dataclass(frozen=True)
class ScannerConfig:
    """Hold every tunable of the scan, documentation, and export pipeline.

    Attributes:
        project_root: Root directory all record paths are relative to.
        scan_targets: Directories walked by one scan, in order.
        exclude_patterns: gitignore-style patterns that are never walked.
        source_extensions: File extensions that are analyzed.
        min_content_length: Files shorter than this are skipped.
        min_reusability_score: Analyses scoring lower are not persisted.
        protocol_candidate_threshold: Compatibility score that makes a
            component a protocol candidate.
        docs_dir: Documentation output directory, relative to the root.
        export_dir: Default export root, relative to the root.
        respect_gitignore: Also skip paths ignored by the project's
            ``.gitignore`` files.
    """

    project_root: Path
    scan_targets: tuple[ScanTarget, ...] = DEFAULT_SCAN_TARGETS
    exclude_patterns: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    source_extensions: frozenset[str] = field(default=DEFAULT_SOURCE_EXTENSIONS)
    min_content_length: int = 200
    min_reusability_score: int = 30
    protocol_candidate_threshold: int = 70
    docs_dir: str = "docs/reusable-components"
    export_dir: str = "exports/cyrano-components"
    respect_gitignore: bool = True

    @classmethod
    def for_project(cls, project_root: Path) -> "ScannerConfig":
        """Return the default configuration for a project root."""
        return cls(project_root=project_root.resolve())

    @property
    def docs_output_path(self) -> Path:
        return self.project_root / self.docs_dir

    @property
    def export_output_path(self) -> Path:
        return self.project_root / self.export_dir
