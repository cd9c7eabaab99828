# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Domain models for component scan, security, and export artifacts."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ComponentType(str, Enum):
    """Classify what kind of code one component file holds."""

    SERVICE = "service"
    COMPONENT = "component"
    UTILITY = "utility"
    WORKFLOW = "workflow"
    PARSER = "parser"
    VALIDATOR = "validator"


class Severity(str, Enum):
    """Rank a security finding."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SecurityStatus(str, Enum):
    """Describe the review state of a component."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_REVIEW = "needs_review"


class ExportStatus(str, Enum):
    """Describe how far a component has moved through the export pipeline.

    Stages only move forward; use :meth:`advance` for every transition.
    """

    IDENTIFIED = "identified"
    DOCUMENTED = "documented"
    EXPORTED = "exported"
    INTEGRATED = "integrated"

    @property
    def rank(self) -> int:
        return _EXPORT_STAGE_ORDER.index(self)

    def advance(self, target: "ExportStatus") -> "ExportStatus":
        """Return the later of the current stage and ``target``."""
        return target if target.rank > self.rank else self


_EXPORT_STAGE_ORDER: tuple[ExportStatus, ...] = (
    ExportStatus.IDENTIFIED,
    ExportStatus.DOCUMENTED,
    ExportStatus.EXPORTED,
    ExportStatus.INTEGRATED,
)


class ScanType(str, Enum):
    FULL_SCAN = "full_scan"
    INCREMENTAL = "incremental"
    SECURITY_SCAN = "security_scan"


class ScanStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ExportFormat(str, Enum):
    MCP_MODULE = "mcp_module"
    STANDALONE = "standalone"
    LIBRARY = "library"


class ExportRecordStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ApiSurface:
    """Name lists found by the lexical scan of one file.

    A single declaration may appear in more than one list.
    """

    exports: list[str] = field(default_factory=list)
    functions: list[str] = field(default_factory=list)
    classes: list[str] = field(default_factory=list)
    interfaces: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "exports": list(self.exports),
            "functions": list(self.functions),
            "classes": list(self.classes),
            "interfaces": list(self.interfaces),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> "ApiSurface":
        payload = payload or {}
        return cls(
            exports=list(payload.get("exports", [])),
            functions=list(payload.get("functions", [])),
            classes=list(payload.get("classes", [])),
            interfaces=list(payload.get("interfaces", [])),
        )


@dataclass(frozen=True)
class Vulnerability:
    """Represent one security finding.

    Attributes:
        type: Finding category, for example ``code_injection``.
        severity: Finding severity.
        description: Human-readable explanation.
        line: 1-based source line, when known.
    """

    type: str
    severity: Severity
    description: str
    line: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity.value,
            "description": self.description,
            "line": self.line,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Vulnerability":
        return cls(
            type=str(payload["type"]),
            severity=Severity(payload["severity"]),
            description=str(payload["description"]),
            line=payload.get("line"),
        )


@dataclass(frozen=True)
class ComponentAnalysis:
    """Represent the result of analyzing one source file.

    Attributes:
        name: File name without its source extension.
        file_path: Project-relative source file path.
        component_type: Classified component type.
        description: First block comment, or a synthesized summary.
        reusability_score: Heuristic score in [0, 100].
        protocol_compatibility_score: Heuristic score in [0, 100].
        dependencies: Import specifiers in source order, duplicates kept.
        api_surface: Exported and declared names.
        recommended_pattern: Pattern label derived from ``component_type``.
        tags: Free-text labels.
    """

    name: str
    file_path: str
    component_type: ComponentType
    description: str
    reusability_score: int
    protocol_compatibility_score: int
    dependencies: list[str]
    api_surface: ApiSurface
    recommended_pattern: str
    tags: list[str]


@dataclass(frozen=True)
class ComponentRecord:
    """Represent one persisted component, keyed uniquely by ``file_path``."""

    id: str
    name: str
    file_path: str
    component_type: ComponentType
    description: str
    reusability_score: int
    protocol_compatibility_score: int
    dependencies: list[str]
    api_surface: ApiSurface
    recommended_pattern: str
    tags: list[str]
    last_scanned: datetime
    created_at: datetime
    updated_at: datetime
    flagged_by: str = "auto_scanner"
    security_status: SecurityStatus = SecurityStatus.PENDING
    vulnerabilities: list[Vulnerability] = field(default_factory=list)
    export_status: ExportStatus = ExportStatus.IDENTIFIED


@dataclass(frozen=True)
class ScanReport:
    """Represent one scan invocation.

    Attributes:
        id: Report identifier.
        scan_type: Requested scan type.
        status: ``running`` until finalized exactly once.
        components_found: Newly inserted component count.
        components_updated: Existing component count.
        protocol_candidates: Analyzed components at or above the
            candidate threshold.
        security_issues: Findings recorded by a ``security_scan`` run.
        scan_duration: Elapsed milliseconds.
        results: Free-form summary.
        errors: Failure details; only set when ``status`` is ``failed``.
        created_at: Creation timestamp.
    """

    id: str
    scan_type: ScanType
    status: ScanStatus
    created_at: datetime
    components_found: int = 0
    components_updated: int = 0
    protocol_candidates: int = 0
    security_issues: int = 0
    scan_duration: int = 0
    results: dict[str, Any] = field(default_factory=dict)
    errors: list[dict[str, str]] = field(default_factory=list)


@dataclass(frozen=True)
class Adaptation:
    """Represent one recorded text transformation applied during export."""

    type: str
    description: str
    file: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "description": self.description, "file": self.file}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Adaptation":
        return cls(
            type=str(payload["type"]),
            description=str(payload["description"]),
            file=str(payload["file"]),
        )


@dataclass(frozen=True)
class ExportRecord:
    """Represent one export operation on a component."""

    id: str
    component_id: str
    export_path: str
    export_format: ExportFormat
    status: ExportRecordStatus
    created_at: datetime
    adaptations: list[Adaptation] = field(default_factory=list)
    export_metadata: dict[str, Any] = field(default_factory=dict)
