# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Scan orchestration: walk targets, analyze files, upsert component records."""

import logging
import time
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from rcs.analyzer import ComponentAnalyzer
from rcs.config import ScannerConfig, ScanTarget
from rcs.model import (
    ComponentAnalysis,
    ComponentRecord,
    ComponentType,
    ScanReport,
    ScanStatus,
    ScanType,
)
from rcs.persistence import ComponentStore, PersistenceError
from rcs.security import SecurityScanner
from rcs.source import SourceUnavailableError
from rcs.walker import ExclusionMatcher, SourceTreeWalker

logger = logging.getLogger(__name__)

FLAGGED_BY_SCANNER = "auto_scanner"


class ComponentScanner:
    """Find reusable components under the configured scan targets."""

    def __init__(
        self,
        store: ComponentStore,
        config: ScannerConfig,
        analyzer: ComponentAnalyzer | None = None,
    ) -> None:
        """Initialize the scanner.

        Args:
            store: Record store for components and scan reports.
            config: Scan configuration.
            analyzer: Analyzer override, mainly for tests.
        """
        self._store = store
        self._config = config
        self._analyzer = analyzer or ComponentAnalyzer()

    def scan(self, scan_type: ScanType = ScanType.FULL_SCAN) -> str:
        """Run one scan to completion.

        Args:
            scan_type: Requested scan type.

        Returns:
            The scan report id.

        Raises:
            PersistenceError: If the store cannot be written.
        """
        report = self.create_report(scan_type)
        self.run(report)
        return report.id

    def create_report(self, scan_type: ScanType) -> ScanReport:
        """Persist a ``running`` report before any work starts."""
        report = ScanReport(
            id=str(uuid.uuid4()),
            scan_type=scan_type,
            status=ScanStatus.RUNNING,
            created_at=datetime.now(tz=timezone.utc),
        )
        return self._store.insert_scan_report(report)

    def run(self, report: ScanReport) -> ScanReport:
        """Walk every target and finalize ``report`` exactly once.

        Any unhandled error marks the report ``failed`` and propagates.

        Args:
            report: A ``running`` report created by :meth:`create_report`.

        Returns:
            The ``completed`` report.
        """
        started = time.monotonic()
        logger.info(f"Scan started (scan_id={report.id} scan_type={report.scan_type.value})")
        try:
            walker = self._build_walker()
            analyses: list[ComponentAnalysis] = []
            for target in self._config.scan_targets:
                analyses.extend(self._scan_target(walker, target))

            components_found = 0
            components_updated = 0
            persisted: dict[str, ComponentRecord] = {}
            for analysis in analyses:
                record, inserted = self._upsert(analysis)
                persisted[record.id] = record
                if inserted:
                    components_found += 1
                else:
                    components_updated += 1

            protocol_candidates = sum(
                1
                for analysis in analyses
                if analysis.protocol_compatibility_score
                >= self._config.protocol_candidate_threshold
            )
            security_issues = 0
            if report.scan_type is ScanType.SECURITY_SCAN:
                security_issues = self._scan_security(list(persisted))

            completed = replace(
                report,
                status=ScanStatus.COMPLETED,
                components_found=components_found,
                components_updated=components_updated,
                protocol_candidates=protocol_candidates,
                security_issues=security_issues,
                scan_duration=_elapsed_ms(started),
                results={
                    "total_components": len(analyses),
                    "scan_targets": [
                        {"path": target.path, "type": target.component_type.value}
                        for target in self._config.scan_targets
                    ],
                },
            )
            self._store.update_scan_report(completed)
        except Exception as exc:
            self._mark_failed(report=report, error=exc, started=started)
            raise
        logger.info(
            f"Scan completed (scan_id={report.id} found={components_found} "
            f"updated={components_updated} candidates={protocol_candidates} "
            f"duration_ms={completed.scan_duration})"
        )
        return completed

    def _build_walker(self) -> SourceTreeWalker:
        return SourceTreeWalker(
            project_root=self._config.project_root,
            matcher=ExclusionMatcher.build(
                project_root=self._config.project_root,
                patterns=self._config.exclude_patterns,
                respect_gitignore=self._config.respect_gitignore,
            ),
            source_extensions=self._config.source_extensions,
        )

    def _scan_target(
        self, walker: SourceTreeWalker, target: ScanTarget
    ) -> list[ComponentAnalysis]:
        analyses: list[ComponentAnalysis] = []
        for file_path in walker.walk(self._config.project_root / target.path):
            analysis = self._analyze_file(file_path, target.component_type)
            if analysis is not None:
                analyses.append(analysis)
        return analyses

    def _analyze_file(
        self, file_path: Path, default_type: ComponentType
    ) -> ComponentAnalysis | None:
        """Analyze one file, or return ``None`` when it is unreadable or gated out."""
        relative_path = file_path.relative_to(self._config.project_root).as_posix()
        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(
                f"Skipping file due to read failure (file_path={relative_path} error={exc})"
            )
            return None

        if len(content) < self._config.min_content_length:
            return None

        analysis = self._analyzer.analyze(relative_path, content, default_type)
        if analysis.reusability_score < self._config.min_reusability_score:
            return None
        return analysis

    def _upsert(self, analysis: ComponentAnalysis) -> tuple[ComponentRecord, bool]:
        """Insert or overwrite the record keyed by the analysis file path.

        Returns:
            The stored record and whether it was newly inserted.
        """
        now = datetime.now(tz=timezone.utc)
        existing = self._store.find_component_by_path(analysis.file_path)
        if existing is not None:
            updated = replace(
                existing,
                name=analysis.name,
                component_type=analysis.component_type,
                description=analysis.description,
                reusability_score=analysis.reusability_score,
                protocol_compatibility_score=analysis.protocol_compatibility_score,
                dependencies=analysis.dependencies,
                api_surface=analysis.api_surface,
                recommended_pattern=analysis.recommended_pattern,
                tags=analysis.tags,
                last_scanned=now,
                updated_at=now,
            )
            return self._store.update_component(updated), False

        record = ComponentRecord(
            id=str(uuid.uuid4()),
            name=analysis.name,
            file_path=analysis.file_path,
            component_type=analysis.component_type,
            description=analysis.description,
            reusability_score=analysis.reusability_score,
            protocol_compatibility_score=analysis.protocol_compatibility_score,
            dependencies=analysis.dependencies,
            api_surface=analysis.api_surface,
            recommended_pattern=analysis.recommended_pattern,
            tags=analysis.tags,
            last_scanned=now,
            created_at=now,
            updated_at=now,
            flagged_by=FLAGGED_BY_SCANNER,
        )
        return self._store.insert_component(record), True

    def _scan_security(self, component_ids: list[str]) -> int:
        scanner = SecurityScanner(store=self._store, project_root=self._config.project_root)
        total = 0
        for component_id in component_ids:
            try:
                total += len(scanner.perform_security_scan(component_id).vulnerabilities)
            except SourceUnavailableError as exc:
                logger.warning(
                    f"Skipping security scan (component_id={component_id} error={exc})"
                )
        return total

    def _mark_failed(self, report: ScanReport, error: Exception, started: float) -> None:
        failed = replace(
            report,
            status=ScanStatus.FAILED,
            scan_duration=_elapsed_ms(started),
            errors=[
                {
                    "message": str(error),
                    "timestamp": datetime.now(tz=timezone.utc).isoformat(),
                }
            ],
        )
        logger.warning(f"Scan failed (scan_id={report.id} error={error})")
        try:
            self._store.update_scan_report(failed)
        except PersistenceError as exc:
            logger.warning(
                f"Could not record scan failure; report stays running "
                f"(scan_id={report.id} error={exc})"
            )


def _elapsed_ms(started: float) -> int:
    return int(round((time.monotonic() - started) * 1000))
