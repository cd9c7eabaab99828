from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

import pytest

from rcs.analyzer import ComponentAnalyzer
from rcs.config import ScannerConfig, ScanTarget
from rcs.database import InMemoryStore
from rcs.model import (
    ComponentAnalysis,
    ComponentType,
    ExportStatus,
    ScanStatus,
    ScanType,
    SecurityStatus,
)
from rcs.scanner import ComponentScanner

WIDGET_SOURCE = """/**
 * Renders and caches widget definitions for the dashboard.
 */
import { cache } from '../shared/cache';

export class WidgetService {
  private widgets: Map<string, string> = new Map();

  register(name: string, definition: string): void {
    this.widgets.set(name, definition);
  }

  lookup(name: string): string | undefined {
    return cache(this.widgets.get(name));
  }
}
"""

RISKY_SOURCE = """/** Runs admin expressions. */
import express from 'express';

export function runAdmin(req: any): string {
  const result = eval(req.body.expression);
  const mode = process.env.ADMIN_MODE;
  document.body.innerHTML = String(result);
  return `${mode}:${result}`;
}
"""


def _config(root: Path, *targets: ScanTarget) -> ScannerConfig:
    return ScannerConfig(
        project_root=root,
        scan_targets=targets or (ScanTarget(path="services", component_type=ComponentType.UTILITY),),
    )


def _padded(length: int) -> str:
    base = "export class PaddingHelper {}\n"
    return base + "/" * (length - len(base))


def test_scan_001_end_to_end_scan_persists_one_service(
    tmp_path: Path, store: InMemoryStore, write_source: Callable[[str, str], Path]
) -> None:
    write_source("services/widget-service.ts", WIDGET_SOURCE)
    scanner = ComponentScanner(store=store, config=_config(tmp_path))

    report_id = scanner.scan()

    report = store.get_scan_report(report_id)
    assert report is not None
    assert report.status is ScanStatus.COMPLETED
    assert report.components_found == 1
    assert report.components_updated == 0
    assert report.results["total_components"] == 1
    assert report.results["scan_targets"] == [{"path": "services", "type": "utility"}]

    [component] = store.list_components()
    assert component.file_path == "services/widget-service.ts"
    assert component.name == "widget-service"
    assert component.component_type is ComponentType.SERVICE
    assert component.reusability_score >= 20
    assert component.description == "Renders and caches widget definitions for the dashboard."
    assert component.dependencies == ["../shared/cache"]
    assert component.flagged_by == "auto_scanner"
    assert component.security_status is SecurityStatus.PENDING
    assert component.export_status is ExportStatus.IDENTIFIED


def test_scan_002_content_length_boundary(
    tmp_path: Path, store: InMemoryStore, write_source: Callable[[str, str], Path]
) -> None:
    write_source("services/exact.ts", _padded(200))
    write_source("services/short.ts", _padded(199))

    ComponentScanner(store=store, config=_config(tmp_path)).scan()

    assert [component.name for component in store.list_components()] == ["exact"]


def test_scan_003_rescan_updates_with_stable_identity(
    tmp_path: Path, store: InMemoryStore, write_source: Callable[[str, str], Path]
) -> None:
    write_source("services/widget-service.ts", WIDGET_SOURCE)
    scanner = ComponentScanner(store=store, config=_config(tmp_path))

    first = store.get_scan_report(scanner.scan())
    [before] = store.list_components()
    second = store.get_scan_report(scanner.scan(ScanType.INCREMENTAL))
    [after] = store.list_components()

    assert first is not None and second is not None
    assert (first.components_found, first.components_updated) == (1, 0)
    assert (second.components_found, second.components_updated) == (0, 1)
    assert after.id == before.id
    assert after.created_at == before.created_at
    assert after.last_scanned >= before.last_scanned


def test_scan_004_rescan_preserves_review_and_export_state(
    tmp_path: Path, store: InMemoryStore, write_source: Callable[[str, str], Path]
) -> None:
    write_source("services/widget-service.ts", WIDGET_SOURCE)
    scanner = ComponentScanner(store=store, config=_config(tmp_path))
    scanner.scan()
    [component] = store.list_components()
    store.update_component(
        replace(
            component,
            export_status=ExportStatus.EXPORTED,
            security_status=SecurityStatus.REJECTED,
        )
    )

    scanner.scan()

    [rescanned] = store.list_components()
    assert rescanned.export_status is ExportStatus.EXPORTED
    assert rescanned.security_status is SecurityStatus.REJECTED


def test_scan_005_low_scoring_and_missing_targets_are_skipped(
    tmp_path: Path, store: InMemoryStore, write_source: Callable[[str, str], Path]
) -> None:
    write_source("services/plain.ts", "const value = 1;\n" * 20)
    config = _config(
        tmp_path,
        ScanTarget(path="services", component_type=ComponentType.UTILITY),
        ScanTarget(path="missing", component_type=ComponentType.WORKFLOW),
    )

    report_id = ComponentScanner(store=store, config=config).scan()

    report = store.get_scan_report(report_id)
    assert report is not None
    assert report.status is ScanStatus.COMPLETED
    assert report.components_found == 0
    assert store.list_components() == []


def test_scan_006_overlapping_targets_count_an_update(
    tmp_path: Path, store: InMemoryStore, write_source: Callable[[str, str], Path]
) -> None:
    write_source("server/services/widget-service.ts", WIDGET_SOURCE)
    config = _config(
        tmp_path,
        ScanTarget(path="server/services", component_type=ComponentType.SERVICE),
        ScanTarget(path="server", component_type=ComponentType.WORKFLOW),
    )

    report_id = ComponentScanner(store=store, config=config).scan()

    report = store.get_scan_report(report_id)
    assert report is not None
    assert (report.components_found, report.components_updated) == (1, 1)
    assert len(store.list_components()) == 1


def test_scan_007_security_scan_type_records_findings(
    tmp_path: Path, store: InMemoryStore, write_source: Callable[[str, str], Path]
) -> None:
    write_source("server/adminHandler.ts", RISKY_SOURCE)
    config = _config(tmp_path, ScanTarget(path="server", component_type=ComponentType.WORKFLOW))

    report_id = ComponentScanner(store=store, config=config).scan(ScanType.SECURITY_SCAN)

    report = store.get_scan_report(report_id)
    [component] = store.list_components()
    assert report is not None
    assert report.security_issues == 3
    assert component.security_status is SecurityStatus.NEEDS_REVIEW
    assert len(component.vulnerabilities) == 3


def test_scan_008_protocol_candidates_use_threshold(
    tmp_path: Path, store: InMemoryStore, write_source: Callable[[str, str], Path]
) -> None:
    source = (
        "/** Parses free-text search queries into structured objects for the search API. */\n"
        "export interface Query { text: string }\n"
        "export class QueryParser {}\n"
        "export async function parseQuery(raw: string): Promise<Query> {\n"
        "  return (await fetch(raw)).json();\n"
        "}\n"
    )
    write_source("shared/queryParser.ts", source)
    config = _config(tmp_path, ScanTarget(path="shared", component_type=ComponentType.UTILITY))

    report_id = ComponentScanner(store=store, config=config).scan()

    report = store.get_scan_report(report_id)
    assert report is not None
    assert report.protocol_candidates == 1


class _ExplodingAnalyzer(ComponentAnalyzer):
    def analyze(
        self, file_path: str, content: str, default_type: ComponentType
    ) -> ComponentAnalysis:
        raise RuntimeError("analyzer exploded")


def test_scan_009_unexpected_error_marks_report_failed(
    tmp_path: Path, store: InMemoryStore, write_source: Callable[[str, str], Path]
) -> None:
    write_source("services/widget-service.ts", WIDGET_SOURCE)
    scanner = ComponentScanner(
        store=store, config=_config(tmp_path), analyzer=_ExplodingAnalyzer()
    )

    with pytest.raises(RuntimeError, match="analyzer exploded"):
        scanner.scan()

    [report] = store.list_scan_reports()
    assert report.status is ScanStatus.FAILED
    assert report.errors[0]["message"] == "analyzer exploded"
    assert "timestamp" in report.errors[0]


def test_scan_010_undecodable_file_is_logged_and_skipped(
    tmp_path: Path,
    store: InMemoryStore,
    write_source: Callable[[str, str], Path],
    caplog: pytest.LogCaptureFixture,
) -> None:
    write_source("services/widget-service.ts", WIDGET_SOURCE)
    (tmp_path / "services" / "latin1.ts").write_bytes(b"export const caf\xe9 = 1;\n" * 20)

    report_id = ComponentScanner(store=store, config=_config(tmp_path)).scan()

    report = store.get_scan_report(report_id)
    assert report is not None
    assert report.status is ScanStatus.COMPLETED
    assert report.components_found == 1
    assert [component.name for component in store.list_components()] == ["widget-service"]
    assert "Skipping file due to read failure (file_path=services/latin1.ts" in caplog.text


def test_scan_011_symlink_loop_does_not_duplicate_components(
    tmp_path: Path, store: InMemoryStore, write_source: Callable[[str, str], Path]
) -> None:
    write_source("services/widget-service.ts", WIDGET_SOURCE)
    services = tmp_path / "services"
    (services / "loop").symlink_to(services, target_is_directory=True)

    report_id = ComponentScanner(store=store, config=_config(tmp_path)).scan()

    report = store.get_scan_report(report_id)
    assert report is not None
    assert report.components_found == 1
    assert report.results["total_components"] == 1
    assert len(store.list_components()) == 1
