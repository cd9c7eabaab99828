import io
import json
import re
from collections.abc import Callable
from pathlib import Path

from cli.component_manager import run
from rcs.database import SQLiteStore
from rcs.model import ExportFormat, ExportStatus, SecurityStatus

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


def _strip_ansi(text: str) -> str:
    return re.sub(r"\x1b\[[0-9;]*m", "", text)


def _run(*argv: str) -> tuple[int, str, str]:
    stdout = io.StringIO()
    stderr = io.StringIO()
    exit_code = run(list(argv), stdout=stdout, stderr=stderr)
    return exit_code, _strip_ansi(stdout.getvalue()), stderr.getvalue()


def _scanned_project(
    tmp_path: Path, write_source: Callable[[str, str], Path]
) -> tuple[Path, SQLiteStore]:
    write_source("server/services/widget-service.ts", WIDGET_SOURCE)
    db_path = tmp_path / "state" / "rcs.sqlite"
    exit_code, _, _ = _run(
        "scan",
        "--root",
        str(tmp_path),
        "--db",
        str(db_path),
        "--wait-attempts",
        "100",
        "--poll-interval",
        "0.05",
    )
    assert exit_code == 0
    return db_path, SQLiteStore(db_path=db_path)


def test_cli_001_invalid_arguments_exit_with_code_2() -> None:
    exit_code, _, _ = _run("scan", "not-a-scan-type")

    assert exit_code == 2


def test_cli_002_missing_root_exits_with_code_2(tmp_path: Path) -> None:
    exit_code, _, stderr = _run("list", "--root", str(tmp_path / "missing"))

    assert exit_code == 2
    assert "Project root does not exist" in stderr


def test_cli_003_scan_waits_and_prints_results(
    tmp_path: Path, write_source: Callable[[str, str], Path]
) -> None:
    write_source("server/services/widget-service.ts", WIDGET_SOURCE)

    exit_code, stdout, _ = _run(
        "scan", "--root", str(tmp_path), "--wait-attempts", "100", "--poll-interval", "0.05"
    )

    assert exit_code == 0
    assert "Scan started:" in stdout
    assert "Scan Results" in stdout
    assert "Components Found" in stdout
    assert (tmp_path / ".rcs" / "components.sqlite").is_file()


def test_cli_004_scan_gives_up_waiting_without_failing(tmp_path: Path) -> None:
    exit_code, stdout, _ = _run(
        "scan", "--root", str(tmp_path), "--db", str(tmp_path / "rcs.sqlite"), "--wait-attempts", "0"
    )

    assert exit_code == 0
    assert "Scan is still running in the background" in stdout


def test_cli_005_list_show_and_reports(
    tmp_path: Path, write_source: Callable[[str, str], Path]
) -> None:
    db_path, store = _scanned_project(tmp_path, write_source)
    [component] = store.list_components()
    common = ("--root", str(tmp_path), "--db", str(db_path))

    list_code, list_out, _ = _run("list", *common)
    show_code, show_out, _ = _run("show", component.id, *common)
    reports_code, reports_out, _ = _run("reports", *common)

    assert list_code == 0
    assert "SERVICE (1)" in list_out
    assert "High Reusability (80+): 0" in list_out
    assert show_code == 0
    payload = json.loads(show_out)
    assert payload["id"] == component.id
    assert payload["component_type"] == "service"
    assert reports_code == 0
    assert "completed" in reports_out


def test_cli_006_unknown_component_exits_with_code_2(tmp_path: Path) -> None:
    exit_code, _, stderr = _run(
        "show", "missing", "--root", str(tmp_path), "--db", str(tmp_path / "rcs.sqlite")
    )

    assert exit_code == 2
    assert "Component not found: missing" in stderr


def test_cli_007_docs_export_and_history(
    tmp_path: Path, write_source: Callable[[str, str], Path]
) -> None:
    db_path, store = _scanned_project(tmp_path, write_source)
    [component] = store.list_components()
    common = ("--root", str(tmp_path), "--db", str(db_path))

    docs_code, docs_out, _ = _run("docs", *common)
    export_code, export_out, _ = _run("export", component.id, "--format", "standalone", *common)
    history_code, history_out, _ = _run("history", component.id, *common)

    assert docs_code == 0
    assert "Generated documentation for 1 components" in docs_out
    assert (tmp_path / "docs" / "reusable-components" / "widget-service.md").is_file()
    assert export_code == 0
    assert "standalone_wrapper" in export_out
    assert (
        tmp_path / "exports" / "cyrano-components" / "widget-service" / "widget-service.ts"
    ).is_file()
    assert history_code == 0
    [record] = store.list_exports(component_id=component.id)
    assert record.export_format is ExportFormat.STANDALONE
    stored = store.get_component(component.id)
    assert stored is not None
    assert stored.export_status is ExportStatus.EXPORTED


def test_cli_008_update_rejects_export_regression(
    tmp_path: Path, write_source: Callable[[str, str], Path]
) -> None:
    db_path, store = _scanned_project(tmp_path, write_source)
    [component] = store.list_components()
    common = ("--root", str(tmp_path), "--db", str(db_path))

    ok_code, _, _ = _run(
        "update", component.id, "--security-status", "rejected", "--tags", "legacy, ui", *common
    )
    advance_code, _, _ = _run("update", component.id, "--export-status", "exported", *common)
    regress_code, _, regress_err = _run(
        "update", component.id, "--export-status", "identified", *common
    )

    assert ok_code == 0
    assert advance_code == 0
    assert regress_code == 1
    assert "Export status cannot move" in regress_err
    stored = store.get_component(component.id)
    assert stored is not None
    assert stored.security_status is SecurityStatus.REJECTED
    assert stored.tags == ["legacy", "ui"]
    assert stored.export_status is ExportStatus.EXPORTED


def test_cli_009_security_and_report(
    tmp_path: Path, write_source: Callable[[str, str], Path]
) -> None:
    db_path, store = _scanned_project(tmp_path, write_source)
    [component] = store.list_components()
    common = ("--root", str(tmp_path), "--db", str(db_path))

    one_code, one_out, _ = _run("security", component.id, *common)
    all_code, all_out, _ = _run("security", *common)
    report_code, report_out, _ = _run("report", *common)

    assert one_code == 0
    assert "Security status: approved" in one_out
    assert "No security issues found" in one_out
    assert all_code == 0
    assert "Total security issues found: 0" in all_out
    assert report_code == 0
    assert "Total Components: 1" in report_out
    assert "Total Scans: 1" in report_out
