# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Command line driver for scanning, documenting, and exporting components."""

import argparse
import json
import logging
import sys
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler
from rich.style import Style
from rich.table import Table

from rcs.config import ScannerConfig
from rcs.database import SQLiteStore
from rcs.documentation import DocumentationGenerator
from rcs.export import ExportAdapter, ExportError, ExportOptions
from rcs.model import (
    ComponentRecord,
    ComponentType,
    ExportFormat,
    ExportStatus,
    ScanStatus,
    ScanType,
    SecurityStatus,
)
from rcs.persistence import ComponentStore, PersistenceError, RecordNotFoundError
from rcs.report import build_reusability_report
from rcs.scanner import ComponentScanner
from rcs.security import SecurityScanner
from rcs.source import SourceUnavailableError
from rcs.tasks import ScanTaskRegistry
from rcs.updates import ComponentUpdate, apply_component_update

logger = logging.getLogger(__name__)

DEFAULT_DB_NAME = ".rcs/components.sqlite"

SECURITY_MARKERS: dict[SecurityStatus, str] = {
    SecurityStatus.APPROVED: "ok",
    SecurityStatus.NEEDS_REVIEW: "review",
    SecurityStatus.REJECTED: "rejected",
    SecurityStatus.PENDING: "pending",
}


@dataclass(frozen=True)
class _Context:
    config: ScannerConfig
    store: ComponentStore
    console: Console


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with Rich handler.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser instance.
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--root", default=".", help="Project root to scan.")
    common.add_argument(
        "--db",
        required=False,
        help=f"SQLite database path (default: <root>/{DEFAULT_DB_NAME}).",
    )

    parser = argparse.ArgumentParser(prog="rcs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan", parents=[common], help="Scan for reusable components."
    )
    scan_parser.add_argument(
        "scan_type",
        nargs="?",
        choices=[scan_type.value for scan_type in ScanType],
        default=ScanType.FULL_SCAN.value,
    )
    scan_parser.add_argument(
        "--wait-attempts",
        type=int,
        default=30,
        help="Number of status polls before giving up waiting.",
    )
    scan_parser.add_argument(
        "--poll-interval",
        type=float,
        default=2.0,
        help="Seconds between status polls.",
    )

    list_parser = subparsers.add_parser(
        "list", parents=[common], help="List identified components."
    )
    list_parser.add_argument(
        "component_type",
        nargs="?",
        choices=[component_type.value for component_type in ComponentType],
    )

    show_parser = subparsers.add_parser(
        "show", parents=[common], help="Print one component as JSON."
    )
    show_parser.add_argument("component_id")

    docs_parser = subparsers.add_parser(
        "docs", parents=[common], help="Generate component documentation."
    )
    docs_parser.add_argument(
        "target", nargs="?", default="all", help="Component id, or 'all'."
    )

    export_parser = subparsers.add_parser(
        "export", parents=[common], help="Export components for Cyrano MCP."
    )
    export_parser.add_argument("component_ids", nargs="+")
    export_parser.add_argument(
        "--format",
        choices=[export_format.value for export_format in ExportFormat],
        default=ExportFormat.MCP_MODULE.value,
    )
    export_parser.add_argument(
        "--output", required=False, help="Bundle directory (single component only)."
    )
    export_parser.add_argument("--no-docs", action="store_true")
    export_parser.add_argument("--no-tests", action="store_true")

    security_parser = subparsers.add_parser(
        "security", parents=[common], help="Run the security scan."
    )
    security_parser.add_argument(
        "component_id", nargs="?", help="Scan one component; all when omitted."
    )

    subparsers.add_parser(
        "report", parents=[common], help="Print the reusability report."
    )

    update_parser = subparsers.add_parser(
        "update", parents=[common], help="Edit one component manually."
    )
    update_parser.add_argument("component_id")
    update_parser.add_argument(
        "--security-status", choices=[status.value for status in SecurityStatus]
    )
    update_parser.add_argument(
        "--export-status", choices=[status.value for status in ExportStatus]
    )
    update_parser.add_argument("--description")
    update_parser.add_argument("--tags", help="Comma-separated tags.")

    history_parser = subparsers.add_parser(
        "history", parents=[common], help="List export records."
    )
    history_parser.add_argument("component_id", nargs="?")

    subparsers.add_parser("reports", parents=[common], help="List scan reports.")
    return parser


def run(argv: list[str], stdout: TextIO, stderr: TextIO) -> int:
    """Run CLI command.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        logger.warning(f"Argument parsing failed (argv={argv})")
        return 2

    root = Path(args.root)
    if not root.is_dir():
        logger.warning(f"Project root does not exist (root={root})")
        stderr.write(f"Project root does not exist: {root}\n")
        return 2
    config = ScannerConfig.for_project(root)
    db_path = Path(args.db) if args.db else config.project_root / DEFAULT_DB_NAME
    db_path.parent.mkdir(parents=True, exist_ok=True)
    context = _Context(
        config=config,
        store=SQLiteStore(db_path=db_path),
        console=Console(file=stdout, force_terminal=False, color_system="truecolor"),
    )

    handlers = {
        "scan": _run_scan,
        "list": _run_list,
        "show": _run_show,
        "docs": _run_docs,
        "export": _run_export,
        "security": _run_security,
        "report": _run_report,
        "update": _run_update,
        "history": _run_history,
        "reports": _run_reports,
    }
    handler = handlers.get(args.command)
    if handler is None:
        logger.warning(f"Unsupported command (command={args.command})")
        stderr.write(f"Unsupported command: {args.command}\n")
        return 2
    try:
        return handler(args, context, stderr)
    except RecordNotFoundError as exc:
        stderr.write(f"{exc}\n")
        return 2
    except (
        PersistenceError,
        SourceUnavailableError,
        ExportError,
        OSError,
        ValueError,
    ) as exc:
        logger.warning(f"Command failed (command={args.command} error={exc})")
        stderr.write(f"Error: {exc}\n")
        return 1


def _run_scan(args: argparse.Namespace, context: _Context, stderr: TextIO) -> int:
    """Start a background scan and poll its report.

    Gives up waiting after ``--wait-attempts`` polls without cancelling.
    """
    scanner = ComponentScanner(store=context.store, config=context.config)
    registry = ScanTaskRegistry(scanner=scanner, store=context.store)
    try:
        scan_id = registry.start(ScanType(args.scan_type))
        context.console.print(f"Scan started: {scan_id}")
        for _ in range(max(0, args.wait_attempts)):
            time.sleep(args.poll_interval)
            report = registry.status(scan_id)
            if report.status is ScanStatus.COMPLETED:
                table = Table(title="Scan Results", show_header=False)
                table.add_row("Components Found", str(report.components_found))
                table.add_row("Components Updated", str(report.components_updated))
                table.add_row("Protocol Candidates", str(report.protocol_candidates))
                table.add_row("Security Issues", str(report.security_issues))
                table.add_row("Duration", f"{report.scan_duration}ms")
                context.console.print(table)
                return 0
            if report.status is ScanStatus.FAILED:
                message = report.errors[0]["message"] if report.errors else "unknown error"
                stderr.write(f"Scan failed: {message}\n")
                return 1
        context.console.print("Scan is still running in the background")
        return 0
    finally:
        registry.shutdown(wait=False)


def _run_list(args: argparse.Namespace, context: _Context, stderr: TextIO) -> int:
    component_type = ComponentType(args.component_type) if args.component_type else None
    components = context.store.list_components(component_type=component_type)
    if not components:
        context.console.print("No components found. Run a scan first.")
        return 0

    threshold = context.config.protocol_candidate_threshold
    grouped: dict[str, list[ComponentRecord]] = {}
    for component in components:
        grouped.setdefault(component.component_type.value, []).append(component)
    for type_name, members in grouped.items():
        context.console.rule(
            f"{type_name.upper()} ({len(members)})", style=Style(color="cyan"), characters="-"
        )
        table = Table(show_header=True, expand=True)
        table.add_column("id", overflow="fold")
        table.add_column("name", overflow="fold")
        table.add_column("reusability", justify="right")
        table.add_column("compatibility", justify="right")
        table.add_column("candidate")
        table.add_column("security")
        table.add_column("file_path", overflow="fold")
        for component in members:
            table.add_row(
                component.id,
                component.name,
                f"{component.reusability_score}/100",
                f"{component.protocol_compatibility_score}/100",
                "yes" if component.protocol_compatibility_score >= threshold else "no",
                SECURITY_MARKERS[component.security_status],
                component.file_path,
            )
        context.console.print(table)

    flagged = {SecurityStatus.NEEDS_REVIEW, SecurityStatus.REJECTED}
    context.console.print(
        f"High Reusability (80+): {sum(1 for c in components if c.reusability_score >= 80)}"
    )
    context.console.print(
        f"Protocol Candidates ({threshold}+): "
        f"{sum(1 for c in components if c.protocol_compatibility_score >= threshold)}"
    )
    context.console.print(
        f"Security Issues: {sum(1 for c in components if c.security_status in flagged)}"
    )
    return 0


def _run_show(args: argparse.Namespace, context: _Context, stderr: TextIO) -> int:
    component = context.store.get_component(args.component_id)
    if component is None:
        raise RecordNotFoundError("Component", args.component_id)
    context.console.print(
        json.dumps(asdict(component), indent=2, sort_keys=True, default=str),
        markup=False,
        emoji=False,
        highlight=False,
        soft_wrap=True,
    )
    return 0


def _run_docs(args: argparse.Namespace, context: _Context, stderr: TextIO) -> int:
    generator = DocumentationGenerator(store=context.store, config=context.config)
    if args.target != "all":
        doc_path = generator.generate_component_documentation(args.target)
        context.console.print(f"Documentation generated: {doc_path}")
        return 0
    doc_paths = generator.generate_all_documentation()
    context.console.print(f"Generated documentation for {len(doc_paths)} components")
    context.console.print(f"Documentation available in: {generator.output_path}")
    return 0


def _run_export(args: argparse.Namespace, context: _Context, stderr: TextIO) -> int:
    if args.output and len(args.component_ids) > 1:
        stderr.write("--output can only be used with a single component\n")
        return 2
    options = ExportOptions(
        format=ExportFormat(args.format),
        include_docs=not args.no_docs,
        include_tests=not args.no_tests,
        output_path=Path(args.output) if args.output else None,
    )
    adapter = ExportAdapter(store=context.store, config=context.config)
    if len(args.component_ids) == 1:
        results = [adapter.export_component(args.component_ids[0], options)]
    else:
        results = adapter.export_batch(args.component_ids, options)

    for result in results:
        component = result.metadata.original_component
        context.console.print(f"Exported {component.name} -> {result.output_path}")
        context.console.print(
            f"  files={result.metadata.file_count} "
            f"size={round(result.metadata.total_size / 1024)}KB"
        )
        for adaptation in result.adaptations:
            context.console.print(f"  {adaptation.type}: {adaptation.description}")
    if len(results) < len(args.component_ids):
        stderr.write(
            f"{len(args.component_ids) - len(results)} component(s) failed to export\n"
        )
    return 0


def _run_security(args: argparse.Namespace, context: _Context, stderr: TextIO) -> int:
    scanner = SecurityScanner(store=context.store, project_root=context.config.project_root)
    if args.component_id:
        result = scanner.perform_security_scan(args.component_id)
        context.console.print(f"Security status: {result.status.value}")
        if not result.vulnerabilities:
            context.console.print("No security issues found")
            return 0
        table = Table(show_header=True, expand=True)
        table.add_column("line", justify="right")
        table.add_column("severity")
        table.add_column("type")
        table.add_column("description", overflow="fold")
        for vulnerability in result.vulnerabilities:
            table.add_row(
                str(vulnerability.line),
                vulnerability.severity.value,
                vulnerability.type,
                vulnerability.description,
            )
        context.console.print(table)
        return 0

    total_issues = 0
    for component in context.store.list_components():
        try:
            result = scanner.perform_security_scan(component.id)
        except SourceUnavailableError as exc:
            logger.warning(f"Failed to scan component (name={component.name} error={exc})")
            continue
        total_issues += len(result.vulnerabilities)
        if result.vulnerabilities:
            context.console.print(f"{component.name}: {len(result.vulnerabilities)} issues")
    context.console.print(f"Total security issues found: {total_issues}")
    return 0


def _run_report(args: argparse.Namespace, context: _Context, stderr: TextIO) -> int:
    report = build_reusability_report(
        components=context.store.list_components(),
        scan_reports=context.store.list_scan_reports(),
        candidate_threshold=context.config.protocol_candidate_threshold,
    )
    console = context.console
    console.rule("Reusability Report", style=Style(color="cyan"), characters="=")
    console.print(f"Total Components: {report.total_components}")
    console.print(f"Total Scans: {report.total_scans}")
    for title, counts in (
        ("By Type", report.by_type),
        ("Reusability Distribution", report.reusability_distribution),
        ("Security Status", report.by_security_status),
        ("Export Status", report.by_export_status),
    ):
        table = Table(title=title, show_header=False)
        for label, count in counts.items():
            table.add_row(label, str(count))
        console.print(table)

    console.print(
        f"Protocol Candidates ({context.config.protocol_candidate_threshold}+): "
        f"{report.candidate_count}"
    )
    if report.protocol_candidates:
        table = Table(title="Top Candidates", show_header=True)
        table.add_column("#", justify="right")
        table.add_column("name")
        table.add_column("compatibility", justify="right")
        for index, component in enumerate(report.protocol_candidates, start=1):
            table.add_row(str(index), component.name, f"{component.protocol_compatibility_score}/100")
        console.print(table)

    if report.recent_scans:
        table = Table(title="Recent Scan Activity", show_header=True)
        table.add_column("date")
        table.add_column("type")
        table.add_column("status")
        table.add_column("found", justify="right")
        for scan in report.recent_scans:
            table.add_row(
                scan.created_at.date().isoformat(),
                scan.scan_type.value,
                scan.status.value,
                str(scan.components_found),
            )
        console.print(table)
    return 0


def _run_update(args: argparse.Namespace, context: _Context, stderr: TextIO) -> int:
    update = ComponentUpdate(
        security_status=SecurityStatus(args.security_status) if args.security_status else None,
        export_status=ExportStatus(args.export_status) if args.export_status else None,
        description=args.description,
        tags=[tag.strip() for tag in args.tags.split(",") if tag.strip()]
        if args.tags is not None
        else None,
    )
    component = apply_component_update(context.store, args.component_id, update)
    context.console.print(
        f"Updated {component.name}: security={component.security_status.value} "
        f"export={component.export_status.value}"
    )
    return 0


def _run_history(args: argparse.Namespace, context: _Context, stderr: TextIO) -> int:
    records = context.store.list_exports(component_id=args.component_id)
    if not records:
        context.console.print("No exports recorded.")
        return 0
    table = Table(show_header=True, expand=True)
    table.add_column("id", overflow="fold")
    table.add_column("component_id", overflow="fold")
    table.add_column("format")
    table.add_column("status")
    table.add_column("files", justify="right")
    table.add_column("path", overflow="fold")
    for record in records:
        table.add_row(
            record.id,
            record.component_id,
            record.export_format.value,
            record.status.value,
            str(record.export_metadata.get("file_count", "-")),
            record.export_path,
        )
    context.console.print(table)
    return 0


def _run_reports(args: argparse.Namespace, context: _Context, stderr: TextIO) -> int:
    reports = context.store.list_scan_reports()
    if not reports:
        context.console.print("No scans recorded.")
        return 0
    table = Table(show_header=True, expand=True)
    table.add_column("id", overflow="fold")
    table.add_column("type")
    table.add_column("status")
    table.add_column("found", justify="right")
    table.add_column("updated", justify="right")
    table.add_column("candidates", justify="right")
    table.add_column("duration", justify="right")
    for report in reports:
        table.add_row(
            report.id,
            report.scan_type.value,
            report.status.value,
            str(report.components_found),
            str(report.components_updated),
            str(report.protocol_candidates),
            f"{report.scan_duration}ms",
        )
    context.console.print(table)
    return 0


def main() -> None:
    """Run the CLI application and exit."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
