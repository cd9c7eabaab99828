# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Persistence SQLite implementation for component, scan, and export records."""

import json
import logging
import sqlite3

from datetime import datetime
from pathlib import Path
from typing import Any

from rcs.model import (
    Adaptation,
    ApiSurface,
    ComponentRecord,
    ComponentType,
    ExportFormat,
    ExportRecord,
    ExportRecordStatus,
    ExportStatus,
    ScanReport,
    ScanStatus,
    ScanType,
    SecurityStatus,
    Vulnerability,
)
from rcs.persistence import PersistenceError, RecordNotFoundError

logger = logging.getLogger(__name__)

_COMPONENT_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "file_path",
    "component_type",
    "description",
    "reusability_score",
    "protocol_compatibility_score",
    "dependencies",
    "api_surface",
    "recommended_pattern",
    "tags",
    "last_scanned",
    "created_at",
    "updated_at",
    "flagged_by",
    "security_status",
    "vulnerabilities",
    "export_status",
)

_SCAN_REPORT_COLUMNS: tuple[str, ...] = (
    "id",
    "scan_type",
    "status",
    "created_at",
    "components_found",
    "components_updated",
    "protocol_candidates",
    "security_issues",
    "scan_duration",
    "results",
    "errors",
)

_EXPORT_COLUMNS: tuple[str, ...] = (
    "id",
    "component_id",
    "export_path",
    "export_format",
    "status",
    "created_at",
    "adaptations",
    "export_metadata",
)


class SQLiteStore:
    """Persist component, scan report, and export records to a SQLite database.

    Each operation opens its own connection, so one store instance can be
    shared with the background scan worker.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize persistence backend.

        Args:
            db_path: SQLite database file path.
        """
        self._db_path = db_path

    def get_component(self, component_id: str) -> ComponentRecord | None:
        rows = self._read(
            f"SELECT {', '.join(_COMPONENT_COLUMNS)} FROM components WHERE id = ?",
            (component_id,),
        )
        return _component_from_row(rows[0]) if rows else None

    def find_component_by_path(self, file_path: str) -> ComponentRecord | None:
        rows = self._read(
            f"SELECT {', '.join(_COMPONENT_COLUMNS)} FROM components WHERE file_path = ?",
            (file_path,),
        )
        return _component_from_row(rows[0]) if rows else None

    def list_components(
        self,
        component_type: ComponentType | None = None,
        export_status: ExportStatus | None = None,
    ) -> list[ComponentRecord]:
        clauses: list[str] = []
        params: list[str] = []
        if component_type is not None:
            clauses.append("component_type = ?")
            params.append(component_type.value)
        if export_status is not None:
            clauses.append("export_status = ?")
            params.append(export_status.value)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._read(
            f"SELECT {', '.join(_COMPONENT_COLUMNS)} FROM components{where} ORDER BY rowid",
            tuple(params),
        )
        return [_component_from_row(row) for row in rows]

    def insert_component(self, record: ComponentRecord) -> ComponentRecord:
        self._write(_insert_sql("components", _COMPONENT_COLUMNS), _component_row(record))
        return record

    def update_component(self, record: ComponentRecord) -> ComponentRecord:
        row = _component_row(record)
        updated = self._write(
            _update_sql("components", _COMPONENT_COLUMNS), row[1:] + row[:1]
        )
        if updated == 0:
            raise RecordNotFoundError("Component", record.id)
        return record

    def insert_scan_report(self, report: ScanReport) -> ScanReport:
        self._write(
            _insert_sql("scan_reports", _SCAN_REPORT_COLUMNS), _scan_report_row(report)
        )
        return report

    def update_scan_report(self, report: ScanReport) -> ScanReport:
        row = _scan_report_row(report)
        updated = self._write(
            _update_sql("scan_reports", _SCAN_REPORT_COLUMNS), row[1:] + row[:1]
        )
        if updated == 0:
            raise RecordNotFoundError("Scan report", report.id)
        return report

    def get_scan_report(self, report_id: str) -> ScanReport | None:
        rows = self._read(
            f"SELECT {', '.join(_SCAN_REPORT_COLUMNS)} FROM scan_reports WHERE id = ?",
            (report_id,),
        )
        return _scan_report_from_row(rows[0]) if rows else None

    def list_scan_reports(self) -> list[ScanReport]:
        rows = self._read(
            f"SELECT {', '.join(_SCAN_REPORT_COLUMNS)} FROM scan_reports ORDER BY rowid",
            (),
        )
        return [_scan_report_from_row(row) for row in rows]

    def insert_export(self, record: ExportRecord) -> ExportRecord:
        self._write(_insert_sql("exports", _EXPORT_COLUMNS), _export_row(record))
        return record

    def update_export(self, record: ExportRecord) -> ExportRecord:
        row = _export_row(record)
        updated = self._write(_update_sql("exports", _EXPORT_COLUMNS), row[1:] + row[:1])
        if updated == 0:
            raise RecordNotFoundError("Export", record.id)
        return record

    def list_exports(self, component_id: str | None = None) -> list[ExportRecord]:
        if component_id is None:
            rows = self._read(
                f"SELECT {', '.join(_EXPORT_COLUMNS)} FROM exports ORDER BY rowid", ()
            )
        else:
            rows = self._read(
                f"SELECT {', '.join(_EXPORT_COLUMNS)} FROM exports "
                "WHERE component_id = ? ORDER BY rowid",
                (component_id,),
            )
        return [_export_from_row(row) for row in rows]

    def _write(self, statement: str, params: tuple[Any, ...]) -> int:
        """Run one write statement in its own transaction.

        Args:
            statement: SQL statement.
            params: Bound parameters.

        Returns:
            Number of affected rows.

        Raises:
            PersistenceError: If schema setup or the write fails.
        """
        connection = sqlite3.connect(self._db_path)
        try:
            connection.execute("PRAGMA foreign_keys = ON")
            self._ensure_schema(connection=connection)
            cursor = connection.execute(statement, params)
            connection.commit()
            return int(cursor.rowcount)
        except sqlite3.DatabaseError as exc:
            connection.rollback()
            logger.warning(
                f"SQLite write failed (db_path={self._db_path} error={exc})"
            )
            raise PersistenceError(str(exc)) from exc
        finally:
            connection.close()

    def _read(self, statement: str, params: tuple[Any, ...]) -> list[tuple[Any, ...]]:
        """Run one query and return all rows.

        Raises:
            PersistenceError: If schema setup or the query fails.
        """
        connection = sqlite3.connect(self._db_path)
        try:
            self._ensure_schema(connection=connection)
            return connection.execute(statement, params).fetchall()
        except sqlite3.DatabaseError as exc:
            logger.warning(f"SQLite read failed (db_path={self._db_path} error={exc})")
            raise PersistenceError(str(exc)) from exc
        finally:
            connection.close()

    def _ensure_schema(self, connection: sqlite3.Connection) -> None:
        """Create required tables and indexes when missing.

        Args:
            connection: Open SQLite connection.
        """
        connection.execute(
            "CREATE TABLE IF NOT EXISTS components ("
            "id TEXT PRIMARY KEY, "
            "name TEXT NOT NULL, "
            "file_path TEXT NOT NULL UNIQUE, "
            "component_type TEXT NOT NULL, "
            "description TEXT NOT NULL, "
            "reusability_score INTEGER NOT NULL, "
            "protocol_compatibility_score INTEGER NOT NULL, "
            "dependencies TEXT NOT NULL, "
            "api_surface TEXT NOT NULL, "
            "recommended_pattern TEXT NOT NULL, "
            "tags TEXT NOT NULL, "
            "last_scanned TEXT NOT NULL, "
            "created_at TEXT NOT NULL, "
            "updated_at TEXT NOT NULL, "
            "flagged_by TEXT NOT NULL, "
            "security_status TEXT NOT NULL, "
            "vulnerabilities TEXT NOT NULL, "
            "export_status TEXT NOT NULL"
            ")"
        )
        connection.execute(
            "CREATE TABLE IF NOT EXISTS scan_reports ("
            "id TEXT PRIMARY KEY, "
            "scan_type TEXT NOT NULL, "
            "status TEXT NOT NULL, "
            "created_at TEXT NOT NULL, "
            "components_found INTEGER NOT NULL, "
            "components_updated INTEGER NOT NULL, "
            "protocol_candidates INTEGER NOT NULL, "
            "security_issues INTEGER NOT NULL, "
            "scan_duration INTEGER NOT NULL, "
            "results TEXT NOT NULL, "
            "errors TEXT NOT NULL"
            ")"
        )
        connection.execute(
            "CREATE TABLE IF NOT EXISTS exports ("
            "id TEXT PRIMARY KEY, "
            "component_id TEXT NOT NULL REFERENCES components(id), "
            "export_path TEXT NOT NULL, "
            "export_format TEXT NOT NULL, "
            "status TEXT NOT NULL, "
            "created_at TEXT NOT NULL, "
            "adaptations TEXT NOT NULL, "
            "export_metadata TEXT NOT NULL"
            ")"
        )
        connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_components_export_status "
            "ON components(export_status)"
        )
        connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_exports_component_id ON exports(component_id)"
        )


def _insert_sql(table: str, columns: tuple[str, ...]) -> str:
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"


def _update_sql(table: str, columns: tuple[str, ...]) -> str:
    # Expects the id column first; callers rotate it to the end of the params.
    assignments = ", ".join(f"{column} = ?" for column in columns[1:])
    return f"UPDATE {table} SET {assignments} WHERE {columns[0]} = ?"


def _component_row(record: ComponentRecord) -> tuple[Any, ...]:
    return (
        record.id,
        record.name,
        record.file_path,
        record.component_type.value,
        record.description,
        record.reusability_score,
        record.protocol_compatibility_score,
        json.dumps(record.dependencies),
        json.dumps(record.api_surface.to_dict()),
        record.recommended_pattern,
        json.dumps(record.tags),
        record.last_scanned.isoformat(),
        record.created_at.isoformat(),
        record.updated_at.isoformat(),
        record.flagged_by,
        record.security_status.value,
        json.dumps([vulnerability.to_dict() for vulnerability in record.vulnerabilities]),
        record.export_status.value,
    )


def _component_from_row(row: tuple[Any, ...]) -> ComponentRecord:
    values = dict(zip(_COMPONENT_COLUMNS, row))
    return ComponentRecord(
        id=values["id"],
        name=values["name"],
        file_path=values["file_path"],
        component_type=ComponentType(values["component_type"]),
        description=values["description"],
        reusability_score=int(values["reusability_score"]),
        protocol_compatibility_score=int(values["protocol_compatibility_score"]),
        dependencies=list(json.loads(values["dependencies"])),
        api_surface=ApiSurface.from_dict(json.loads(values["api_surface"])),
        recommended_pattern=values["recommended_pattern"],
        tags=list(json.loads(values["tags"])),
        last_scanned=datetime.fromisoformat(values["last_scanned"]),
        created_at=datetime.fromisoformat(values["created_at"]),
        updated_at=datetime.fromisoformat(values["updated_at"]),
        flagged_by=values["flagged_by"],
        security_status=SecurityStatus(values["security_status"]),
        vulnerabilities=[
            Vulnerability.from_dict(item) for item in json.loads(values["vulnerabilities"])
        ],
        export_status=ExportStatus(values["export_status"]),
    )


def _scan_report_row(report: ScanReport) -> tuple[Any, ...]:
    return (
        report.id,
        report.scan_type.value,
        report.status.value,
        report.created_at.isoformat(),
        report.components_found,
        report.components_updated,
        report.protocol_candidates,
        report.security_issues,
        report.scan_duration,
        json.dumps(report.results, default=str),
        json.dumps(report.errors),
    )


def _scan_report_from_row(row: tuple[Any, ...]) -> ScanReport:
    values = dict(zip(_SCAN_REPORT_COLUMNS, row))
    return ScanReport(
        id=values["id"],
        scan_type=ScanType(values["scan_type"]),
        status=ScanStatus(values["status"]),
        created_at=datetime.fromisoformat(values["created_at"]),
        components_found=int(values["components_found"]),
        components_updated=int(values["components_updated"]),
        protocol_candidates=int(values["protocol_candidates"]),
        security_issues=int(values["security_issues"]),
        scan_duration=int(values["scan_duration"]),
        results=dict(json.loads(values["results"])),
        errors=list(json.loads(values["errors"])),
    )


def _export_row(record: ExportRecord) -> tuple[Any, ...]:
    return (
        record.id,
        record.component_id,
        record.export_path,
        record.export_format.value,
        record.status.value,
        record.created_at.isoformat(),
        json.dumps([adaptation.to_dict() for adaptation in record.adaptations]),
        json.dumps(record.export_metadata, default=str),
    )


def _export_from_row(row: tuple[Any, ...]) -> ExportRecord:
    values = dict(zip(_EXPORT_COLUMNS, row))
    return ExportRecord(
        id=values["id"],
        component_id=values["component_id"],
        export_path=values["export_path"],
        export_format=ExportFormat(values["export_format"]),
        status=ExportRecordStatus(values["status"]),
        created_at=datetime.fromisoformat(values["created_at"]),
        adaptations=[
            Adaptation.from_dict(item) for item in json.loads(values["adaptations"])
        ],
        export_metadata=dict(json.loads(values["export_metadata"])),
    )
