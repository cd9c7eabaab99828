# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""In-process record store."""

import logging

from rcs.model import (
    ComponentRecord,
    ComponentType,
    ExportRecord,
    ExportStatus,
    ScanReport,
)
from rcs.persistence import PersistenceError, RecordNotFoundError

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Keep all records in process memory.

    Records are immutable, so callers never share mutable state with the
    store. Dict insertion order gives the listing order.
    """

    def __init__(self) -> None:
        self._components: dict[str, ComponentRecord] = {}
        self._scan_reports: dict[str, ScanReport] = {}
        self._exports: dict[str, ExportRecord] = {}

    def get_component(self, component_id: str) -> ComponentRecord | None:
        return self._components.get(component_id)

    def find_component_by_path(self, file_path: str) -> ComponentRecord | None:
        for record in self._components.values():
            if record.file_path == file_path:
                return record
        return None

    def list_components(
        self,
        component_type: ComponentType | None = None,
        export_status: ExportStatus | None = None,
    ) -> list[ComponentRecord]:
        return [
            record
            for record in self._components.values()
            if (component_type is None or record.component_type == component_type)
            and (export_status is None or record.export_status == export_status)
        ]

    def insert_component(self, record: ComponentRecord) -> ComponentRecord:
        if record.id in self._components:
            raise PersistenceError(f"Duplicate component id: {record.id}")
        if self.find_component_by_path(record.file_path) is not None:
            logger.warning(
                f"Rejected duplicate component path (file_path={record.file_path})"
            )
            raise PersistenceError(f"Duplicate component path: {record.file_path}")
        self._components[record.id] = record
        return record

    def update_component(self, record: ComponentRecord) -> ComponentRecord:
        if record.id not in self._components:
            raise RecordNotFoundError("Component", record.id)
        self._components[record.id] = record
        return record

    def insert_scan_report(self, report: ScanReport) -> ScanReport:
        if report.id in self._scan_reports:
            raise PersistenceError(f"Duplicate scan report id: {report.id}")
        self._scan_reports[report.id] = report
        return report

    def update_scan_report(self, report: ScanReport) -> ScanReport:
        if report.id not in self._scan_reports:
            raise RecordNotFoundError("Scan report", report.id)
        self._scan_reports[report.id] = report
        return report

    def get_scan_report(self, report_id: str) -> ScanReport | None:
        return self._scan_reports.get(report_id)

    def list_scan_reports(self) -> list[ScanReport]:
        return list(self._scan_reports.values())

    def insert_export(self, record: ExportRecord) -> ExportRecord:
        if record.id in self._exports:
            raise PersistenceError(f"Duplicate export id: {record.id}")
        self._exports[record.id] = record
        return record

    def update_export(self, record: ExportRecord) -> ExportRecord:
        if record.id not in self._exports:
            raise RecordNotFoundError("Export", record.id)
        self._exports[record.id] = record
        return record

    def list_exports(self, component_id: str | None = None) -> list[ExportRecord]:
        return [
            record
            for record in self._exports.values()
            if component_id is None or record.component_id == component_id
        ]
