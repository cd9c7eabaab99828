# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Persistence contracts."""

import logging

from typing import Protocol

from rcs.model import (
    ComponentRecord,
    ComponentType,
    ExportRecord,
    ExportStatus,
    ScanReport,
)

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """Represent a fatal persistence operation failure."""


class RecordNotFoundError(RuntimeError):
    """Represent a lookup of an id that does not exist in the store."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class ComponentStore(Protocol):
    """Define keyed storage for components, scan reports, and exports.

    ``update_*`` methods replace the stored record with the same id and raise
    :class:`RecordNotFoundError` when the id is unknown. Write failures raise
    :class:`PersistenceError`.
    """

    def get_component(self, component_id: str) -> ComponentRecord | None:
        """Return one component by id."""

    def find_component_by_path(self, file_path: str) -> ComponentRecord | None:
        """Return the component keyed by a project-relative file path."""

    def list_components(
        self,
        component_type: ComponentType | None = None,
        export_status: ExportStatus | None = None,
    ) -> list[ComponentRecord]:
        """Return components in insertion order, optionally filtered."""

    def insert_component(self, record: ComponentRecord) -> ComponentRecord:
        """Insert a new component; ``file_path`` must be unused."""

    def update_component(self, record: ComponentRecord) -> ComponentRecord:
        """Replace an existing component."""

    def insert_scan_report(self, report: ScanReport) -> ScanReport:
        """Insert a new scan report."""

    def update_scan_report(self, report: ScanReport) -> ScanReport:
        """Replace an existing scan report."""

    def get_scan_report(self, report_id: str) -> ScanReport | None:
        """Return one scan report by id."""

    def list_scan_reports(self) -> list[ScanReport]:
        """Return scan reports in insertion order."""

    def insert_export(self, record: ExportRecord) -> ExportRecord:
        """Insert a new export record."""

    def update_export(self, record: ExportRecord) -> ExportRecord:
        """Replace an existing export record."""

    def list_exports(self, component_id: str | None = None) -> list[ExportRecord]:
        """Return export records in insertion order."""


def require_component(store: ComponentStore, component_id: str) -> ComponentRecord:
    """Load a component or raise.

    Args:
        store: Record store.
        component_id: Component identifier.

    Returns:
        The stored component.

    Raises:
        RecordNotFoundError: If the component does not exist.
    """
    component = store.get_component(component_id)
    if component is None:
        logger.warning(f"Component lookup failed (component_id={component_id})")
        raise RecordNotFoundError("Component", component_id)
    return component
