# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Background scan execution with pollable status."""

import concurrent.futures
import logging

from rcs.model import ScanReport, ScanStatus, ScanType
from rcs.persistence import ComponentStore, RecordNotFoundError
from rcs.scanner import ComponentScanner

logger = logging.getLogger(__name__)


class ScanFailedError(RuntimeError):
    """Raised by :meth:`ScanTaskRegistry.wait` when the awaited scan failed."""

    def __init__(self, report_id: str, message: str) -> None:
        super().__init__(f"Scan {report_id} failed: {message}")
        self.report_id = report_id


class ScanTaskRegistry:
    """Run scans on a background worker and track them by report id.

    A single worker serializes scans. There is no cancellation: a started
    scan runs until it completes or fails. Only unfinished scans are held
    in memory; finished ones are answered from the store.
    """

    def __init__(self, scanner: ComponentScanner, store: ComponentStore) -> None:
        self._scanner = scanner
        self._store = store
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="rcs-scan"
        )
        self._futures: dict[str, concurrent.futures.Future[ScanReport]] = {}

    def start(self, scan_type: ScanType = ScanType.FULL_SCAN) -> str:
        """Persist a ``running`` report and queue the scan.

        Args:
            scan_type: Requested scan type.

        Returns:
            The report id to poll.
        """
        report = self._scanner.create_report(scan_type)
        future = self._executor.submit(self._scanner.run, report)
        # Registered before the callback, which may fire immediately.
        self._futures[report.id] = future
        future.add_done_callback(
            lambda done, report_id=report.id: self._release(report_id, done)
        )
        logger.info(f"Scan queued (scan_id={report.id} scan_type={scan_type.value})")
        return report.id

    def status(self, report_id: str) -> ScanReport:
        """Return the stored report.

        Raises:
            RecordNotFoundError: If the report does not exist.
        """
        report = self._store.get_scan_report(report_id)
        if report is None:
            raise RecordNotFoundError("Scan report", report_id)
        return report

    def is_running(self, report_id: str) -> bool:
        future = self._futures.get(report_id)
        return future is not None and not future.done()

    def wait(self, report_id: str, timeout: float | None = None) -> ScanReport:
        """Block until a scan finishes.

        Args:
            report_id: Report id returned by :meth:`start`.
            timeout: Seconds to wait; ``None`` waits indefinitely.

        Returns:
            The finalized report.

        Raises:
            RecordNotFoundError: If the report does not exist, or it is still
                running without having been started here.
            TimeoutError: If the scan is still running after ``timeout``.
            ScanFailedError: If the scan failed.
        """
        future = self._futures.get(report_id)
        if future is not None:
            try:
                return future.result(timeout=timeout)
            except concurrent.futures.TimeoutError as exc:
                raise TimeoutError(f"Scan {report_id} still running") from exc
            except Exception as exc:
                raise ScanFailedError(report_id, str(exc)) from exc

        report = self.status(report_id)
        if report.status is ScanStatus.RUNNING:
            raise RecordNotFoundError("Scan task", report_id)
        if report.status is ScanStatus.FAILED:
            message = report.errors[0]["message"] if report.errors else "unknown error"
            raise ScanFailedError(report_id, message)
        return report

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _release(self, report_id: str, future: concurrent.futures.Future[ScanReport]) -> None:
        self._futures.pop(report_id, None)
        error = future.exception()
        if error is not None:
            logger.warning(f"Background scan failed (scan_id={report_id} error={error})")
