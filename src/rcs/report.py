# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Aggregate reusability statistics over stored components and scans."""

from collections import Counter
from dataclasses import dataclass

from rcs.model import ComponentRecord, ScanReport

REUSABILITY_BANDS: tuple[tuple[str, int, int], ...] = (
    ("Excellent (80-100)", 80, 100),
    ("Good (60-79)", 60, 79),
    ("Average (40-59)", 40, 59),
    ("Poor (0-39)", 0, 39),
)


@dataclass(frozen=True)
class ReusabilityReport:
    """Summarize the component table.

    Attributes:
        total_components: Number of stored components.
        total_scans: Number of stored scan reports.
        by_type: Component count per type value.
        reusability_distribution: Component count per score band.
        protocol_candidates: Candidates sorted by compatibility, best first,
            at most ``top_n``.
        candidate_count: Number of candidates before truncation.
        by_security_status: Component count per security status value.
        by_export_status: Component count per export status value.
        recent_scans: Most recent scan reports, newest first.
    """

    total_components: int
    total_scans: int
    by_type: dict[str, int]
    reusability_distribution: dict[str, int]
    protocol_candidates: list[ComponentRecord]
    candidate_count: int
    by_security_status: dict[str, int]
    by_export_status: dict[str, int]
    recent_scans: list[ScanReport]


def build_reusability_report(
    components: list[ComponentRecord],
    scan_reports: list[ScanReport],
    candidate_threshold: int = 70,
    top_n: int = 10,
    recent_n: int = 5,
) -> ReusabilityReport:
    """Build the report.

    Args:
        components: All stored components.
        scan_reports: All stored scan reports.
        candidate_threshold: Minimum compatibility score of a candidate.
        top_n: Maximum number of candidates listed.
        recent_n: Maximum number of recent scans listed.

    Returns:
        Aggregated report.
    """
    candidates = sorted(
        (c for c in components if c.protocol_compatibility_score >= candidate_threshold),
        key=lambda c: c.protocol_compatibility_score,
        reverse=True,
    )
    distribution = {
        label: sum(1 for c in components if low <= c.reusability_score <= high)
        for label, low, high in REUSABILITY_BANDS
    }
    recent = sorted(scan_reports, key=lambda r: r.created_at, reverse=True)[:recent_n]
    return ReusabilityReport(
        total_components=len(components),
        total_scans=len(scan_reports),
        by_type=dict(Counter(c.component_type.value for c in components)),
        reusability_distribution=distribution,
        protocol_candidates=candidates[:top_n],
        candidate_count=len(candidates),
        by_security_status=dict(Counter(c.security_status.value for c in components)),
        by_export_status=dict(Counter(c.export_status.value for c in components)),
        recent_scans=recent,
    )
