from datetime import datetime, timedelta, timezone

from rcs.model import (
    ApiSurface,
    ComponentRecord,
    ComponentType,
    ExportStatus,
    ScanReport,
    ScanStatus,
    ScanType,
    SecurityStatus,
)
from rcs.report import build_reusability_report

START = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _component(
    index: int,
    reusability: int,
    compatibility: int,
    component_type: ComponentType = ComponentType.UTILITY,
) -> ComponentRecord:
    return ComponentRecord(
        id=f"component-{index}",
        name=f"component{index}",
        file_path=f"shared/component{index}.ts",
        component_type=component_type,
        description="",
        reusability_score=reusability,
        protocol_compatibility_score=compatibility,
        dependencies=[],
        api_surface=ApiSurface(),
        recommended_pattern="mcp-utility-function",
        tags=[],
        last_scanned=START,
        created_at=START,
        updated_at=START,
    )


def _scan(index: int) -> ScanReport:
    return ScanReport(
        id=f"scan-{index}",
        scan_type=ScanType.FULL_SCAN,
        status=ScanStatus.COMPLETED,
        created_at=START + timedelta(days=index),
    )


def test_rep_001_report_buckets_scores_and_counts_statuses() -> None:
    components = [
        _component(1, reusability=100, compatibility=90),
        _component(2, reusability=80, compatibility=70, component_type=ComponentType.SERVICE),
        _component(3, reusability=79, compatibility=69),
        _component(4, reusability=40, compatibility=10),
        _component(5, reusability=39, compatibility=0),
    ]

    report = build_reusability_report(components, scan_reports=[])

    assert report.total_components == 5
    assert report.by_type == {"utility": 4, "service": 1}
    assert report.reusability_distribution == {
        "Excellent (80-100)": 2,
        "Good (60-79)": 1,
        "Average (40-59)": 1,
        "Poor (0-39)": 1,
    }
    assert report.candidate_count == 2
    assert [c.id for c in report.protocol_candidates] == ["component-1", "component-2"]
    assert report.by_security_status == {SecurityStatus.PENDING.value: 5}
    assert report.by_export_status == {ExportStatus.IDENTIFIED.value: 5}


def test_rep_002_candidates_and_recent_scans_are_truncated() -> None:
    components = [_component(i, reusability=50, compatibility=70 + i) for i in range(12)]
    scans = [_scan(i) for i in range(7)]

    report = build_reusability_report(components, scans)

    assert report.candidate_count == 12
    assert len(report.protocol_candidates) == 10
    assert report.protocol_candidates[0].id == "component-11"
    assert report.total_scans == 7
    assert [scan.id for scan in report.recent_scans] == [
        "scan-6",
        "scan-5",
        "scan-4",
        "scan-3",
        "scan-2",
    ]
