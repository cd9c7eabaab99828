from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import pytest

from rcs.database import InMemoryStore
from rcs.model import ApiSurface, ComponentRecord, ComponentType, SecurityStatus, Severity
from rcs.persistence import RecordNotFoundError
from rcs.security import SecurityScanner, derive_status, scan_for_vulnerabilities
from rcs.source import SourceUnavailableError


def _component(file_path: str) -> ComponentRecord:
    now = datetime(2020, 1, 1, tzinfo=timezone.utc)
    return ComponentRecord(
        id="component-1",
        name=Path(file_path).stem,
        file_path=file_path,
        component_type=ComponentType.UTILITY,
        description="",
        reusability_score=50,
        protocol_compatibility_score=40,
        dependencies=[],
        api_surface=ApiSurface(),
        recommended_pattern="mcp-utility-function",
        tags=[],
        last_scanned=now,
        created_at=now,
        updated_at=now,
    )


def test_sec_001_eval_is_a_high_code_injection_finding() -> None:
    findings = scan_for_vulnerabilities("const a = 1;\n\nconst b = eval(userInput);\n")

    assert len(findings) == 1
    assert findings[0].type == "code_injection"
    assert findings[0].severity is Severity.HIGH
    assert findings[0].line == 3


def test_sec_002_hardcoded_secret_unless_redacted() -> None:
    flagged = scan_for_vulnerabilities('const apiKey = "sk-12345"')
    redacted = scan_for_vulnerabilities('const apiKey = "***"')

    assert [(item.type, item.severity) for item in flagged] == [
        ("hardcoded_secrets", Severity.CRITICAL)
    ]
    assert redacted == []


def test_sec_003_suppressions_for_textcontent_and_allowed_env_names() -> None:
    content = "\n".join(
        [
            "el.innerHTML = el.textContent;",
            "el.innerHTML = html;",
            "const key = process.env.ANTHROPIC_API_KEY;",
            "const mode = process.env.NODE_ENV;",
            "const region = process.env.AWS_REGION;",
        ]
    )

    findings = scan_for_vulnerabilities(content)

    assert [(item.type, item.line) for item in findings] == [
        ("xss", 2),
        ("information_disclosure", 5),
    ]


def test_sec_004_one_line_may_yield_several_findings() -> None:
    findings = scan_for_vulnerabilities("eval(process.env.DB_PASSWORD);")

    assert {item.type for item in findings} == {
        "code_injection",
        "information_disclosure",
        "hardcoded_secrets",
    }
    assert {item.line for item in findings} == {1}


def test_sec_005_status_requires_review_only_for_high_or_critical() -> None:
    low_and_medium = scan_for_vulnerabilities(
        "el.innerHTML = html;\nconst region = process.env.AWS_REGION;"
    )

    assert derive_status([]) is SecurityStatus.APPROVED
    assert derive_status(low_and_medium) is SecurityStatus.APPROVED
    assert derive_status(scan_for_vulnerabilities("eval(x)")) is SecurityStatus.NEEDS_REVIEW


def test_sec_006_clean_component_is_approved_and_persisted(
    tmp_path: Path, store: InMemoryStore, write_source: Callable[[str, str], Path]
) -> None:
    write_source("shared/format.ts", "export const format = (value: string) => value.trim();\n")
    store.insert_component(_component("shared/format.ts"))

    result = SecurityScanner(store=store, project_root=tmp_path).perform_security_scan(
        "component-1"
    )

    assert result.status is SecurityStatus.APPROVED
    assert result.vulnerabilities == []
    stored = store.get_component("component-1")
    assert stored is not None
    assert stored.security_status is SecurityStatus.APPROVED
    assert stored.updated_at > stored.created_at


def test_sec_007_risky_component_needs_review(
    tmp_path: Path, store: InMemoryStore, write_source: Callable[[str, str], Path]
) -> None:
    write_source("shared/run.ts", "export function run(code: string) {\n  return eval(code);\n}\n")
    store.insert_component(_component("shared/run.ts"))

    result = SecurityScanner(store=store, project_root=tmp_path).perform_security_scan(
        "component-1"
    )

    stored = store.get_component("component-1")
    assert result.status is SecurityStatus.NEEDS_REVIEW
    assert stored is not None
    assert stored.vulnerabilities == result.vulnerabilities
    assert stored.vulnerabilities[0].line == 2


def test_sec_008_missing_component_or_source_raises(
    tmp_path: Path, store: InMemoryStore
) -> None:
    scanner = SecurityScanner(store=store, project_root=tmp_path)

    with pytest.raises(RecordNotFoundError):
        scanner.perform_security_scan("missing")

    store.insert_component(_component("shared/gone.ts"))
    with pytest.raises(SourceUnavailableError):
        scanner.perform_security_scan("component-1")

    stored = store.get_component("component-1")
    assert stored is not None
    assert stored.security_status is SecurityStatus.PENDING
