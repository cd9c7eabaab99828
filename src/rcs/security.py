# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Line-based security pattern scan for stored components."""

import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path

from rcs.model import SecurityStatus, Severity, Vulnerability
from rcs.persistence import ComponentStore, require_component
from rcs.source import read_source

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecurityRule:
    """One risky construct looked for on every line.

    Attributes:
        type: Finding category.
        severity: Finding severity.
        description: Finding text.
        pattern: Line must match this.
        unless: Line is ignored when it also matches this.
    """

    type: str
    severity: Severity
    description: str
    pattern: re.Pattern[str]
    unless: re.Pattern[str] | None = None

    def matches(self, line: str) -> bool:
        if not self.pattern.search(line):
            return False
        return self.unless is None or not self.unless.search(line)


SECURITY_RULES: tuple[SecurityRule, ...] = (
    SecurityRule(
        type="code_injection",
        severity=Severity.HIGH,
        description="Use of eval() can lead to code injection vulnerabilities",
        pattern=re.compile(r"eval\s*\("),
    ),
    SecurityRule(
        type="xss",
        severity=Severity.MEDIUM,
        description="Direct innerHTML assignment may lead to XSS vulnerabilities",
        pattern=re.compile(r"innerHTML\s*="),
        unless=re.compile(r"\.textContent"),
    ),
    SecurityRule(
        type="information_disclosure",
        severity=Severity.LOW,
        description="Environment variable usage should be reviewed for sensitive data",
        pattern=re.compile(r"process\.env\.\w+"),
        unless=re.compile(r"ANTHROPIC_API_KEY|NODE_ENV"),
    ),
    SecurityRule(
        type="hardcoded_secrets",
        severity=Severity.CRITICAL,
        description="Potential hardcoded secret or credential",
        pattern=re.compile(r"apiKey|password|secret|token", re.IGNORECASE),
        unless=re.compile(r"\*\*\*"),
    ),
)

REVIEW_SEVERITIES: frozenset[Severity] = frozenset({Severity.HIGH, Severity.CRITICAL})


@dataclass(frozen=True)
class SecurityScanResult:
    vulnerabilities: list[Vulnerability]
    status: SecurityStatus


def scan_for_vulnerabilities(content: str) -> list[Vulnerability]:
    """Return one finding per rule per matching line, in line order.

    Args:
        content: Full source text.

    Returns:
        Findings with 1-based line numbers.
    """
    findings: list[Vulnerability] = []
    for line_number, line in enumerate(content.split("\n"), start=1):
        for rule in SECURITY_RULES:
            if rule.matches(line):
                findings.append(
                    Vulnerability(
                        type=rule.type,
                        severity=rule.severity,
                        description=rule.description,
                        line=line_number,
                    )
                )
    return findings


def derive_status(vulnerabilities: list[Vulnerability]) -> SecurityStatus:
    """Map findings to a review status.

    ``rejected`` is never produced here; only a manual update sets it.
    """
    if any(item.severity in REVIEW_SEVERITIES for item in vulnerabilities):
        return SecurityStatus.NEEDS_REVIEW
    return SecurityStatus.APPROVED


class SecurityScanner:
    """Scan a stored component's source and persist the findings."""

    def __init__(self, store: ComponentStore, project_root: Path) -> None:
        self._store = store
        self._project_root = project_root

    def perform_security_scan(self, component_id: str) -> SecurityScanResult:
        """Scan one component and record its findings and status.

        Args:
            component_id: Component identifier.

        Returns:
            Findings and the derived status.

        Raises:
            RecordNotFoundError: If the component does not exist.
            SourceUnavailableError: If its source file cannot be read.
        """
        component = require_component(self._store, component_id)
        content = read_source(self._project_root, component.file_path)
        vulnerabilities = scan_for_vulnerabilities(content)
        status = derive_status(vulnerabilities)
        self._store.update_component(
            replace(
                component,
                security_status=status,
                vulnerabilities=vulnerabilities,
                updated_at=datetime.now(tz=timezone.utc),
            )
        )
        logger.info(
            f"Security scan completed (component_id={component_id} "
            f"findings={len(vulnerabilities)} status={status.value})"
        )
        return SecurityScanResult(vulnerabilities=vulnerabilities, status=status)
