"""Report model: the terminal artifact of a review run."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, MutableMapping

from .finding import Finding, Severity
from .source_unit import RunWarning


class RunStatus(str, Enum):
    SUCCESS = "success"
    SUCCESS_WITH_FINDINGS = "success_with_findings"
    FAILURE = "failure"

    @property
    def exit_code(self) -> int:
        return 1 if self is RunStatus.FAILURE else 0


@dataclass(frozen=True, slots=True)
class Report:
    """Ordered findings plus run metadata and every non-fatal warning."""

    findings: tuple[Finding, ...]
    warnings: tuple[RunWarning, ...]
    catalogs: tuple[str, ...]
    files_scanned: int
    files_failed: int
    match_count: int

    @property
    def highest_severity(self) -> Severity | None:
        if not self.findings:
            return None
        return max(self.findings, key=lambda finding: finding.severity.rank).severity

    def counts_by_severity(self) -> dict[str, int]:
        counts: MutableMapping[Severity, int] = {severity: 0 for severity in Severity}
        for finding in self.findings:
            counts[finding.severity] += 1
        return {severity.value: count for severity, count in counts.items()}

    def status(self, fail_on: Severity) -> RunStatus:
        """Classify the run against the ``fail_on`` threshold."""

        highest = self.highest_severity
        if highest is None:
            return RunStatus.SUCCESS
        if highest.rank >= fail_on.rank:
            return RunStatus.FAILURE
        return RunStatus.SUCCESS_WITH_FINDINGS

    def metadata(self) -> Mapping[str, Any]:
        return {
            "catalogs": list(self.catalogs),
            "files_scanned": self.files_scanned,
            "files_failed": self.files_failed,
            "matches": self.match_count,
            "warnings": len(self.warnings),
        }

