from __future__ import annotations

import pytest

from heuristic_review.models import (
    ExtractionWarning,
    Finding,
    Report,
    RunStatus,
    Severity,
    Signal,
    SignalKind,
    SourceLocation,
    SourceUnit,
    TimeoutWarning,
)


def make_finding(severity: Severity, rule_id: str = "R1", path: str = "app.py") -> Finding:
    return Finding(
        rule_id=rule_id,
        catalog="demo@1",
        severity=severity,
        title="title",
        path=path,
        message="message",
        remediation="fix it",
        location=SourceLocation(3, 4),
    )


def make_report(*severities: Severity) -> Report:
    return Report(
        findings=tuple(make_finding(severity) for severity in severities),
        warnings=(),
        catalogs=("demo@1",),
        files_scanned=1,
        files_failed=0,
        match_count=len(severities),
    )


def test_severity_parse_accepts_tagged_values_only() -> None:
    assert Severity.parse("FAIL") is Severity.FAIL
    assert Severity.parse(" warn ") is Severity.WARN
    assert Severity.parse(Severity.INFO) is Severity.INFO

    for value in ("warning", "error", "critical", 3, None):
        with pytest.raises(ValueError):
            Severity.parse(value)


def test_severity_rank_orders_fail_above_warn_above_info() -> None:
    assert Severity.FAIL.rank > Severity.WARN.rank > Severity.INFO.rank


def test_report_status_thresholds() -> None:
    assert make_report().status(Severity.FAIL) is RunStatus.SUCCESS
    assert make_report(Severity.WARN, Severity.INFO).status(Severity.FAIL) is RunStatus.SUCCESS_WITH_FINDINGS
    assert make_report(Severity.WARN).status(Severity.WARN) is RunStatus.FAILURE
    assert make_report(Severity.INFO, Severity.FAIL).status(Severity.FAIL) is RunStatus.FAILURE


def test_run_status_exit_codes() -> None:
    assert RunStatus.SUCCESS.exit_code == 0
    assert RunStatus.SUCCESS_WITH_FINDINGS.exit_code == 0
    assert RunStatus.FAILURE.exit_code == 1


def test_report_counts_and_metadata() -> None:
    report = make_report(Severity.FAIL, Severity.WARN, Severity.WARN)

    assert report.highest_severity is Severity.FAIL
    assert report.counts_by_severity() == {"info": 0, "warn": 2, "fail": 1}
    assert report.metadata() == {
        "catalogs": ["demo@1"],
        "files_scanned": 1,
        "files_failed": 0,
        "matches": 3,
        "warnings": 0,
    }


def test_source_unit_build_orders_and_deduplicates_signals() -> None:
    late = Signal(SignalKind.CALL_SITE, "requests.get", SourceLocation(9, 4), symbol="handler")
    early = Signal(SignalKind.IMPORT_PRESENT, "requests", SourceLocation(1, 0))

    unit = SourceUnit.build(
        "app.py",
        "",
        language="python",
        domain_hints=["requests"],
        signals=[late, early, late],
    )

    assert unit.signals == (early, late)
    assert unit.imported_modules() == ["requests"]
    assert unit.is_partial is False


def test_warning_kinds_serialize() -> None:
    assert ExtractionWarning(path="a.py", message="bad").to_dict() == {
        "kind": "extraction",
        "path": "a.py",
        "message": "bad",
    }
    assert TimeoutWarning(path="b.py", message="slow").kind == "timeout"


def test_signal_describe_includes_detail() -> None:
    signal = Signal(
        SignalKind.CALL_ARG, "requests.get", SourceLocation(5, 8), symbol="fetch", detail="timeout"
    )

    assert signal.describe() == "call_arg(requests.get, timeout) @ 5:8"
