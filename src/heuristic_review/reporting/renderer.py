"""Render a :class:`Report` as JSON or as a terminal table."""

from __future__ import annotations

import json
from typing import Any, Mapping, Sequence

from ..models import ExtractionWarning, Finding, Report, RunWarning, Severity, SourceLocation, TimeoutWarning

OUTPUT_FORMATS = ("structured", "human")


def report_to_dict(report: Report) -> dict[str, Any]:
    highest = report.highest_severity
    return {
        "metadata": dict(report.metadata()),
        "summary": {
            "total_findings": len(report.findings),
            "highest_severity": highest.value if highest else None,
            "counts": report.counts_by_severity(),
        },
        "findings": [_serialize_finding(finding) for finding in report.findings],
        "warnings": [warning.to_dict() for warning in report.warnings],
    }


def _serialize_finding(finding: Finding) -> dict[str, Any]:
    return {
        "rule_id": finding.rule_id,
        "catalog": finding.catalog,
        "severity": finding.severity.value,
        "title": finding.title,
        "message": finding.message,
        "remediation": finding.remediation,
        "path": finding.path,
        "line": finding.line,
        "column": finding.column,
        "cell": finding.location.cell if finding.location else None,
        "symbol": finding.symbol,
        "occurrences": finding.occurrences,
        "evidence": list(finding.evidence),
        "example_ref": finding.example_ref,
    }


_WARNING_TYPES = {"extraction": ExtractionWarning, "timeout": TimeoutWarning}


def report_from_dict(data: Mapping[str, Any]) -> Report:
    """Rebuild a :class:`Report` from its structured rendering.

    Raises :class:`ValueError` when ``data`` does not have that shape.
    """

    try:
        metadata = data.get("metadata") or {}
        findings = tuple(_parse_finding(item) for item in data.get("findings") or ())
        warnings = tuple(_parse_warning(item) for item in data.get("warnings") or ())
        return Report(
            findings=findings,
            warnings=warnings,
            catalogs=tuple(str(catalog) for catalog in metadata.get("catalogs") or ()),
            files_scanned=int(metadata.get("files_scanned", 0)),
            files_failed=int(metadata.get("files_failed", 0)),
            match_count=int(metadata.get("matches", len(findings))),
        )
    except (AttributeError, KeyError, TypeError) as exc:
        raise ValueError(f"not a structured review report: {exc!r}") from exc


def _parse_finding(item: Mapping[str, Any]) -> Finding:
    location = None
    if item.get("line") is not None:
        cell = item.get("cell")
        location = SourceLocation(
            int(item["line"]),
            int(item.get("column") or 0),
            int(cell) if cell is not None else None,
        )
    return Finding(
        rule_id=str(item["rule_id"]),
        catalog=str(item.get("catalog") or ""),
        severity=Severity.parse(item["severity"]),
        title=str(item.get("title") or ""),
        path=str(item["path"]),
        message=str(item.get("message") or ""),
        remediation=str(item.get("remediation") or ""),
        location=location,
        symbol=item.get("symbol"),
        evidence=tuple(str(entry) for entry in item.get("evidence") or ()),
        example_ref=item.get("example_ref"),
        occurrences=int(item.get("occurrences", 1)),
    )


def _parse_warning(item: Mapping[str, Any]) -> RunWarning:
    kind = str(item.get("kind") or "warning")
    warning_type = _WARNING_TYPES.get(kind)
    if warning_type is None:
        return RunWarning(path=str(item["path"]), message=str(item["message"]), kind=kind)
    return warning_type(path=str(item["path"]), message=str(item["message"]))


def _location(finding: Finding) -> str:
    if finding.location is None:
        return finding.path
    return f"{finding.path}:{finding.location}"


def render_table(report: Report) -> str:
    """Render findings as a simple text table for terminal output."""

    if not report.findings:
        return "No findings detected."

    headers = ("Severity", "Rule ID", "Location", "Message")
    rows = [headers]
    for finding in report.findings:
        rows.append((finding.severity.value, finding.rule_id, _location(finding), finding.message))

    widths = [max(len(str(row[idx])) for row in rows) for idx in range(len(headers))]

    def format_row(values: Sequence[str]) -> str:
        return "  ".join(value.ljust(width) for value, width in zip(values, widths, strict=True)).rstrip()

    lines = [format_row(headers)]
    lines.append("  ".join("=" * width for width in widths))
    for row in rows[1:]:
        lines.append(format_row(row))
    return "\n".join(lines)


def _render_warnings(warnings: Sequence[RunWarning]) -> list[str]:
    lines = ["", f"Warnings ({len(warnings)}):"]
    for warning in warnings:
        lines.append(f"  [{warning.kind}] {warning.path}: {warning.message}")
    return lines


def render_human(report: Report) -> str:
    metadata = report.metadata()
    counts = report.counts_by_severity()
    highest = report.highest_severity

    lines = [
        f"Catalogs: {', '.join(metadata['catalogs']) or 'none'}",
        f"Files scanned: {metadata['files_scanned']} (failed: {metadata['files_failed']})",
        "Findings: {total} (fail: {fail}, warn: {warn}, info: {info}); highest severity: {highest}".format(
            total=len(report.findings),
            highest=highest.value if highest else "none",
            **counts,
        ),
        "",
        render_table(report),
    ]

    if report.findings:
        lines.extend(["", "Remediation:"])
        for finding in report.findings:
            lines.append(f"  {finding.rule_id} {_location(finding)}: {finding.remediation}")
            if finding.example_ref:
                lines.append(f"    see: {finding.example_ref}")

    if report.warnings:
        lines.extend(_render_warnings(report.warnings))

    return "\n".join(lines)


def render(report: Report, output_format: str = "structured") -> str:
    """Render ``report``; output depends only on the report value."""

    if output_format == "structured":
        return json.dumps(report_to_dict(report), indent=2)
    if output_format == "human":
        return render_human(report)
    raise ValueError(f"format must be one of {', '.join(OUTPUT_FORMATS)}; got {output_format!r}")


__all__ = [
    "OUTPUT_FORMATS",
    "render",
    "render_human",
    "render_table",
    "report_from_dict",
    "report_to_dict",
]
