"""Publish a structured review report to GitHub Actions.

The report written by ``heuristic-review review --format structured`` is turned
into a Markdown job summary and into workflow commands that GitHub shows as
inline annotations on the reviewed files.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Iterator, Sequence

from ..models import Finding, Report, Severity
from ..reporting import report_from_dict

ANNOTATION_LEVELS = {
    Severity.FAIL: "error",
    Severity.WARN: "warning",
    Severity.INFO: "notice",
}
SUMMARY_LIMIT = 10


def format_summary(report: Report) -> str:
    """Render the Markdown job summary for ``report``."""

    highest = report.highest_severity
    counts = report.counts_by_severity()
    lines = [
        "# Heuristic Review Report",
        "",
        f"**Total findings:** {len(report.findings)}",
        f"**Highest severity:** {highest.value.title() if highest else 'None'}",
        f"**Catalogs:** {', '.join(report.catalogs) or 'none'}",
        f"**Files scanned:** {report.files_scanned} (failed: {report.files_failed})",
        "",
        "| Severity | Findings |",
        "| --- | ---: |",
    ]
    for severity in sorted(Severity, key=lambda severity: -severity.rank):
        lines.append(f"| {severity.value.title()} | {counts[severity.value]} |")

    if report.findings:
        lines.extend(["", "## Findings", ""])
        lines.extend(_summary_line(finding) for finding in report.findings[:SUMMARY_LIMIT])
        hidden = len(report.findings) - SUMMARY_LIMIT
        if hidden > 0:
            lines.append(f"- ...and {hidden} more findings.")

    if report.warnings:
        lines.extend(["", "## Not checked", ""])
        lines.extend(f"- `{warning.path}` ({warning.kind}): {warning.message}" for warning in report.warnings)

    lines.append("")
    return "\n".join(lines)


def _summary_line(finding: Finding) -> str:
    where = finding.path if finding.location is None else f"{finding.path}:{finding.location}"
    return f"- **{finding.severity.value.title()}** `{finding.rule_id}`: {finding.message} _(`{where}`)_"


def annotation(finding: Finding) -> str:
    """Return the workflow command annotating ``finding``."""

    attributes = [f"file={finding.path}"]
    body = [finding.message]
    location = finding.location
    if location is not None and location.cell is None:
        # workflow commands count columns from one
        attributes.extend([f"line={location.line}", f"col={location.column + 1}"])
    elif location is not None:
        body.insert(0, f"cell {location.cell}, line {location.line}")
    attributes.append(f"title={finding.severity.value.title()} - {finding.rule_id}")
    if finding.remediation:
        body.append(finding.remediation)

    return f"::{ANNOTATION_LEVELS[finding.severity]} {','.join(attributes)}::{_escape('; '.join(body))}"


def iter_annotations(report: Report) -> Iterator[str]:
    for finding in report.findings:
        yield annotation(finding)


def _escape(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "").replace("\n", "%0A")


def load_report(path: Path) -> Report:
    """Read a structured report; :class:`ValueError` when it is not one."""

    try:
        data = json.loads(path.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path} is not valid JSON: {exc.msg}") from exc
    return report_from_dict(data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="heuristic-review-github",
        description="Publish review findings as a GitHub job summary and annotations.",
    )
    parser.add_argument("report", type=Path, help="Structured report written by 'heuristic-review review'.")
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Where to append the job summary (defaults to $GITHUB_STEP_SUMMARY).",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        report = load_report(args.report)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    summary_path = args.summary_path
    if summary_path is None and os.getenv("GITHUB_STEP_SUMMARY"):
        summary_path = Path(os.environ["GITHUB_STEP_SUMMARY"])
    if summary_path is not None:
        summary_path.parent.mkdir(parents=True, exist_ok=True)
        with summary_path.open("a", encoding="utf-8") as handle:
            handle.write(format_summary(report))

    for command in iter_annotations(report):
        print(command)
    return 0


def run() -> None:  # pragma: no cover - wrapper for console entry point
    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
