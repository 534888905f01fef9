"""Collapse raw matches into ordered, user-facing findings."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from .models import Finding, Match

logger = logging.getLogger(__name__)


def finding_sort_key(finding: Finding) -> tuple:
    """Severity descending, then path, then rule id; the rest only break ties."""

    return (
        -finding.severity.rank,
        finding.path,
        finding.rule_id,
        finding.catalog,
        finding.location.sort_key if finding.location else (0, 0, 0),
        finding.message,
    )


class FindingAggregator:
    """Barrier stage: sees every match of a run before ordering anything.

    Matches sharing ``(catalog, rule id, path, location)`` collapse into one
    finding whose ``occurrences`` counts them. Different rules on the same
    location always stay separate findings.
    """

    def aggregate(self, matches: Iterable[Match]) -> List[Finding]:
        grouped: Dict[tuple, List[Match]] = {}
        for match in matches:
            grouped.setdefault(match.dedup_key, []).append(match)

        findings = [self._collapse(group) for group in grouped.values()]
        findings.sort(key=finding_sort_key)

        total = sum(len(group) for group in grouped.values())
        logger.debug("Aggregated %d match(es) into %d finding(s)", total, len(findings))
        return findings

    @staticmethod
    def _collapse(group: List[Match]) -> Finding:
        ordered = sorted(group, key=_match_order)
        first = ordered[0]

        evidence: Dict[str, None] = {}
        for match in ordered:
            for signal in match.signals:
                evidence.setdefault(signal.describe(), None)

        return Finding(
            rule_id=first.rule_id,
            catalog=first.catalog,
            severity=first.severity,
            title=first.title,
            path=first.path,
            message=first.message,
            remediation=first.remediation,
            location=first.location,
            symbol=first.symbol,
            evidence=tuple(evidence),
            example_ref=first.example_ref,
            occurrences=len(group),
        )


def _match_order(match: Match) -> tuple:
    return (
        -match.severity.rank,
        match.message,
        match.symbol or "",
        match.remediation,
        tuple(signal.describe() for signal in match.signals),
    )


__all__ = ["FindingAggregator", "finding_sort_key"]
