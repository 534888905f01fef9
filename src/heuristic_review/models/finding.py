"""Severity, match and finding models shared by matching and reporting layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .source_unit import Signal, SourceLocation


class Severity(str, Enum):
    """Severity levels a rule may carry."""

    INFO = "info"
    WARN = "warn"
    FAIL = "fail"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: object) -> "Severity":
        """Return the severity for ``value`` or raise :class:`ValueError`."""

        if isinstance(value, Severity):
            return value
        if isinstance(value, str):
            return cls(value.strip().lower())
        raise ValueError(f"severity must be one of info, warn, fail; got {value!r}")


SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.WARN: 1,
    Severity.FAIL: 2,
}


@dataclass(frozen=True, slots=True)
class Match:
    """A rule predicate that held for a source unit, with resolved remediation."""

    rule_id: str
    catalog: str
    severity: Severity
    title: str
    path: str
    message: str
    remediation: str
    location: Optional[SourceLocation] = None
    symbol: Optional[str] = None
    signals: tuple[Signal, ...] = ()
    example_ref: Optional[str] = None

    @property
    def dedup_key(self) -> tuple[str, str, str, Optional[SourceLocation]]:
        return (self.catalog, self.rule_id, self.path, self.location)


@dataclass(frozen=True, slots=True)
class Finding:
    """A deduplicated, severity-ranked entry reported to users."""

    rule_id: str
    catalog: str
    severity: Severity
    title: str
    path: str
    message: str
    remediation: str
    location: Optional[SourceLocation] = None
    symbol: Optional[str] = None
    evidence: tuple[str, ...] = ()
    example_ref: Optional[str] = None
    occurrences: int = 1

    @property
    def line(self) -> Optional[int]:
        return self.location.line if self.location else None

    @property
    def column(self) -> Optional[int]:
        return self.location.column if self.location else None
