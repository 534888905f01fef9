"""Data models for source units, rules, matches, findings and reports."""

from .finding import SEVERITY_RANK, Finding, Match, Severity
from .predicate import AllOf, AnyOf, Not, PredicateNode, Scoped, SignalAtom
from .report import Report, RunStatus
from .rule import Catalog, Rule
from .source_unit import (
    ALL_SIGNAL_KINDS,
    MODULE_SYMBOL,
    ExtractionWarning,
    RunWarning,
    Signal,
    SignalKind,
    SourceLocation,
    SourceUnit,
    TimeoutWarning,
)

__all__ = [
    "ALL_SIGNAL_KINDS",
    "AllOf",
    "AnyOf",
    "Catalog",
    "ExtractionWarning",
    "Finding",
    "MODULE_SYMBOL",
    "Match",
    "Not",
    "PredicateNode",
    "Report",
    "Rule",
    "RunStatus",
    "RunWarning",
    "SEVERITY_RANK",
    "Scoped",
    "Severity",
    "Signal",
    "SignalAtom",
    "SignalKind",
    "SourceLocation",
    "SourceUnit",
    "TimeoutWarning",
]
