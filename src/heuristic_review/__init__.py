"""Deterministic rule-catalog engine for heuristic source review."""

from .config import ReviewOptions, load_options
from .errors import (
    CatalogError,
    CatalogProblem,
    ConfigError,
    PredicateReferenceError,
    PredicateSyntaxError,
    ReviewError,
    RunCancelled,
)
from .models import ExtractionWarning, Finding, Report, RunStatus, Severity, TimeoutWarning
from .service import ReviewService, RunResult, run

__all__ = [
    "CatalogError",
    "CatalogProblem",
    "ConfigError",
    "ExtractionWarning",
    "Finding",
    "PredicateReferenceError",
    "PredicateSyntaxError",
    "Report",
    "ReviewError",
    "ReviewOptions",
    "ReviewService",
    "RunCancelled",
    "RunResult",
    "RunStatus",
    "Severity",
    "TimeoutWarning",
    "load_options",
    "run",
]
