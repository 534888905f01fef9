"""Exception hierarchy shared by catalog loading, matching and orchestration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


class ReviewError(RuntimeError):
    """Base class for fatal review errors."""


@dataclass(frozen=True, slots=True)
class CatalogProblem:
    """A single validation problem found while loading a catalog."""

    source: str
    message: str
    rule_id: str | None = None

    def __str__(self) -> str:
        if self.rule_id:
            return f"{self.source}: rule {self.rule_id}: {self.message}"
        return f"{self.source}: {self.message}"


class CatalogError(ReviewError):
    """Raised when a catalog or catalog manifest cannot be loaded.

    Every offending rule is listed in :attr:`problems` so catalog authors can
    fix all of them in one pass.
    """

    def __init__(self, message: str, problems: Sequence[CatalogProblem] | None = None) -> None:
        self.problems: list[CatalogProblem] = list(problems or [])
        detail = "".join(f"\n  - {problem}" for problem in self.problems)
        super().__init__(f"{message}{detail}")

    @property
    def rule_ids(self) -> list[str]:
        return [problem.rule_id for problem in self.problems if problem.rule_id]


class PredicateError(ValueError):
    """Base class for problems with a rule predicate expression."""


class PredicateSyntaxError(PredicateError):
    """Raised when a predicate expression cannot be parsed."""


class PredicateReferenceError(PredicateError):
    """Raised when a predicate names a signal outside the signal vocabulary."""

    def __init__(self, signal_name: str) -> None:
        self.signal_name = signal_name
        super().__init__(f"unknown signal '{signal_name}'")


class ConfigError(ReviewError):
    """Raised when review options are invalid."""


class RunCancelled(ReviewError):
    """Raised when a run is cancelled before its report is produced."""


__all__ = [
    "CatalogError",
    "CatalogProblem",
    "ConfigError",
    "PredicateError",
    "PredicateReferenceError",
    "PredicateSyntaxError",
    "ReviewError",
    "RunCancelled",
]
