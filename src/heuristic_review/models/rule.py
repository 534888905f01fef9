"""Rule and catalog models. Both are immutable once loaded."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from .finding import Severity
from .predicate import PredicateNode


@dataclass(frozen=True, slots=True)
class Rule:
    """A single heuristic rule from a catalog document."""

    id: str
    domain: str
    severity: Severity
    predicate: PredicateNode
    predicate_source: str
    title: str
    remediation_template: str
    trigger_signature: tuple[str, ...] = ()
    example_ref: Optional[str] = None


@dataclass(frozen=True, slots=True, eq=False)
class Catalog:
    """A named, versioned set of rules with unique identifiers.

    Catalogs compare and hash by identity so they can be collected in sets.
    """

    name: str
    version: str
    rules: tuple[Rule, ...]
    domain: str = ""
    description: str = ""
    trigger_signatures: frozenset[str] = frozenset()
    categories: Mapping[str, frozenset[str]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    source: Optional[str] = None

    @property
    def identifier(self) -> str:
        return f"{self.name}@{self.version}"

    @property
    def domains(self) -> list[str]:
        return sorted({rule.domain for rule in self.rules})

    def rules_for_domain(self, tag: str) -> tuple[Rule, ...]:
        """Return the rules tagged with ``tag`` ordered by identifier."""

        return tuple(sorted((rule for rule in self.rules if rule.domain == tag), key=lambda r: r.id))

    def rule(self, rule_id: str) -> Rule:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        raise KeyError(rule_id)

    def __len__(self) -> int:
        return len(self.rules)
