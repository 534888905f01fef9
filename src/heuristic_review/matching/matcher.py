"""Evaluate catalog rule predicates against extracted source units."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from ..categories import matches_any
from ..models import (
    MODULE_SYMBOL,
    AllOf,
    AnyOf,
    Catalog,
    Match,
    Not,
    PredicateNode,
    Rule,
    Scoped,
    Signal,
    SignalAtom,
    SignalKind,
    SourceUnit,
)

logger = logging.getLogger(__name__)

Categories = Mapping[str, frozenset[str]]


@dataclass(frozen=True, slots=True)
class Evaluation:
    """Outcome of a predicate: truth value plus the signals that made it true."""

    truth: bool
    primary: tuple[Signal, ...] = ()
    supporting: tuple[Signal, ...] = ()


FALSE = Evaluation(False)


def related(left: Signal, right: Signal) -> bool:
    """Two call-level signals relate when they describe the same call; others share a symbol."""

    if left.kind.is_call_level and right.kind.is_call_level:
        return left.location == right.location and left.name == right.name
    return left.symbol == right.symbol


def evaluate(node: PredicateNode, unit: SourceUnit, categories: Categories) -> Evaluation:
    """Evaluate a predicate tree against ``unit``. Pure and side-effect free."""

    if isinstance(node, SignalAtom):
        matched = tuple(signal for signal in unit.signals_of(node.kind) if _accepts(node, signal, categories))
        return Evaluation(bool(matched), matched) if matched else FALSE

    if isinstance(node, Scoped):
        if node.op == "without" and not _observable(node.right, unit):
            return FALSE
        left = evaluate(node.left, unit, categories)
        if not left.truth:
            return FALSE
        right = evaluate(node.right, unit, categories)
        want_related = node.op == "within"
        kept: List[Signal] = []
        support: List[Signal] = list(left.supporting)
        for signal in left.primary:
            partners = [other for other in right.primary if related(signal, other)]
            if bool(partners) == want_related:
                kept.append(signal)
                support.extend(partners)
        if not kept:
            return FALSE
        return Evaluation(True, tuple(kept), _unique(support))

    if isinstance(node, AllOf):
        results = [evaluate(operand, unit, categories) for operand in node.operands]
        if not all(result.truth for result in results):
            return FALSE
        rest: List[Signal] = list(results[0].supporting)
        for result in results[1:]:
            rest.extend(result.primary)
            rest.extend(result.supporting)
        return Evaluation(True, results[0].primary, _unique(rest))

    if isinstance(node, AnyOf):
        results = [evaluate(operand, unit, categories) for operand in node.operands]
        hits = [result for result in results if result.truth]
        if not hits:
            return FALSE
        return Evaluation(
            True,
            _unique(signal for result in hits for signal in result.primary),
            _unique(signal for result in hits for signal in result.supporting),
        )

    if isinstance(node, Not):
        if not _observable(node.operand, unit):
            return FALSE
        inner = evaluate(node.operand, unit, categories)
        return FALSE if inner.truth else Evaluation(True)

    raise TypeError(f"unsupported predicate node {type(node).__name__}")


def _observable(node: PredicateNode, unit: SourceUnit) -> bool:
    """Whether absence of ``node`` can be concluded from what extraction looked for."""

    return _kinds(node) <= unit.extracted_kinds


def _kinds(node: PredicateNode) -> frozenset[SignalKind]:
    if isinstance(node, SignalAtom):
        return frozenset({node.kind})
    if isinstance(node, Scoped):
        return _kinds(node.left) | _kinds(node.right)
    if isinstance(node, (AllOf, AnyOf)):
        return frozenset().union(*(_kinds(operand) for operand in node.operands))
    if isinstance(node, Not):
        return _kinds(node.operand)
    raise TypeError(f"unsupported predicate node {type(node).__name__}")


def _accepts(atom: SignalAtom, signal: Signal, categories: Categories) -> bool:
    names = (signal.name, signal.raw)
    kind = atom.kind

    if kind is SignalKind.FUNCTION_IS_ASYNC:
        if not atom.args:
            return signal.detail == "true"
        arg = atom.args[0]
        if isinstance(arg, bool):
            return signal.detail == ("true" if arg else "false")
        return signal.detail == "true" and matches_any(arg, names, categories)

    pattern = str(atom.args[0])
    if kind is SignalKind.IMPORT_PRESENT:
        return matches_any(pattern, (signal.name,), categories, modules=True)

    if kind in (SignalKind.DECORATOR_ARG, SignalKind.CALL_ARG):
        keyword = str(atom.args[1])
        if keyword != "*" and signal.detail != keyword:
            return False

    return matches_any(pattern, names, categories)


def _unique(signals: Iterable[Signal]) -> tuple[Signal, ...]:
    return tuple(sorted(set(signals), key=lambda signal: signal.sort_key))


class _TemplateContext(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class PatternMatcher:
    """Evaluate every rule of a catalog against one source unit.

    Rules are evaluated independently and the result is sorted, so the
    authoring order of rules never changes the returned matches. Severity is
    copied from the rule unchanged.
    """

    def match(self, unit: SourceUnit, catalog: Catalog) -> List[Match]:
        matches: List[Match] = []
        for rule in catalog.rules:
            rule_matches = self.match_rule(unit, rule, catalog)
            logger.debug(
                "Rule %s/%s produced %d match(es) on %s", catalog.name, rule.id, len(rule_matches), unit.path
            )
            matches.extend(rule_matches)

        matches.sort(key=_match_sort_key)
        return matches

    def match_rule(self, unit: SourceUnit, rule: Rule, catalog: Catalog) -> List[Match]:
        result = evaluate(rule.predicate, unit, catalog.categories)
        if not result.truth:
            return []

        if not result.primary:
            return [self._build_match(unit, rule, catalog, None, ())]

        return [
            self._build_match(
                unit,
                rule,
                catalog,
                signal,
                tuple(other for other in result.supporting if related(signal, other)),
            )
            for signal in result.primary
        ]

    # ------------------------------------------------------------------
    def _build_match(
        self,
        unit: SourceUnit,
        rule: Rule,
        catalog: Catalog,
        primary: Optional[Signal],
        supporting: tuple[Signal, ...],
    ) -> Match:
        context = _TemplateContext(self._template_values(unit, rule, primary))
        remediation = " ".join(rule.remediation_template.format_map(context).split())

        if primary is None:
            message = rule.title
        else:
            where = "module scope" if primary.symbol == MODULE_SYMBOL else primary.symbol
            message = f"{rule.title} ({primary.raw or primary.name} in {where})"

        return Match(
            rule_id=rule.id,
            catalog=catalog.identifier,
            severity=rule.severity,
            title=rule.title,
            path=unit.path,
            message=message,
            remediation=remediation,
            location=primary.location if primary else None,
            symbol=primary.symbol if primary else None,
            signals=((primary,) + supporting) if primary else (),
            example_ref=rule.example_ref,
        )

    @staticmethod
    def _template_values(unit: SourceUnit, rule: Rule, primary: Optional[Signal]) -> Dict[str, object]:
        values: Dict[str, object] = {
            "rule_id": rule.id,
            "title": rule.title,
            "severity": rule.severity.value,
            "path": unit.path,
            "symbol": MODULE_SYMBOL,
            "name": "",
            "raw": "",
            "line": "-",
            "column": "-",
            "kind": "",
            "detail": "",
        }
        if primary is not None:
            values.update(
                symbol=primary.symbol,
                name=primary.name,
                raw=primary.raw or primary.name,
                line=primary.location.line,
                column=primary.location.column,
                kind=primary.kind.value,
                detail=primary.detail or "",
            )
        return values


def _match_sort_key(match: Match) -> tuple:
    location = match.location
    return (
        match.rule_id,
        location.sort_key if location else (0, 0, 0),
        match.symbol or "",
        match.message,
    )


__all__ = ["Evaluation", "PatternMatcher", "evaluate", "related"]
