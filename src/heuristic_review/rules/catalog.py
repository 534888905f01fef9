"""Load and validate catalog documents into immutable :class:`Catalog` values."""

from __future__ import annotations

import logging
import string
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from ..categories import BUILTIN_CATEGORIES, merge_categories
from ..errors import CatalogError, CatalogProblem, PredicateError
from ..models import Catalog, Rule, Severity
from .predicates import parse_predicate

logger = logging.getLogger(__name__)

REQUIRED_RULE_FIELDS = ("id", "severity", "predicate", "title", "remediation_template")

TEMPLATE_FIELDS = frozenset(
    {
        "rule_id",
        "title",
        "severity",
        "path",
        "symbol",
        "name",
        "raw",
        "line",
        "column",
        "kind",
        "detail",
    }
)


def read_document(path: Path) -> Dict[str, Any]:
    """Read a YAML (or JSON) document that must contain a mapping."""

    if not path.exists():
        raise CatalogError(f"Catalog document not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:  # pragma: no cover - filesystem errors surfaced to caller
        raise CatalogError(f"Failed to read catalog document {path}") from exc

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as exc:
        raise CatalogError(f"Invalid YAML in catalog document {path}") from exc

    if not isinstance(data, Mapping):
        raise CatalogError(f"Catalog document must be a mapping: {path}")

    return dict(data)


def load_catalog(
    source: Path | str | Mapping[str, Any],
    *,
    severity_overrides: Mapping[str, Severity] | None = None,
) -> Catalog:
    """Load a catalog from a file path or an already-parsed mapping.

    Every problem in the document is collected and raised together in one
    :class:`CatalogError`; no partial catalog is ever returned.
    """

    if isinstance(source, Mapping):
        data = dict(source)
        origin = str(data.get("catalog") or data.get("name") or "<mapping>")
    else:
        path = Path(source)
        data = read_document(path)
        origin = str(path)

    problems: List[CatalogProblem] = []

    name = _optional_str(data.get("catalog") or data.get("name"))
    if not name:
        problems.append(CatalogProblem(origin, "catalog is missing 'catalog' name"))
    version = _optional_str(data.get("version"))
    if not version:
        problems.append(CatalogProblem(origin, "catalog is missing 'version'"))
    domain = _optional_str(data.get("domain")) or ""

    catalog_triggers = _string_list(data.get("trigger_signatures"), origin, None, problems, "trigger_signatures")

    categories_raw = data.get("categories") or {}
    extra_categories: Dict[str, List[str]] = {}
    if not isinstance(categories_raw, Mapping):
        problems.append(CatalogProblem(origin, "'categories' must be a mapping of name to list"))
    else:
        for category, members in categories_raw.items():
            extra_categories[str(category)] = _string_list(
                members, origin, None, problems, f"categories.{category}"
            )

    raw_rules = data.get("rules")
    if not isinstance(raw_rules, list) or not raw_rules:
        problems.append(CatalogProblem(origin, "catalog must contain a non-empty 'rules' list"))
        raw_rules = []

    overrides = dict(severity_overrides or {})
    rules: List[Rule] = []
    seen: Dict[str, int] = {}
    for index, raw_rule in enumerate(raw_rules, start=1):
        rule = _build_rule(raw_rule, index, origin, domain, overrides, seen, problems)
        if rule is not None:
            rules.append(rule)

    for rule_id in sorted(set(overrides) - set(seen)):
        problems.append(CatalogProblem(origin, "severity override targets an unknown rule", rule_id))

    if problems:
        raise CatalogError(f"Catalog {origin} failed validation", problems)

    triggers = set(catalog_triggers)
    for rule in rules:
        triggers.update(rule.trigger_signature)

    catalog = Catalog(
        name=name or "",
        version=version or "",
        rules=tuple(rules),
        domain=domain,
        description=_optional_str(data.get("description")) or "",
        trigger_signatures=frozenset(triggers),
        categories=merge_categories(BUILTIN_CATEGORIES, extra_categories),
        source=None if isinstance(source, Mapping) else origin,
    )
    logger.info("Loaded catalog %s with %d rules", catalog.identifier, len(catalog.rules))
    return catalog


def _build_rule(
    raw_rule: object,
    index: int,
    origin: str,
    catalog_domain: str,
    overrides: Mapping[str, Severity],
    seen: Dict[str, int],
    problems: List[CatalogProblem],
) -> Optional[Rule]:
    if not isinstance(raw_rule, Mapping):
        problems.append(CatalogProblem(origin, f"rule #{index} must be a mapping"))
        return None

    rule_id = _optional_str(raw_rule.get("id"))
    label = rule_id or f"#{index}"
    before = len(problems)

    missing = [key for key in REQUIRED_RULE_FIELDS if _optional_str(raw_rule.get(key)) is None]
    if missing:
        problems.append(CatalogProblem(origin, f"missing required field(s) {', '.join(missing)}", label))

    if rule_id:
        if rule_id in seen:
            problems.append(
                CatalogProblem(origin, f"duplicate identifier (first defined as rule #{seen[rule_id]})", rule_id)
            )
        else:
            seen[rule_id] = index

    severity: Optional[Severity] = None
    if raw_rule.get("severity") is not None:
        try:
            severity = Severity.parse(raw_rule.get("severity"))
        except ValueError:
            problems.append(
                CatalogProblem(
                    origin,
                    f"unrecognized severity {raw_rule.get('severity')!r}; expected info, warn or fail",
                    label,
                )
            )

    predicate_source = _optional_str(raw_rule.get("predicate"))
    predicate = None
    if predicate_source:
        try:
            predicate = parse_predicate(predicate_source)
        except PredicateError as exc:
            problems.append(CatalogProblem(origin, f"invalid predicate: {exc}", label))

    template = _optional_str(raw_rule.get("remediation_template"))
    if template:
        problem = _check_template(template)
        if problem:
            problems.append(CatalogProblem(origin, problem, label))

    domain = _optional_str(raw_rule.get("domain")) or catalog_domain
    if not domain:
        problems.append(CatalogProblem(origin, "rule has no 'domain' and the catalog declares none", label))

    trigger_signature = _string_list(
        raw_rule.get("trigger_signature"), origin, label, problems, "trigger_signature"
    )

    if len(problems) > before or predicate is None or severity is None or rule_id is None:
        return None

    if rule_id in overrides:
        logger.debug("Severity of %s overridden from %s to %s", rule_id, severity.value, overrides[rule_id].value)
        severity = overrides[rule_id]

    return Rule(
        id=rule_id,
        domain=domain,
        severity=severity,
        predicate=predicate,
        predicate_source=predicate_source or "",
        title=str(raw_rule["title"]).strip(),
        remediation_template=template or "",
        trigger_signature=tuple(trigger_signature),
        example_ref=_optional_str(raw_rule.get("example_ref")),
    )


def _check_template(template: str) -> Optional[str]:
    """Placeholders are plain names only; values are always substituted as text."""

    try:
        parsed = [item for item in string.Formatter().parse(template) if item[1] is not None]
    except ValueError as exc:
        return f"malformed remediation_template: {exc}"

    decorated = sorted({field for _, field, spec, conversion in parsed if spec or conversion})
    if decorated:
        return f"remediation_template placeholder(s) {', '.join(decorated)} use a format spec or conversion"

    fields = [field for _, field, _, _ in parsed]

    unknown = sorted({field for field in fields if field not in TEMPLATE_FIELDS})
    if unknown:
        return f"remediation_template uses unknown placeholder(s) {', '.join(unknown)}"
    return None


def _string_list(
    value: object,
    origin: str,
    rule_id: Optional[str],
    problems: List[CatalogProblem],
    label: str,
) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return [item.strip() for item in value if item.strip()]
    problems.append(CatalogProblem(origin, f"'{label}' must be a list of strings", rule_id))
    return []


def _optional_str(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


__all__ = ["TEMPLATE_FIELDS", "load_catalog", "read_document"]
