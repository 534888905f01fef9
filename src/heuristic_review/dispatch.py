"""Select the catalogs that apply to a source unit."""

from __future__ import annotations

import logging
from typing import Iterable, Set

from .categories import matches_any
from .models import Catalog, SourceUnit

logger = logging.getLogger(__name__)


class DomainDispatcher:
    """Map detected import signals to catalogs through their trigger signatures.

    A catalog applies when one of its trigger signatures names an imported
    module (directly, as a parent package, or through an import category), or
    equals one of the unit's domain hints. Forced catalogs always apply.
    Several catalogs may apply to one unit and none suppresses another.
    """

    def applicable_catalogs(
        self,
        unit: SourceUnit,
        available: Iterable[Catalog],
        force: Iterable[Catalog] = (),
    ) -> Set[Catalog]:
        modules = unit.imported_modules()
        selected: Set[Catalog] = set(force)

        for catalog in available:
            if catalog in selected:
                continue
            if self._triggered(catalog, modules, unit.domain_hints):
                selected.add(catalog)

        logger.debug(
            "Catalogs for %s: %s",
            unit.path,
            ", ".join(sorted(catalog.identifier for catalog in selected)) or "none",
        )
        return selected

    @staticmethod
    def _triggered(catalog: Catalog, modules: Iterable[str], hints: Iterable[str]) -> bool:
        modules = list(modules)
        hint_set = set(hints)
        for trigger in sorted(catalog.trigger_signatures):
            if trigger in hint_set:
                return True
            if matches_any(trigger, modules, catalog.categories, modules=True):
                return True
        return False


__all__ = ["DomainDispatcher"]
