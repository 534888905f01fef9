"""Utilities for loading and merging catalog manifest files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Sequence

from ..errors import CatalogError, CatalogProblem
from ..models import Catalog, Severity
from .catalog import load_catalog, read_document

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CatalogEntry:
    """Manifest entry describing where a catalog lives and how it is tuned."""

    name: str
    enabled: bool = True
    source: Path | None = None
    severity_overrides: Dict[str, Severity] = field(default_factory=dict)


CATALOG_DIR = Path(__file__).resolve().parent / "catalogs"
_DEFAULT_MANIFEST = CATALOG_DIR / "manifest.yaml"


class CatalogManager:
    """Load catalog manifests and resolve catalog identifiers to loaded catalogs."""

    def __init__(self, default_manifests: Sequence[Path | str] | None = None) -> None:
        manifest_paths: List[Path]
        if default_manifests is None:
            manifest_paths = []
            if _DEFAULT_MANIFEST.exists():
                manifest_paths.append(_DEFAULT_MANIFEST)
        else:
            manifest_paths = [Path(path) for path in default_manifests]

        self._default_manifests = manifest_paths

    # ------------------------------------------------------------------
    def entries(self, manifests: Sequence[Path | str] | None = None) -> List[CatalogEntry]:
        """Return all catalog entries defined by the provided manifests."""

        manifest_paths = list(self._default_manifests)
        if manifests:
            manifest_paths.extend(Path(path) for path in manifests)

        entries: MutableMapping[str, CatalogEntry] = {}
        for manifest_path in manifest_paths:
            data = read_document(manifest_path)
            for entry_config in data.get("catalogs", []) or []:
                if not isinstance(entry_config, Mapping):
                    raise CatalogError(f"Catalog manifest entries must be mappings: {manifest_path}")
                name = str(entry_config.get("name") or "").strip()
                if not name:
                    raise CatalogError(f"Catalog manifest entry without a name in {manifest_path}")

                entry = entries.get(name, CatalogEntry(name=name))
                if "enabled" in entry_config:
                    entry.enabled = bool(entry_config["enabled"])
                if entry_config.get("source"):
                    source = Path(str(entry_config["source"]))
                    if not source.is_absolute():
                        source = manifest_path.resolve().parent / source
                    entry.source = source

                entry.severity_overrides.update(
                    self._parse_overrides(entry_config.get("severity"), name, manifest_path)
                )
                entries[name] = entry

        return list(entries.values())

    # ------------------------------------------------------------------
    def load(
        self,
        identifiers: Sequence[str] | None = None,
        *,
        manifests: Sequence[Path | str] | None = None,
    ) -> List[Catalog]:
        """Load the catalogs named by ``identifiers`` (all enabled ones when empty).

        Identifiers are ``name`` or ``name@version``. Problems from every
        catalog are reported together in one :class:`CatalogError`.
        """

        all_entries = {entry.name: entry for entry in self.entries(manifests)}
        problems: List[CatalogProblem] = []

        if identifiers:
            wanted: List[tuple[CatalogEntry, str | None]] = []
            for identifier in identifiers:
                name, _, version = identifier.partition("@")
                entry = all_entries.get(name)
                if entry is None:
                    problems.append(CatalogProblem(identifier, "no catalog with this name is available"))
                    continue
                wanted.append((entry, version or None))
        else:
            wanted = [(entry, None) for entry in all_entries.values() if entry.enabled]

        catalogs: List[Catalog] = []
        for entry, version in wanted:
            if entry.source is None:
                problems.append(CatalogProblem(entry.name, "catalog entry has no 'source'"))
                continue
            try:
                catalog = load_catalog(entry.source, severity_overrides=entry.severity_overrides)
            except CatalogError as exc:
                problems.extend(exc.problems or [CatalogProblem(entry.name, str(exc))])
                continue
            if version and catalog.version != version:
                problems.append(
                    CatalogProblem(
                        entry.name,
                        f"requested version {version} but {entry.source} provides {catalog.version}",
                    )
                )
                continue
            catalogs.append(catalog)

        if problems:
            raise CatalogError("Catalogs failed to load", problems)

        catalogs.sort(key=lambda catalog: catalog.name)
        return catalogs

    # ------------------------------------------------------------------
    @staticmethod
    def _parse_overrides(raw: Any, name: str, manifest_path: Path) -> Dict[str, Severity]:
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise CatalogError(f"Severity overrides for {name} must be a mapping in {manifest_path}")

        overrides: Dict[str, Severity] = {}
        for rule_id, level in raw.items():
            try:
                overrides[str(rule_id).strip()] = Severity.parse(level)
            except ValueError:
                raise CatalogError(
                    f"Invalid severity override {level!r} for {name}:{rule_id} in {manifest_path}"
                ) from None
        return overrides


__all__ = ["CATALOG_DIR", "CatalogEntry", "CatalogManager"]
