import json
from pathlib import Path

import pytest

from heuristic_review.errors import CatalogError
from heuristic_review.models import Severity
from heuristic_review.rules import CatalogManager

CATALOG = """
catalog: {name}
version: "{version}"
domain: {name}
trigger_signatures: [fastapi]
rules:
  - id: X001
    severity: warn
    predicate: call_site(requests.get)
    title: Plain request
    remediation_template: Wrap {{name}}.
"""


def write_manifest(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


def write_catalog(tmp_path: Path, name: str, version: str = "1.0") -> Path:
    path = tmp_path / f"{name}.yaml"
    path.write_text(CATALOG.format(name=name, version=version), encoding="utf-8")
    return path


def test_merges_default_and_override_manifests(tmp_path: Path):
    write_catalog(tmp_path, "alpha")
    write_catalog(tmp_path, "beta")
    default_manifest = write_manifest(
        tmp_path,
        "defaults.yaml",
        json.dumps(
            {
                "catalogs": [
                    {"name": "alpha", "source": "alpha.yaml", "severity": {"X001": "info"}},
                    {"name": "beta", "source": "beta.yaml"},
                ]
            },
            indent=2,
        ),
    )
    override_manifest = write_manifest(
        tmp_path,
        "override.yaml",
        json.dumps(
            {
                "catalogs": [
                    {"name": "alpha", "severity": {"X001": "fail"}},
                    {"name": "beta", "enabled": False},
                ]
            }
        ),
    )

    manager = CatalogManager(default_manifests=[default_manifest])
    entries = {entry.name: entry for entry in manager.entries([override_manifest])}

    assert entries["alpha"].source == (tmp_path / "alpha.yaml").resolve()
    assert entries["alpha"].severity_overrides == {"X001": Severity.FAIL}
    assert entries["beta"].enabled is False

    catalogs = manager.load(manifests=[override_manifest])
    assert [catalog.identifier for catalog in catalogs] == ["alpha@1.0"]
    assert catalogs[0].rule("X001").severity is Severity.FAIL


def test_load_by_identifier_and_version(tmp_path: Path):
    write_catalog(tmp_path, "alpha", version="2.1")
    manifest = write_manifest(tmp_path, "m.yaml", "catalogs:\n  - name: alpha\n    source: alpha.yaml\n")
    manager = CatalogManager(default_manifests=[manifest])

    assert [catalog.identifier for catalog in manager.load(["alpha@2.1"])] == ["alpha@2.1"]

    with pytest.raises(CatalogError) as excinfo:
        manager.load(["alpha@1.0", "gamma"])
    sources = [problem.source for problem in excinfo.value.problems]
    assert sources == ["gamma", "alpha"]


def test_problems_from_every_catalog_are_aggregated(tmp_path: Path):
    (tmp_path / "bad.yaml").write_text(
        "catalog: bad\nversion: '1'\ndomain: bad\nrules:\n  - id: B1\n    severity: fatal\n"
        "    predicate: nope(x)\n    title: t\n    remediation_template: r\n",
        encoding="utf-8",
    )
    manifest = write_manifest(
        tmp_path,
        "m.yaml",
        "catalogs:\n  - name: bad\n    source: bad.yaml\n  - name: ghost\n",
    )

    with pytest.raises(CatalogError) as excinfo:
        CatalogManager(default_manifests=[manifest]).load()

    assert excinfo.value.rule_ids == ["B1", "B1"]
    assert any("no 'source'" in problem.message for problem in excinfo.value.problems)


def test_default_manifest_loaded():
    catalogs = CatalogManager().load()

    names = [catalog.name for catalog in catalogs]
    assert names == ["async-web", "interactive-app", "retrieval-pipeline"]


def test_invalid_override_severity_raises(tmp_path: Path):
    manifest = write_manifest(
        tmp_path, "m.yaml", "catalogs:\n  - name: alpha\n    severity:\n      X001: critical\n"
    )

    with pytest.raises(CatalogError):
        CatalogManager(default_manifests=[manifest]).entries()


def test_missing_manifest_raises(tmp_path: Path):
    manager = CatalogManager()
    with pytest.raises(CatalogError):
        manager.load(manifests=[tmp_path / "missing.yaml"])
