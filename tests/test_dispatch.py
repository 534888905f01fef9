from __future__ import annotations

from typing import Any

from heuristic_review.dispatch import DomainDispatcher
from heuristic_review.extraction import SourceUnitExtractor
from heuristic_review.models import Catalog, SourceUnit
from heuristic_review.rules import load_catalog


def make_catalog(name: str, triggers: list[str], **extra: Any) -> Catalog:
    return load_catalog(
        {
            "catalog": name,
            "version": "1",
            "domain": name,
            "trigger_signatures": triggers,
            "rules": [
                {
                    "id": f"{name}-1",
                    "severity": "info",
                    "predicate": "function_def(*)",
                    "title": "Any function",
                    "remediation_template": "Look at {symbol}.",
                }
            ],
            **extra,
        }
    )


def extract(text: str) -> SourceUnit:
    unit = SourceUnitExtractor().extract("app.py", text)
    assert isinstance(unit, SourceUnit)
    return unit


ASYNC_WEB = make_catalog("async-web", ["async_framework_import"])
RETRIEVAL = make_catalog("retrieval", ["langchain", "chromadb"])
INTERACTIVE = make_catalog("interactive", ["my_ui"], categories={"my_ui": ["streamlit"]})
ALL = [ASYNC_WEB, RETRIEVAL, INTERACTIVE]


def test_selects_catalog_by_import_category() -> None:
    unit = extract("from starlette.applications import Starlette\n")

    assert DomainDispatcher().applicable_catalogs(unit, ALL) == {ASYNC_WEB}


def test_selects_catalog_by_parent_module() -> None:
    unit = extract("from langchain.vectorstores import FAISS\n")

    assert DomainDispatcher().applicable_catalogs(unit, ALL) == {RETRIEVAL}


def test_catalog_defined_category_triggers() -> None:
    unit = extract("import streamlit as st\n")

    assert DomainDispatcher().applicable_catalogs(unit, ALL) == {INTERACTIVE}


def test_mixed_unit_matches_every_applicable_catalog() -> None:
    unit = extract("import fastapi\nimport chromadb\n")

    assert DomainDispatcher().applicable_catalogs(unit, ALL) == {ASYNC_WEB, RETRIEVAL}


def test_no_trigger_means_no_catalog() -> None:
    unit = extract("import os\n")

    assert DomainDispatcher().applicable_catalogs(unit, ALL) == set()


def test_forced_catalog_applies_regardless_of_detection() -> None:
    unit = extract("import os\n")

    assert DomainDispatcher().applicable_catalogs(unit, ALL, force=[RETRIEVAL]) == {RETRIEVAL}
