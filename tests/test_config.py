from __future__ import annotations

from pathlib import Path

import pytest

from heuristic_review.config import ReviewOptions, default_max_workers, load_options
from heuristic_review.errors import ConfigError
from heuristic_review.models import Severity


def test_defaults() -> None:
    options = ReviewOptions()

    assert options.force_catalogs == ()
    assert options.output_format == "structured"
    assert options.fail_on is Severity.FAIL
    assert options.max_workers == default_max_workers()
    assert options.unit_timeout == 10.0
    assert options.max_file_size_bytes == 500_000


def test_values_are_normalized() -> None:
    options = ReviewOptions(force_catalogs="async-web", fail_on="warn")

    assert options.force_catalogs == ("async-web",)
    assert options.fail_on is Severity.WARN


@pytest.mark.parametrize(
    "kwargs",
    [
        {"output_format": "xml"},
        {"fail_on": "critical"},
        {"max_workers": -1},
        {"unit_timeout": 0},
        {"max_file_size_bytes": 1.5},
        {"unit_timeout": True},
    ],
)
def test_invalid_values_raise_config_error(kwargs: dict) -> None:
    with pytest.raises(ConfigError):
        ReviewOptions(**kwargs)


def test_with_overrides_ignores_none() -> None:
    options = ReviewOptions(fail_on="warn").with_overrides(fail_on=None, output_format="human")

    assert options.fail_on is Severity.WARN
    assert options.output_format == "human"


def test_load_options_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "review.yaml"
    path.write_text(
        "force_catalogs: [retrieval-pipeline]\nfail_on: info\nmax_workers: 2\nunit_timeout: 2.5\n",
        encoding="utf-8",
    )

    options = load_options(path)

    assert options.force_catalogs == ("retrieval-pipeline",)
    assert options.fail_on is Severity.INFO
    assert options.max_workers == 2
    assert options.unit_timeout == 2.5


def test_load_options_rejects_unknown_keys_and_bad_documents(tmp_path: Path) -> None:
    unknown = tmp_path / "unknown.yaml"
    unknown.write_text("colour: blue\n", encoding="utf-8")
    not_mapping = tmp_path / "list.yaml"
    not_mapping.write_text("- a\n- b\n", encoding="utf-8")
    broken = tmp_path / "broken.yaml"
    broken.write_text("fail_on: [\n", encoding="utf-8")

    for path in (unknown, not_mapping, broken, tmp_path / "missing.yaml"):
        with pytest.raises(ConfigError):
            load_options(path)
