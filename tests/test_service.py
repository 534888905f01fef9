from __future__ import annotations

import json
import textwrap
import threading
from pathlib import Path

import pytest

from heuristic_review.config import ReviewOptions
from heuristic_review.errors import CatalogError, RunCancelled
from heuristic_review.extraction import SourceUnitExtractor
from heuristic_review.models import RunStatus, Severity
from heuristic_review.rules import CatalogManager
from heuristic_review.service import ReviewService, run

R1_CATALOG = """
catalog: async-web
version: "1.0.0"
domain: async-web
rules:
  - id: R1
    domain: async-web
    severity: fail
    trigger_signature: [async_framework_import]
    predicate: "call_site(blocking_http) within function_is_async(true)"
    title: Blocking HTTP call inside async function
    remediation_template: Replace `{name}` in `{symbol}` with an async client.
"""

SOFT_CATALOG = """
catalog: soft
version: "1"
domain: soft
trigger_signatures: [requests]
rules:
  - id: S1
    severity: warn
    predicate: call_site(blocking_http) without call_arg(blocking_http, timeout)
    title: HTTP request without timeout
    remediation_template: Pass timeout= to {name}.
  - id: S2
    severity: info
    predicate: function_def(*)
    title: Function defined
    remediation_template: Note {symbol}.
"""

BLOCKING = textwrap.dedent(
    """
    import requests
    from fastapi import FastAPI

    app = FastAPI()


    @app.get("/")
    async def index():
        return requests.get("https://example.com")
    """
)

CLEAN = textwrap.dedent(
    """
    import httpx
    from fastapi import FastAPI

    app = FastAPI()


    @app.get("/")
    async def index():
        async with httpx.AsyncClient() as client:
            return await client.get("https://example.com")
    """
)


def write(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


def make_manager(tmp_path: Path, **catalogs: str) -> CatalogManager:
    entries = []
    for name, content in catalogs.items():
        write(tmp_path, f"{name}.yaml", content)
        entries.append({"name": name, "source": f"{name}.yaml"})
    manifest = write(tmp_path, "manifest.json", json.dumps({"catalogs": entries}))
    return CatalogManager(default_manifests=[manifest])


def make_service(tmp_path: Path, **kwargs) -> ReviewService:
    return ReviewService(catalog_manager=make_manager(tmp_path, async_web=R1_CATALOG), **kwargs)


class BlockingExtractor(SourceUnitExtractor):
    """Blocks on files named ``slow*`` until released."""

    def __init__(self, on_block=None) -> None:
        self.release = threading.Event()
        self.on_block = on_block

    def extract(self, path: str, text: str):
        if Path(path).name.startswith("slow"):
            if self.on_block is not None:
                self.on_block()
            self.release.wait(5)
        return super().extract(path, text)


class ExplodingExtractor(SourceUnitExtractor):
    def extract(self, path: str, text: str):
        if Path(path).name == "boom.py":
            raise RuntimeError("extractor exploded")
        return super().extract(path, text)


def test_blocking_call_in_async_function_yields_one_fail_finding(tmp_path: Path) -> None:
    source = write(tmp_path, "app.py", BLOCKING)

    result = run([source], options=ReviewOptions(), service=make_service(tmp_path))

    assert [finding.rule_id for finding in result.report.findings] == ["R1"]
    assert result.report.findings[0].severity is Severity.FAIL
    assert result.status is RunStatus.FAILURE
    assert result.exit_code == 1
    assert json.loads(result.output)["findings"][0]["rule_id"] == "R1"


def test_clean_async_function_yields_no_findings(tmp_path: Path) -> None:
    source = write(tmp_path, "app.py", CLEAN)

    result = run([source], service=make_service(tmp_path))

    assert result.report.findings == ()
    assert result.status is RunStatus.SUCCESS
    assert result.exit_code == 0


def test_warn_and_info_findings_below_fail_threshold_succeed(tmp_path: Path) -> None:
    source = write(tmp_path, "client.py", "import requests\n\ndef fetch():\n    return requests.get('x')\n")
    service = ReviewService(catalog_manager=make_manager(tmp_path, soft=SOFT_CATALOG))

    result = run([source], options=ReviewOptions(fail_on=Severity.FAIL), service=service)

    assert [finding.severity for finding in result.report.findings] == [Severity.WARN, Severity.INFO]
    assert result.status is RunStatus.SUCCESS_WITH_FINDINGS
    assert result.exit_code == 0

    strict = run([source], options=ReviewOptions(fail_on=Severity.WARN), service=service)
    assert strict.status is RunStatus.FAILURE


def test_catalog_error_is_fatal_before_any_file_is_read(tmp_path: Path) -> None:
    broken = R1_CATALOG.replace("function_is_async(true)", "function_is_coroutine(true)")

    class NeverExtract(SourceUnitExtractor):
        def extract(self, path: str, text: str):  # pragma: no cover - must not run
            raise AssertionError("extraction started")

    service = ReviewService(
        catalog_manager=make_manager(tmp_path, async_web=broken), extractor=NeverExtract()
    )

    with pytest.raises(CatalogError) as excinfo:
        service.review([write(tmp_path, "app.py", BLOCKING)])
    assert excinfo.value.rule_ids == ["R1"]


def test_unreadable_and_malformed_files_degrade_to_warnings(tmp_path: Path) -> None:
    good = write(tmp_path, "good.py", BLOCKING)
    broken = write(tmp_path, "broken.py", BLOCKING + "\nasync def oops(:\n")
    missing = tmp_path / "missing.py"

    report = make_service(tmp_path).review([missing, broken, good])

    assert [finding.path for finding in report.findings] == [str(good)]
    kinds = {(Path(warning.path).name, warning.kind) for warning in report.warnings}
    assert kinds == {("missing.py", "extraction"), ("broken.py", "extraction")}
    assert report.files_scanned == 3
    assert report.files_failed == 1


def test_unexpected_worker_error_becomes_warning(tmp_path: Path) -> None:
    good = write(tmp_path, "good.py", BLOCKING)
    boom = write(tmp_path, "boom.py", BLOCKING)

    report = make_service(tmp_path, extractor=ExplodingExtractor()).review([boom, good])

    assert [finding.path for finding in report.findings] == [str(good)]
    assert report.warnings[0].message == "unexpected error: extractor exploded"
    assert report.files_failed == 1


@pytest.mark.parametrize("workers", [1, 2])
def test_timeout_skips_only_the_slow_unit(tmp_path: Path, workers: int) -> None:
    extractor = BlockingExtractor()
    slow = write(tmp_path, "slow.py", BLOCKING)
    fast = write(tmp_path, "fast.py", BLOCKING)

    try:
        report = make_service(tmp_path, extractor=extractor).review(
            [slow, fast], options=ReviewOptions(unit_timeout=0.2, max_workers=workers)
        )
    finally:
        extractor.release.set()

    assert [finding.path for finding in report.findings] == [str(fast)]
    assert [(warning.kind, Path(warning.path).name) for warning in report.warnings] == [("timeout", "slow.py")]
    assert report.files_failed == 1


def test_units_queued_behind_a_hung_unit_still_run(tmp_path: Path) -> None:
    extractor = BlockingExtractor()
    slow = write(tmp_path, "slow.py", BLOCKING)
    queued = [write(tmp_path, f"queued{index}.py", BLOCKING) for index in range(3)]

    try:
        report = make_service(tmp_path, extractor=extractor).review(
            [slow, *queued], options=ReviewOptions(unit_timeout=0.3, max_workers=1)
        )
    finally:
        extractor.release.set()

    assert [finding.path for finding in report.findings] == sorted(str(path) for path in queued)
    assert [Path(warning.path).name for warning in report.warnings] == ["slow.py"]
    assert report.files_scanned == 4
    assert report.files_failed == 1


def test_cancellation_produces_no_report(tmp_path: Path) -> None:
    cancel = threading.Event()
    extractor = BlockingExtractor(on_block=cancel.set)
    slow = write(tmp_path, "slow.py", BLOCKING)

    try:
        with pytest.raises(RunCancelled):
            make_service(tmp_path, extractor=extractor).review([slow], cancel_event=cancel)
    finally:
        extractor.release.set()


def test_cancelled_before_start(tmp_path: Path) -> None:
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(RunCancelled):
        make_service(tmp_path).review([write(tmp_path, "app.py", BLOCKING)], cancel_event=cancel)


def test_forced_catalog_applies_without_trigger(tmp_path: Path) -> None:
    source = write(tmp_path, "plain.py", "import requests\n\nasync def go():\n    requests.get('x')\n")
    service = make_service(tmp_path)

    assert service.review([source]).findings == ()

    forced = service.review([source], options=ReviewOptions(force_catalogs=("async-web@1.0.0",)))
    assert [finding.rule_id for finding in forced.findings] == ["R1"]


def test_reports_are_identical_for_permuted_inputs(tmp_path: Path) -> None:
    paths = [write(tmp_path, f"app{index}.py", BLOCKING) for index in range(4)]
    service = make_service(tmp_path)

    first = run(paths, service=service)
    second = run(list(reversed(paths)), service=service)

    assert first.output == second.output
    assert [finding.path for finding in first.report.findings] == sorted(str(path) for path in paths)


def test_default_catalogs_cover_mixed_unit(tmp_path: Path) -> None:
    source = write(
        tmp_path,
        "mixed.py",
        textwrap.dedent(
            """
            import requests
            from fastapi import FastAPI
            from langchain_community.embeddings import OpenAIEmbeddings

            embeddings = OpenAIEmbeddings()


            async def ingest(docs):
                for doc in docs:
                    embeddings.embed_query(doc)
                return requests.get("https://example.com")
            """
        ),
    )

    report = ReviewService().review([source])

    catalogs = {finding.catalog.split("@")[0] for finding in report.findings}
    assert catalogs == {"async-web", "retrieval-pipeline"}
    assert report.findings[0].severity is Severity.FAIL
