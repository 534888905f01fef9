"""Orchestration layer used by the CLI to execute a review run."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .aggregation import FindingAggregator
from .config import ReviewOptions
from .dispatch import DomainDispatcher
from .errors import RunCancelled
from .extraction import SourceReader, SourceUnitExtractor
from .matching import PatternMatcher
from .models import Catalog, ExtractionWarning, Match, Report, RunStatus, RunWarning, TimeoutWarning
from .reporting import render
from .rules import CatalogManager

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05


@dataclass(slots=True)
class UnitOutcome:
    """Private result of reviewing one path inside a worker."""

    path: str
    matches: List[Match] = field(default_factory=list)
    warnings: List[RunWarning] = field(default_factory=list)
    failed: bool = False


@dataclass(slots=True)
class _UnitTask:
    """One path queued for review; ``started_at`` is set by the worker."""

    path: str
    future: Optional[Future[UnitOutcome]] = None
    started_at: Optional[float] = None


def _timed(task: _UnitTask, work: Callable[[_UnitTask], UnitOutcome]) -> UnitOutcome:
    task.started_at = time.monotonic()
    return work(task)


@dataclass(slots=True)
class RunResult:
    """Result returned by :func:`run`: the report, its status and rendered output."""

    report: Report
    status: RunStatus
    output: str

    @property
    def exit_code(self) -> int:
        return self.status.exit_code


class ReviewService:
    """High level service responsible for catalog loading, fan-out and aggregation."""

    def __init__(
        self,
        *,
        catalog_manager: CatalogManager | None = None,
        extractor: SourceUnitExtractor | None = None,
        dispatcher: DomainDispatcher | None = None,
        matcher: PatternMatcher | None = None,
        aggregator: FindingAggregator | None = None,
    ) -> None:
        self._catalog_manager = catalog_manager or CatalogManager()
        self._extractor = extractor or SourceUnitExtractor()
        self._dispatcher = dispatcher or DomainDispatcher()
        self._matcher = matcher or PatternMatcher()
        self._aggregator = aggregator or FindingAggregator()

    # ------------------------------------------------------------------
    def review(
        self,
        paths: Sequence[str | PathLike[str]],
        catalogs: Sequence[str] | None = None,
        options: ReviewOptions | None = None,
        *,
        manifests: Sequence[Path | str] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Report:
        """Review ``paths`` and return the aggregated report.

        Catalog problems raise :class:`CatalogError` before any file is read.
        Setting ``cancel_event`` abandons in-flight work and raises
        :class:`RunCancelled`; no partial report is produced.
        """

        options = options or ReviewOptions()
        cancel_event = cancel_event or threading.Event()

        available, forced = self._load_catalogs(catalogs, options.force_catalogs, manifests)
        logger.info(
            "Loaded %d catalog(s): %s",
            len(available),
            ", ".join(catalog.identifier for catalog in available) or "none",
        )

        unique_paths = list(dict.fromkeys(str(path) for path in paths))
        reader = SourceReader(options.max_file_size_bytes)

        self._check_cancelled(cancel_event)
        outcomes = self._fan_out(
            [_UnitTask(path) for path in unique_paths],
            lambda task: self._review_unit(task, reader, available, forced, cancel_event),
            options,
            cancel_event,
        )
        self._check_cancelled(cancel_event)

        matches = [match for outcome in outcomes for match in outcome.matches]
        findings = self._aggregator.aggregate(matches)
        warnings = sorted(
            (warning for outcome in outcomes for warning in outcome.warnings),
            key=lambda warning: (warning.path, warning.kind, warning.message),
        )
        failed = sum(1 for outcome in outcomes if outcome.failed)

        logger.info(
            "Reviewed %d file(s): %d finding(s), %d warning(s), %d failed",
            len(outcomes),
            len(findings),
            len(warnings),
            failed,
        )
        return Report(
            findings=tuple(findings),
            warnings=tuple(warnings),
            catalogs=tuple(catalog.identifier for catalog in available),
            files_scanned=len(outcomes),
            files_failed=failed,
            match_count=len(matches),
        )

    # ------------------------------------------------------------------
    def _load_catalogs(
        self,
        identifiers: Sequence[str] | None,
        force: Sequence[str],
        manifests: Sequence[Path | str] | None,
    ) -> tuple[List[Catalog], List[Catalog]]:
        available = self._catalog_manager.load(identifiers, manifests=manifests)

        forced: List[Catalog] = []
        missing: List[str] = []
        for identifier in force:
            catalog = _find_catalog(available, identifier)
            if catalog is None:
                missing.append(identifier)
            else:
                forced.append(catalog)

        if missing:
            extra = self._catalog_manager.load(missing, manifests=manifests)
            forced.extend(extra)
            available = sorted(set(available) | set(extra), key=lambda catalog: catalog.name)
        return available, forced

    def _fan_out(
        self,
        tasks: List[_UnitTask],
        work: Callable[[_UnitTask], UnitOutcome],
        options: ReviewOptions,
        cancel_event: threading.Event,
    ) -> List[UnitOutcome]:
        """Run ``work`` for every task and wait for all of them.

        A unit's time budget starts when a worker picks it up. A worker stuck
        on an expired unit cannot be reclaimed, so units still queued behind it
        are moved to a fresh pool.
        """

        executors = [self._new_executor(options)]
        for task in tasks:
            task.future = executors[-1].submit(_timed, task, work)

        outcomes: List[UnitOutcome] = []
        pending = list(tasks)
        try:
            while pending:
                self._check_cancelled(cancel_event)
                wait([task.future for task in pending], timeout=POLL_INTERVAL, return_when=FIRST_COMPLETED)
                now = time.monotonic()
                waiting: List[_UnitTask] = []
                expired = False
                for task in pending:
                    if task.future.done():
                        outcomes.append(self._outcome(task))
                    elif task.started_at is not None and now - task.started_at >= options.unit_timeout:
                        outcomes.append(self._timed_out(task, options.unit_timeout))
                        expired = True
                    else:
                        waiting.append(task)
                pending = waiting

                if expired and pending:
                    executors.append(self._new_executor(options))
                    for task in pending:
                        if task.future.cancel():
                            task.future = executors[-1].submit(_timed, task, work)
        finally:
            for executor in executors:
                executor.shutdown(wait=False, cancel_futures=True)
        return outcomes

    @staticmethod
    def _new_executor(options: ReviewOptions) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=options.max_workers, thread_name_prefix="review")

    def _review_unit(
        self,
        task: _UnitTask,
        reader: SourceReader,
        available: Sequence[Catalog],
        forced: Sequence[Catalog],
        cancel_event: threading.Event,
    ) -> UnitOutcome:
        path = task.path
        text = reader.read(path)
        if isinstance(text, ExtractionWarning):
            return UnitOutcome(path, warnings=[text], failed=True)

        unit = self._extractor.extract(path, text)
        if isinstance(unit, ExtractionWarning):
            return UnitOutcome(path, warnings=[unit], failed=True)

        outcome = UnitOutcome(path, warnings=list(unit.warnings))
        selected = self._dispatcher.applicable_catalogs(unit, available, forced)
        for catalog in sorted(selected, key=lambda catalog: catalog.name):
            if cancel_event.is_set():
                break
            outcome.matches.extend(self._matcher.match(unit, catalog))
        return outcome

    @staticmethod
    def _outcome(task: _UnitTask) -> UnitOutcome:
        try:
            return task.future.result()
        except Exception as exc:
            logger.exception("Unexpected error while reviewing %s", task.path)
            return UnitOutcome(
                task.path,
                warnings=[ExtractionWarning(path=task.path, message=f"unexpected error: {exc}")],
                failed=True,
            )

    @staticmethod
    def _timed_out(task: _UnitTask, timeout: float) -> UnitOutcome:
        logger.warning("Review of %s exceeded %.1fs; skipping", task.path, timeout)
        return UnitOutcome(
            task.path,
            warnings=[TimeoutWarning(path=task.path, message=f"review exceeded {timeout:g}s")],
            failed=True,
        )

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event) -> None:
        if cancel_event.is_set():
            logger.warning("Review run cancelled; discarding in-flight work")
            raise RunCancelled("Review run was cancelled before a report was produced")


def _find_catalog(catalogs: Sequence[Catalog], identifier: str) -> Catalog | None:
    name, _, version = identifier.partition("@")
    for catalog in catalogs:
        if catalog.name == name and (not version or catalog.version == version):
            return catalog
    return None


def run(
    paths: Sequence[str | PathLike[str]],
    catalogs: Sequence[str] | None = None,
    options: ReviewOptions | None = None,
    *,
    manifests: Sequence[Path | str] | None = None,
    cancel_event: threading.Event | None = None,
    service: ReviewService | None = None,
) -> RunResult:
    """Review ``paths`` and render the report in ``options.output_format``.

    Fatal errors (:class:`CatalogError`, :class:`RunCancelled`) propagate.
    """

    options = options or ReviewOptions()
    service = service or ReviewService()
    report = service.review(paths, catalogs, options, manifests=manifests, cancel_event=cancel_event)
    status = report.status(options.fail_on)
    return RunResult(report=report, status=status, output=render(report, options.output_format))


__all__ = ["ReviewService", "RunResult", "UnitOutcome", "run"]
