"""Convert raw source text into an immutable :class:`SourceUnit`."""

from __future__ import annotations

import ast
import bisect
import json
import logging
from dataclasses import replace
from pathlib import PurePath
from typing import Iterable, List, Optional

from ..categories import BUILTIN_CATEGORIES, module_matches
from ..models import ALL_SIGNAL_KINDS, ExtractionWarning, Signal, SignalKind, SourceLocation, SourceUnit
from .fallback import FALLBACK_KINDS, collect_fallback_signals
from .python_signals import collect_python_signals

logger = logging.getLogger(__name__)

PYTHON_SUFFIXES = {".py", ".pyi", ".pyw"}
NOTEBOOK_SUFFIXES = {".ipynb"}
SCRIPT_SUFFIXES = {".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"}


class SourceUnitExtractor:
    """Lightweight structural recognition of source files.

    Extraction is a pure function of ``(path, text)``: the extractor keeps no
    state between calls and can be shared by concurrent workers.
    """

    def extract(self, path: str, text: str) -> SourceUnit | ExtractionWarning:
        """Return the unit for ``text``.

        Malformed or unsupported syntax yields a unit with a reduced signal set
        and a recorded warning. Only input that carries no recoverable source
        at all (for example a notebook that is not JSON) yields a bare
        :class:`ExtractionWarning`.
        """

        suffix = PurePath(path).suffix.lower()

        if suffix in NOTEBOOK_SUFFIXES:
            try:
                cells = NotebookCells.parse(text)
            except ValueError as exc:
                logger.warning("Cannot extract notebook %s: %s", path, exc)
                return ExtractionWarning(path=path, message=f"unreadable notebook: {exc}")
            return self._extract_python(path, text, cells.source, language="notebook", cells=cells)

        if suffix in PYTHON_SUFFIXES:
            return self._extract_python(path, text, text, language="python")

        language = "javascript" if suffix in SCRIPT_SUFFIXES else "unknown"
        warning = ExtractionWarning(
            path=path,
            message=f"{language} sources are recognized partially: imports, decorators and definitions only",
        )
        logger.warning("Partial extraction for %s (%s)", path, language)
        return _build_unit(path, text, language, collect_fallback_signals(text), [warning], FALLBACK_KINDS)

    # ------------------------------------------------------------------
    def _extract_python(
        self,
        path: str,
        text: str,
        source: str,
        *,
        language: str,
        cells: Optional["NotebookCells"] = None,
    ) -> SourceUnit:
        try:
            tree = ast.parse(source, filename=path)
        except (SyntaxError, ValueError) as exc:
            line = getattr(exc, "lineno", None)
            where = ""
            if line:
                where = f" at {cells.describe(line)}" if cells else f" at line {line}"
            message = f"syntax error{where}: {getattr(exc, 'msg', None) or exc}; call sites were not extracted"
            logger.warning("Partial extraction for %s: %s", path, message)
            signals = collect_fallback_signals(source)
            if cells:
                signals = cells.relocate(signals)
            return _build_unit(
                path,
                text,
                language,
                signals,
                [ExtractionWarning(path=path, message=message)],
                FALLBACK_KINDS,
            )

        signals = collect_python_signals(tree)
        if cells:
            signals = cells.relocate(signals)
        logger.debug("Extracted %d signals from %s", len(signals), path)
        return _build_unit(path, text, language, signals, [], ALL_SIGNAL_KINDS)


class NotebookCells:
    """Code cells of a notebook joined into one Python source.

    Cells are numbered from one in notebook order, markdown cells included, so
    the numbers match what a reader counts in the notebook.
    """

    def __init__(self, chunks: List[tuple[int, str]]) -> None:
        self._starts: List[int] = []
        self._cells: List[int] = []
        line = 1
        for cell, chunk in chunks:
            self._starts.append(line)
            self._cells.append(cell)
            line += chunk.count("\n") + 1
        self.source = "\n".join(chunk for _, chunk in chunks) + ("\n" if chunks else "")

    @classmethod
    def parse(cls, text: str) -> "NotebookCells":
        try:
            notebook = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"invalid JSON ({exc.msg})") from exc

        cells = notebook.get("cells") if isinstance(notebook, dict) else None
        if not isinstance(cells, list):
            raise ValueError("notebook has no 'cells' list")

        chunks: List[tuple[int, str]] = []
        for number, cell in enumerate(cells, start=1):
            if not isinstance(cell, dict) or str(cell.get("cell_type", "")).lower() != "code":
                continue
            source = cell.get("source")
            if isinstance(source, list):
                source = "".join(str(item) for item in source)
            if isinstance(source, str) and source.strip():
                chunks.append((number, source.rstrip("\n")))
        return cls(chunks)

    def locate(self, line: int) -> SourceLocation:
        """Map a line of the joined source to ``(cell, line within cell)``."""

        index = max(bisect.bisect_right(self._starts, line) - 1, 0)
        if not self._cells:
            return SourceLocation(line)
        return SourceLocation(line - self._starts[index] + 1, cell=self._cells[index])

    def describe(self, line: int) -> str:
        location = self.locate(line)
        return f"cell {location.cell} line {location.line}"

    def relocate(self, signals: Iterable[Signal]) -> List[Signal]:
        relocated: List[Signal] = []
        for signal in signals:
            target = self.locate(signal.location.line)
            relocated.append(replace(signal, location=replace(target, column=signal.location.column)))
        return relocated


def domain_hints(signals: Iterable[Signal]) -> set[str]:
    """Top-level imported modules plus the built-in import categories they belong to."""

    modules = [signal.name for signal in signals if signal.kind is SignalKind.IMPORT_PRESENT]
    hints = {module.split(".")[0] for module in modules if module and not module.startswith(".")}
    for category, members in BUILTIN_CATEGORIES.items():
        if not category.endswith("_import"):
            continue
        if any(module_matches(member, module) for member in members for module in modules):
            hints.add(category)
    return hints


def _build_unit(
    path: str,
    text: str,
    language: str,
    signals: List[Signal],
    warnings: List[ExtractionWarning],
    extracted_kinds: Iterable[SignalKind],
) -> SourceUnit:
    return SourceUnit.build(
        path,
        text,
        language=language,
        domain_hints=domain_hints(signals),
        signals=signals,
        warnings=warnings,
        extracted_kinds=extracted_kinds,
    )


__all__ = ["NotebookCells", "SourceUnitExtractor", "domain_hints"]
