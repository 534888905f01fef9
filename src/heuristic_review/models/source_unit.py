"""Source unit and signal models produced by the extractor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional

MODULE_SYMBOL = "<module>"


class SignalKind(str, Enum):
    """Closed vocabulary of structural facts a rule predicate may query."""

    IMPORT_PRESENT = "import_present"
    DECORATOR_PRESENT = "decorator_present"
    DECORATOR_ARG = "decorator_arg"
    FUNCTION_DEF = "function_def"
    FUNCTION_IS_ASYNC = "function_is_async"
    CALL_SITE = "call_site"
    CALL_ARG = "call_arg"
    CALL_IN_LOOP = "call_in_loop"
    CALL_AWAITED = "call_awaited"

    @property
    def arity(self) -> tuple[int, int]:
        """Return the ``(min, max)`` number of predicate arguments."""

        return _ARITY[self]

    @property
    def is_call_level(self) -> bool:
        return self in _CALL_LEVEL


_ARITY = {
    SignalKind.IMPORT_PRESENT: (1, 1),
    SignalKind.DECORATOR_PRESENT: (1, 1),
    SignalKind.DECORATOR_ARG: (2, 2),
    SignalKind.FUNCTION_DEF: (1, 1),
    SignalKind.FUNCTION_IS_ASYNC: (0, 1),
    SignalKind.CALL_SITE: (1, 1),
    SignalKind.CALL_ARG: (2, 2),
    SignalKind.CALL_IN_LOOP: (1, 1),
    SignalKind.CALL_AWAITED: (1, 1),
}

_CALL_LEVEL = frozenset(
    {
        SignalKind.CALL_SITE,
        SignalKind.CALL_ARG,
        SignalKind.CALL_IN_LOOP,
        SignalKind.CALL_AWAITED,
    }
)

ALL_SIGNAL_KINDS = frozenset(SignalKind)


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """One-based line and zero-based column inside a source unit.

    Notebook locations also carry the one-based position of the cell in the
    notebook, and ``line`` then counts from the start of that cell.
    """

    line: int
    column: int = 0
    cell: Optional[int] = None

    @property
    def sort_key(self) -> tuple[int, int, int]:
        return (self.cell or 0, self.line, self.column)

    def __str__(self) -> str:
        if self.cell is not None:
            return f"cell{self.cell}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True, slots=True)
class Signal:
    """A typed structural fact pulled from a source unit.

    ``name`` is the alias-resolved dotted name while ``raw`` is the name as
    written. ``symbol`` is the qualified function or class the fact belongs
    to. ``detail`` holds the keyword name for ``*_arg`` signals and
    ``"true"``/``"false"`` for ``function_is_async``.
    """

    kind: SignalKind
    name: str
    location: SourceLocation
    symbol: str = MODULE_SYMBOL
    raw: str = ""
    detail: Optional[str] = None

    @property
    def sort_key(self) -> tuple:
        return (
            *self.location.sort_key,
            self.kind.value,
            self.name,
            self.detail or "",
            self.symbol,
            self.raw,
        )

    def describe(self) -> str:
        text = f"{self.kind.value}({self.name}"
        if self.detail is not None:
            text += f", {self.detail}"
        return f"{text}) @ {self.location}"


@dataclass(frozen=True)
class RunWarning:
    """Non-fatal condition recorded in a report's metadata."""

    path: str
    message: str

    kind: str = "warning"

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "path": self.path, "message": self.message}


@dataclass(frozen=True)
class ExtractionWarning(RunWarning):
    """A unit could not be fully structurally recognized."""

    kind: str = "extraction"


@dataclass(frozen=True)
class TimeoutWarning(RunWarning):
    """A bounded-time operation on a unit exceeded its budget."""

    kind: str = "timeout"


@dataclass(frozen=True, slots=True)
class SourceUnit:
    """One analyzed file: raw text, domain hints and the extracted signals.

    ``extracted_kinds`` names the signal kinds extraction was able to look
    for. The absence of a kind outside that set says nothing about the file.
    """

    path: str
    text: str
    language: str = "python"
    domain_hints: frozenset[str] = field(default_factory=frozenset)
    signals: tuple[Signal, ...] = ()
    warnings: tuple[ExtractionWarning, ...] = ()
    extracted_kinds: frozenset[SignalKind] = ALL_SIGNAL_KINDS

    @property
    def is_partial(self) -> bool:
        """Return ``True`` when extraction only recovered part of the signal set."""

        return bool(self.warnings)

    def signals_of(self, kind: SignalKind) -> Iterator[Signal]:
        return (signal for signal in self.signals if signal.kind is kind)

    def imported_modules(self) -> list[str]:
        return sorted({signal.name for signal in self.signals_of(SignalKind.IMPORT_PRESENT)})

    @classmethod
    def build(
        cls,
        path: str,
        text: str,
        *,
        language: str,
        domain_hints: Iterable[str],
        signals: Iterable[Signal],
        warnings: Iterable[ExtractionWarning] = (),
        extracted_kinds: Iterable[SignalKind] = ALL_SIGNAL_KINDS,
    ) -> "SourceUnit":
        ordered = tuple(sorted(set(signals), key=lambda signal: signal.sort_key))
        return cls(
            path=path,
            text=text,
            language=language,
            domain_hints=frozenset(domain_hints),
            signals=ordered,
            warnings=tuple(warnings),
            extracted_kinds=frozenset(extracted_kinds),
        )
