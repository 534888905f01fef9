"""Line-based recovery of a reduced signal set when a file cannot be parsed.

Only the kinds in ``FALLBACK_KINDS`` are recovered: imports, decorator names
and function definitions. Call sites and arguments are never guessed from
text, so a unit built here cannot prove their absence either.
"""

from __future__ import annotations

import re
from typing import List, Optional

from ..models import MODULE_SYMBOL, Signal, SignalKind, SourceLocation

_IMPORT_PATTERNS = [
    re.compile(r"^\s*import\s+.*?\bfrom\s+['\"](?P<module>[^'\"]+)['\"]"),
    re.compile(r"\brequire\(\s*['\"](?P<module>[^'\"]+)['\"]\s*\)"),
    re.compile(r"^\s*import\s+(?P<module>[\w.]+)"),
    re.compile(r"^\s*from\s+(?P<module>[\w.]+)\s+import\b"),
]

FALLBACK_KINDS = frozenset(
    {
        SignalKind.IMPORT_PRESENT,
        SignalKind.DECORATOR_PRESENT,
        SignalKind.FUNCTION_DEF,
        SignalKind.FUNCTION_IS_ASYNC,
    }
)

_DECORATOR_PATTERN = re.compile(r"^\s*@(?P<name>[\w.]+)")

_FUNCTION_PATTERNS = [
    re.compile(r"^(?P<indent>\s*)(?P<async>async\s+)?def\s+(?P<name>\w+)\s*\("),
    re.compile(r"^(?P<indent>\s*)(?:export\s+)?(?P<async>async\s+)?function\s*\*?\s*(?P<name>\w+)\s*\("),
]


def collect_fallback_signals(text: str) -> List[Signal]:
    signals: List[Signal] = []
    pending_decorators: List[tuple[str, SourceLocation]] = []

    for line_number, line in enumerate(text.splitlines(), start=1):
        for pattern in _IMPORT_PATTERNS:
            match = pattern.search(line)
            if match:
                module = match.group("module")
                signals.append(
                    Signal(
                        kind=SignalKind.IMPORT_PRESENT,
                        name=module,
                        location=SourceLocation(line_number, match.start("module")),
                        raw=module,
                    )
                )
                break

        decorator = _DECORATOR_PATTERN.match(line)
        if decorator:
            pending_decorators.append(
                (decorator.group("name"), SourceLocation(line_number, decorator.start("name") - 1))
            )
            continue

        definition = _match_function(line)
        if definition is None:
            continue

        name, is_async, column = definition
        location = SourceLocation(line_number, column)
        signals.append(Signal(SignalKind.FUNCTION_DEF, name, location, symbol=name, raw=name))
        signals.append(
            Signal(
                SignalKind.FUNCTION_IS_ASYNC,
                name,
                location,
                symbol=name,
                raw=name,
                detail="true" if is_async else "false",
            )
        )
        for decorator_name, decorator_location in pending_decorators:
            signals.append(
                Signal(
                    SignalKind.DECORATOR_PRESENT,
                    decorator_name,
                    decorator_location,
                    symbol=name,
                    raw=decorator_name,
                )
            )
        pending_decorators = []

    for decorator_name, decorator_location in pending_decorators:
        signals.append(
            Signal(
                SignalKind.DECORATOR_PRESENT,
                decorator_name,
                decorator_location,
                symbol=MODULE_SYMBOL,
                raw=decorator_name,
            )
        )

    return signals


def _match_function(line: str) -> Optional[tuple[str, bool, int]]:
    for pattern in _FUNCTION_PATTERNS:
        match = pattern.match(line)
        if match:
            return match.group("name"), bool(match.group("async")), len(match.group("indent"))
    return None


__all__ = ["FALLBACK_KINDS", "collect_fallback_signals"]
