"""AST walker that turns Python source into structural signals."""

from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from ..models import MODULE_SYMBOL, Signal, SignalKind, SourceLocation

_LOOP_COMPREHENSIONS = (ast.ListComp, ast.SetComp, ast.DictComp, ast.GeneratorExp)


@dataclass(slots=True)
class _Frame:
    symbol: str
    loop_depth: int = 0


def collect_python_signals(tree: ast.AST) -> List[Signal]:
    """Return every signal found in a parsed module."""

    collector = _SignalCollector(_import_aliases(tree))
    collector.visit(tree)
    return collector.signals


def _import_aliases(tree: ast.AST) -> Dict[str, str]:
    aliases: Dict[str, str] = {}
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    aliases[alias.asname] = alias.name
                else:
                    root = alias.name.split(".")[0]
                    aliases[root] = root
        elif isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
            for alias in node.names:
                if alias.name == "*":
                    continue
                aliases[alias.asname or alias.name] = f"{node.module}.{alias.name}"
    return aliases


def _dotted_parts(node: ast.AST) -> Optional[List[str]]:
    parts: List[str] = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if isinstance(node, ast.Name):
        parts.append(node.id)
        return list(reversed(parts))
    if parts:
        # Rooted in a call or subscript: only the attribute chain is meaningful.
        return list(reversed(parts))
    return None


class _SignalCollector(ast.NodeVisitor):
    def __init__(self, aliases: Dict[str, str]) -> None:
        self._aliases = aliases
        self._frames: List[_Frame] = [_Frame(MODULE_SYMBOL)]
        self._awaited: Set[int] = set()
        self.signals: List[Signal] = []

    # Naming -------------------------------------------------------------------
    @property
    def _frame(self) -> _Frame:
        return self._frames[-1]

    def _qualify(self, name: str) -> str:
        parent = self._frame.symbol
        return name if parent == MODULE_SYMBOL else f"{parent}.{name}"

    def _names(self, node: ast.AST) -> Optional[tuple[str, str]]:
        parts = _dotted_parts(node)
        if not parts:
            return None
        raw = ".".join(parts)
        target = self._aliases.get(parts[0])
        resolved = ".".join([target, *parts[1:]]) if target else raw
        return resolved, raw

    def _emit(
        self,
        kind: SignalKind,
        name: str,
        node: ast.AST,
        *,
        raw: str = "",
        symbol: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> None:
        self.signals.append(
            Signal(
                kind=kind,
                name=name,
                location=SourceLocation(getattr(node, "lineno", 1), getattr(node, "col_offset", 0)),
                symbol=symbol or self._frame.symbol,
                raw=raw or name,
                detail=detail,
            )
        )

    # Imports ------------------------------------------------------------------
    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self._emit(SignalKind.IMPORT_PRESENT, alias.name, node)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        module = "." * node.level + (node.module or "")
        if module:
            self._emit(SignalKind.IMPORT_PRESENT, module, node)

    # Definitions ----------------------------------------------------------------
    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._visit_function(node, is_async=False)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._visit_function(node, is_async=True)

    def _visit_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef, *, is_async: bool) -> None:
        symbol = self._qualify(node.name)
        self._emit(SignalKind.FUNCTION_DEF, symbol, node, raw=node.name, symbol=symbol)
        self._emit(
            SignalKind.FUNCTION_IS_ASYNC,
            symbol,
            node,
            raw=node.name,
            symbol=symbol,
            detail="true" if is_async else "false",
        )
        self._visit_decorators(node.decorator_list, symbol)
        for default in [*node.args.defaults, *node.args.kw_defaults]:
            if default is not None:
                self.visit(default)

        self._frames.append(_Frame(symbol))
        try:
            for statement in node.body:
                self.visit(statement)
        finally:
            self._frames.pop()

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        symbol = self._qualify(node.name)
        self._visit_decorators(node.decorator_list, symbol)
        for base in node.bases:
            self.visit(base)

        self._frames.append(_Frame(symbol))
        try:
            for statement in node.body:
                self.visit(statement)
        finally:
            self._frames.pop()

    def _visit_decorators(self, decorators: List[ast.expr], symbol: str) -> None:
        for decorator in decorators:
            target = decorator.func if isinstance(decorator, ast.Call) else decorator
            names = self._names(target)
            if names is None:
                self.visit(decorator)
                continue
            resolved, raw = names
            self._emit(SignalKind.DECORATOR_PRESENT, resolved, decorator, raw=raw, symbol=symbol)
            if isinstance(decorator, ast.Call):
                for keyword in decorator.keywords:
                    if keyword.arg:
                        self._emit(
                            SignalKind.DECORATOR_ARG,
                            resolved,
                            decorator,
                            raw=raw,
                            symbol=symbol,
                            detail=keyword.arg,
                        )
                    self.visit(keyword.value)
                for arg in decorator.args:
                    self.visit(arg)

    # Loops -------------------------------------------------------------------
    def visit_For(self, node: ast.For | ast.AsyncFor) -> None:
        self.visit(node.target)
        self.visit(node.iter)
        self._in_loop(node.body)
        for statement in node.orelse:
            self.visit(statement)

    visit_AsyncFor = visit_For

    def visit_While(self, node: ast.While) -> None:
        self._in_loop([node.test, *node.body])
        for statement in node.orelse:
            self.visit(statement)

    def _visit_comprehension(self, node: ast.AST) -> None:
        generators = getattr(node, "generators", [])
        if generators:
            self.visit(generators[0].iter)
        inner: List[ast.AST] = []
        for index, generator in enumerate(generators):
            if index:
                inner.append(generator.iter)
            inner.extend(generator.ifs)
        for attribute in ("elt", "key", "value"):
            child = getattr(node, attribute, None)
            if child is not None:
                inner.append(child)
        self._in_loop(inner)

    visit_ListComp = _visit_comprehension
    visit_SetComp = _visit_comprehension
    visit_DictComp = _visit_comprehension
    visit_GeneratorExp = _visit_comprehension

    def _in_loop(self, nodes: List[ast.AST]) -> None:
        self._frame.loop_depth += 1
        try:
            for child in nodes:
                self.visit(child)
        finally:
            self._frame.loop_depth -= 1

    # Calls -------------------------------------------------------------------
    def visit_Await(self, node: ast.Await) -> None:
        if isinstance(node.value, ast.Call):
            self._awaited.add(id(node.value))
        self.generic_visit(node)

    def visit_Call(self, node: ast.Call) -> None:
        names = self._names(node.func)
        if names is not None:
            resolved, raw = names
            self._emit(SignalKind.CALL_SITE, resolved, node, raw=raw)
            for keyword in node.keywords:
                if keyword.arg:
                    self._emit(SignalKind.CALL_ARG, resolved, node, raw=raw, detail=keyword.arg)
            if self._frame.loop_depth > 0:
                self._emit(SignalKind.CALL_IN_LOOP, resolved, node, raw=raw)
            if id(node) in self._awaited:
                self._emit(SignalKind.CALL_AWAITED, resolved, node, raw=raw)
        self.generic_visit(node)


__all__ = ["collect_python_signals"]
