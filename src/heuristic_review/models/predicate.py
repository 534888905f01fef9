"""Parsed predicate expression tree."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

from .source_unit import SignalKind

PredicateArg = Union[str, bool]


@dataclass(frozen=True, slots=True)
class SignalAtom:
    kind: SignalKind
    args: tuple[PredicateArg, ...] = ()

    def __str__(self) -> str:
        rendered = ", ".join(_render_arg(arg) for arg in self.args)
        return f"{self.kind.value}({rendered})"


@dataclass(frozen=True, slots=True)
class Scoped:
    """``left within right`` or ``left without right``."""

    left: "PredicateNode"
    op: Literal["within", "without"]
    right: "PredicateNode"

    def __str__(self) -> str:
        return f"({self.left} {self.op} {self.right})"


@dataclass(frozen=True, slots=True)
class AllOf:
    operands: tuple["PredicateNode", ...]

    def __str__(self) -> str:
        return "(" + " and ".join(str(operand) for operand in self.operands) + ")"


@dataclass(frozen=True, slots=True)
class AnyOf:
    operands: tuple["PredicateNode", ...]

    def __str__(self) -> str:
        return "(" + " or ".join(str(operand) for operand in self.operands) + ")"


@dataclass(frozen=True, slots=True)
class Not:
    operand: "PredicateNode"

    def __str__(self) -> str:
        return f"not {self.operand}"


PredicateNode = Union[SignalAtom, Scoped, AllOf, AnyOf, Not]


def _render_arg(arg: PredicateArg) -> str:
    if isinstance(arg, bool):
        return "true" if arg else "false"
    return arg
