"""Parser for the rule predicate language.

Grammar::

    expr    := or
    or      := and ("or" and)*
    and     := not ("and" not)*
    not     := "not" not | scoped
    scoped  := primary (("within" | "without") primary)*
    primary := SIGNAL "(" [arg ("," arg)*] ")" | "(" expr ")"
    arg     := NAME | STRING | "true" | "false" | "*"

Signal names are checked against :class:`SignalKind` while parsing, so a
predicate that names an unknown signal never reaches the matcher.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from ..errors import PredicateReferenceError, PredicateSyntaxError
from ..models import AllOf, AnyOf, Not, PredicateNode, Scoped, SignalAtom, SignalKind
from ..models.predicate import PredicateArg

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<space>\s+)
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<comma>,)
  | (?P<string>"[^"]*"|'[^']*')
  | (?P<word>[A-Za-z0-9_.*:/@<>\-]+)
    """,
    re.VERBOSE,
)

_KEYWORDS = {"and", "or", "not", "within", "without"}


@dataclass(frozen=True, slots=True)
class _Token:
    type: str
    value: str
    position: int


def _tokenize(text: str) -> List[_Token]:
    tokens: List[_Token] = []
    position = 0
    while position < len(text):
        match = _TOKEN_PATTERN.match(text, position)
        if match is None:
            raise PredicateSyntaxError(
                f"unexpected character {text[position]!r} at offset {position}"
            )
        kind = match.lastgroup or ""
        value = match.group()
        if kind == "word" and value.lower() in _KEYWORDS:
            kind = value.lower()
        if kind != "space":
            tokens.append(_Token(kind, value, position))
        position = match.end()
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self._text = text
        self._tokens = _tokenize(text)
        self._index = 0

    # ------------------------------------------------------------------
    def parse(self) -> PredicateNode:
        if not self._tokens:
            raise PredicateSyntaxError("predicate is empty")
        node = self._parse_or()
        trailing = self._peek()
        if trailing is not None:
            raise PredicateSyntaxError(
                f"unexpected {trailing.value!r} at offset {trailing.position}"
            )
        return node

    # ------------------------------------------------------------------
    def _parse_or(self) -> PredicateNode:
        operands = [self._parse_and()]
        while self._accept("or"):
            operands.append(self._parse_and())
        return operands[0] if len(operands) == 1 else AnyOf(tuple(operands))

    def _parse_and(self) -> PredicateNode:
        operands = [self._parse_not()]
        while self._accept("and"):
            operands.append(self._parse_not())
        return operands[0] if len(operands) == 1 else AllOf(tuple(operands))

    def _parse_not(self) -> PredicateNode:
        if self._accept("not"):
            return Not(self._parse_not())
        return self._parse_scoped()

    def _parse_scoped(self) -> PredicateNode:
        node = self._parse_primary()
        while True:
            token = self._peek()
            if token is None or token.type not in ("within", "without"):
                return node
            self._index += 1
            node = Scoped(left=node, op=token.type, right=self._parse_primary())  # type: ignore[arg-type]

    def _parse_primary(self) -> PredicateNode:
        if self._accept("lparen"):
            node = self._parse_or()
            self._expect("rparen")
            return node

        token = self._expect("word")
        try:
            kind = SignalKind(token.value)
        except ValueError:
            raise PredicateReferenceError(token.value) from None

        self._expect("lparen")
        args: List[PredicateArg] = []
        if not self._accept("rparen"):
            args.append(self._parse_arg())
            while self._accept("comma"):
                args.append(self._parse_arg())
            self._expect("rparen")

        minimum, maximum = kind.arity
        if not minimum <= len(args) <= maximum:
            expected = str(minimum) if minimum == maximum else f"{minimum}-{maximum}"
            raise PredicateSyntaxError(
                f"{kind.value} takes {expected} argument(s), got {len(args)}"
            )
        if kind is not SignalKind.FUNCTION_IS_ASYNC and any(isinstance(arg, bool) for arg in args):
            raise PredicateSyntaxError(f"{kind.value} does not accept boolean arguments")
        return SignalAtom(kind=kind, args=tuple(args))

    def _parse_arg(self) -> PredicateArg:
        token = self._peek()
        if token is None:
            raise PredicateSyntaxError("unexpected end of predicate inside argument list")
        self._index += 1
        if token.type == "string":
            return token.value[1:-1]
        if token.type != "word":
            raise PredicateSyntaxError(
                f"expected argument, got {token.value!r} at offset {token.position}"
            )
        lowered = token.value.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        return token.value

    # ------------------------------------------------------------------
    def _peek(self) -> Optional[_Token]:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def _accept(self, token_type: str) -> bool:
        token = self._peek()
        if token is not None and token.type == token_type:
            self._index += 1
            return True
        return False

    def _expect(self, token_type: str) -> _Token:
        token = self._peek()
        if token is None:
            raise PredicateSyntaxError(f"expected {token_type} but predicate ended")
        if token.type != token_type:
            raise PredicateSyntaxError(
                f"expected {token_type}, got {token.value!r} at offset {token.position}"
            )
        self._index += 1
        return token


def parse_predicate(text: str) -> PredicateNode:
    """Parse ``text`` into a predicate tree.

    Raises :class:`PredicateReferenceError` for unknown signal names and
    :class:`PredicateSyntaxError` for anything else that is malformed.
    """

    return _Parser(text).parse()


__all__ = ["parse_predicate"]
