"""Parse trees, repairs, parse errors and their pretty-printing."""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional, Union

from .lex_api import LexError, Lexeme, NonStreamingLexer

__all__ = [
    "RecoveryKind",
    "Node",
    "Term",
    "Nonterm",
    "InsertRepair",
    "DeleteRepair",
    "ShiftRepair",
    "ParseRepair",
    "ParseError",
    "LexParseError",
    "pp_error",
]


class RecoveryKind(enum.Enum):
    """Which recovery algorithm to use when a syntax error is encountered."""

    CPCTPLUS = "CPCTPlus"
    NONE = "None"


class Node:
    """A node in a generic parse tree."""

    def pp(self, grm, input: str) -> str:
        """Return an indented, one-node-per-line rendering of this tree."""
        lines = []
        stack: list[tuple[int, Node]] = [(0, self)]
        while stack:
            indent, node = stack.pop()
            pad = " " * indent
            if isinstance(node, Term):
                lexeme = node.lexeme
                span = lexeme.span()
                name = grm.token_name(lexeme.tok_id)
                lines.append(f"{pad}{name} {input[span.start:span.end]}\n")
            else:
                lines.append(f"{pad}{grm.rule_name(node.ridx)}\n")
                stack.extend((indent + 1, child) for child in reversed(node.nodes))
        return "".join(lines)


@dataclass(frozen=True)
class Term(Node):
    """A terminal holding a single lexeme."""

    lexeme: Lexeme


@dataclass
class Nonterm(Node):
    """A nonterminal for rule ``ridx`` with zero or more children."""

    ridx: int
    nodes: list[Node] = field(default_factory=list)


@dataclass(frozen=True)
class InsertRepair:
    """Insert a token with index ``tidx``."""

    tidx: int


@dataclass(frozen=True)
class DeleteRepair:
    """Delete ``lexeme``."""

    lexeme: Lexeme


@dataclass(frozen=True)
class ShiftRepair:
    """Shift ``lexeme``."""

    lexeme: Lexeme


ParseRepair = Union[InsertRepair, DeleteRepair, ShiftRepair]


class ParseError(Exception):
    """A syntax error at ``lexeme`` in state ``stidx``, with the repairs found for it."""

    def __init__(
        self, stidx: int, lexeme: Lexeme, repairs: list[list[ParseRepair]]
    ) -> None:
        super().__init__(stidx, lexeme, repairs)
        self.stidx = stidx
        self.lexeme = lexeme
        self.repairs = repairs

    def __str__(self) -> str:
        return f"Parse error at lexeme {self.lexeme!r}"

    def __repr__(self) -> str:
        return f"ParseError({self.stidx!r}, {self.lexeme!r}, {self.repairs!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParseError):
            return NotImplemented
        return (self.stidx, self.lexeme, self.repairs) == (
            other.stidx,
            other.lexeme,
            other.repairs,
        )

    __hash__ = None  # type: ignore[assignment]


LexParseError = Union[LexError, ParseError]


def _pp_repair(
    repair: ParseRepair,
    lexer: NonStreamingLexer,
    epp: Callable[[int], Optional[str]],
) -> str:
    if isinstance(repair, InsertRepair):
        name = epp(repair.tidx)
        if name is None:
            raise ValueError(f"token {repair.tidx} has no pretty-printed value")
        return f"Insert {name}"
    text = lexer.span_str(repair.lexeme.span()).replace("\n", "\\n")
    verb = "Delete" if isinstance(repair, DeleteRepair) else "Shift"
    return f"{verb} {text}"


def pp_error(
    error: LexParseError,
    lexer: NonStreamingLexer,
    epp: Callable[[int], Optional[str]],
) -> str:
    """Render a lexing or parsing error, with any repair sequences, for users."""
    if isinstance(error, LexError):
        (line, col), _ = lexer.line_col(error.span)
        return f"Lexing error at line {line} column {col}."
    if not isinstance(error, ParseError):
        raise TypeError(f"cannot pretty-print {type(error).__name__}")
    (line, col), _ = lexer.line_col(error.lexeme.span())
    out = [f"Parsing error at line {line} column {col}."]
    if not error.repairs:
        out.append(" No repair sequences found.")
        return "".join(out)
    out.append(" Repair sequences found:")
    width = len(str(len(error.repairs)))
    for num, seq in enumerate(error.repairs, start=1):
        padding = " " * (width - len(str(num)) + 1)
        body = ", ".join(_pp_repair(r, lexer, epp) for r in seq)
        out.append(f"\n  {padding}{num}: {body}")
    return "".join(out)