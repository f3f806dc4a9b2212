"""Run-time construction of parsers from a grammar and its state table."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Optional

from .cpctplus import recoverer as cpctplus_recoverer
from .errors import LexParseError, Node, Nonterm, RecoveryKind, Term
from .lex_api import LexError, Lexeme, NonStreamingLexer, Span
from .parser import ActionFn, Parser, RecovererFactory
from .tables import Grammar, StateTable

__all__ = ["RTParserBuilder"]


def _unit_cost(tidx: int) -> int:
    return 1


def _generic_ptree(
    ridx: int, lexer: NonStreamingLexer, span: Span, args: list, param: Any
) -> Node:
    return Nonterm(ridx, [a if isinstance(a, Node) else Term(a) for a in args])


def _noaction(
    ridx: int, lexer: NonStreamingLexer, span: Span, args: list, param: Any
) -> None:
    return None


def _lex(lexer: NonStreamingLexer) -> tuple[list[Lexeme], Optional[LexError]]:
    lexemes = []
    for item in list(lexer.iter()):
        if isinstance(item, LexError):
            return lexemes, item
        lexemes.append(item)
    return lexemes, None


class RTParserBuilder:
    """Builds and runs parsers at run-time from a ``Grammar`` and a ``StateTable``.

    Recovery defaults to CPCT+ and every token costs 1 to insert or delete.
    """

    def __init__(self, grm: Grammar, stable: StateTable) -> None:
        self.grm = grm
        self.stable = stable
        self._kind = RecoveryKind.CPCTPLUS
        self._term_costs: Callable[[int], int] = _unit_cost

    def recoverer(self, kind: RecoveryKind) -> RTParserBuilder:
        """Set the recovery algorithm used on syntax errors."""
        if not isinstance(kind, RecoveryKind):
            raise TypeError(f"not a recovery kind: {kind!r}")
        self._kind = kind
        return self

    def term_costs(self, f: Callable[[int], int]) -> RTParserBuilder:
        """Set the function giving each token's repair cost (which must be positive)."""
        self._term_costs = f
        return self

    def _factory(self) -> Optional[RecovererFactory]:
        if self._kind is RecoveryKind.CPCTPLUS:
            return cpctplus_recoverer
        return None

    def _run(
        self,
        lexer: NonStreamingLexer,
        lexemes: list[Lexeme],
        actions: Sequence[ActionFn],
        param: Any,
    ) -> tuple[Any, list[LexParseError]]:
        parser = Parser(
            self._factory(),
            self.grm,
            self._term_costs,
            self.stable,
            lexer,
            lexemes,
            actions,
            param,
        )
        pstack = [self.stable.start_state]
        astack: list = []
        errors: list[LexParseError] = []
        spans: list[Span] = []
        value = parser.lr(0, pstack, astack, errors, spans)
        return value, errors

    def parse_generictree(
        self, lexer: NonStreamingLexer
    ) -> tuple[Optional[Node], list[LexParseError]]:
        """Parse the lexer's input into a generic parse tree, if possible."""
        lexemes, lex_error = _lex(lexer)
        if lex_error is not None:
            return None, [lex_error]
        actions = [_generic_ptree] * self.grm.prods_len
        return self._run(lexer, lexemes, actions, None)

    def parse_noaction(self, lexer: NonStreamingLexer) -> list[LexParseError]:
        """Parse the lexer's input, returning only the errors found."""
        lexemes, lex_error = _lex(lexer)
        if lex_error is not None:
            return [lex_error]
        actions = [_noaction] * self.grm.prods_len
        _, errors = self._run(lexer, lexemes, actions, None)
        return errors

    def parse_actions(
        self,
        lexer: NonStreamingLexer,
        actions: Sequence[ActionFn],
        param: Any = None,
    ) -> tuple[Any, list[LexParseError]]:
        """Parse the lexer's input running ``actions[pidx]`` on each reduction.

        Return the start rule's value (or ``None`` if the input could not be
        parsed) and the errors found, in input order. A value and errors may
        both be present.
        """
        lexemes, lex_error = _lex(lexer)
        if lex_error is not None:
            return None, [lex_error]
        if len(actions) != self.grm.prods_len:
            raise ValueError(
                f"{len(actions)} actions given for {self.grm.prods_len} productions"
            )
        return self._run(lexer, lexemes, actions, param)