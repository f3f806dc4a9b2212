"""The CPCT+ error recovery algorithm."""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Optional

from .dijkstra import dijkstra
from .errors import DeleteRepair, InsertRepair, ParseRepair, ShiftRepair
from .lex_api import Lexeme, Span
from .parser import Cactus, Parser
from .repairs import (
    TERMINATOR,
    Repair,
    RepairKind,
    RepairMerge,
    PathFNode,
    apply_repairs,
    ends_with_parse_at_least_shifts,
    rank_cnds,
    simplify_repairs,
)
from .tables import Accept

__all__ = ["MAX_COST", "CPCTPlus", "recoverer"]

# Search costs are bounded so that a runaway search fails loudly.
MAX_COST = 0xFFFF


def _add_cost(cf: int, cost: int) -> int:
    total = cf + cost
    if total > MAX_COST:
        raise OverflowError(f"repair cost {total} exceeds {MAX_COST}")
    return total


def _traverse(rm: Cactus) -> list[list[Repair]]:
    """Expand a (possibly merged) repair cactus into every repair sequence it holds."""
    top = rm.val()
    if top is None or top.is_terminator:
        return []
    parents = _traverse(rm.parent())
    if parents:
        out = [seq + [top.repair] for seq in parents]
    else:
        out = [[top.repair]]
    if top.merges is not None:
        for alternative in top.merges.vals():
            out.extend(_traverse(alternative))
    return out


class CPCTPlus:
    """Finds minimal-cost repair sequences for a syntax error.

    A minor variant of Corchuelo et al.'s algorithm: shifts are generated one at a
    time, and a node succeeds once it has shifted enough symbols in a row or reached
    an accept state. The search runs over cactus stacks without building values;
    the chosen repair sequence is then replayed on the real stacks.
    """

    def __init__(self, parser: Parser) -> None:
        self.parser = parser

    def recover(
        self,
        finish_by: float,
        parser: Parser,
        in_laidx: int,
        in_pstack: list[int],
        astack: list,
        spans: list[Span],
    ) -> tuple[int, list[list[ParseRepair]]]:
        """Search for repairs at ``in_laidx``, apply the best one, and return the new
        position with all the repair sequences found (best first).

        ``finish_by`` is a ``time.monotonic()`` deadline. If no repairs are found,
        the stacks are left untouched and the sequence list is empty.
        """
        start_pstack: Cactus = Cactus()
        for st in in_pstack:
            start_pstack = start_pstack.child(st)
        start_node = PathFNode(start_pstack, in_laidx, Cactus().child(TERMINATOR), 0)

        def neighbours(explore_all: bool, n: PathFNode) -> Optional[list]:
            if time.monotonic() >= finish_by:
                return None
            nbrs: list[tuple[int, PathFNode]] = []
            last = n.last_repair()
            # Following Corchuelo et al., deletes are never followed by inserts.
            if explore_all and not (last is not None and last.kind is RepairKind.DELETE):
                self._insert(n, nbrs)
            if explore_all:
                self._delete(n, nbrs)
            self._shift(n, nbrs)
            return nbrs

        def merge(old: PathFNode, new: PathFNode) -> None:
            if old.repairs == new.repairs:
                return
            top = old.repairs.val()
            if top is None or top.is_terminator:
                raise ValueError("cannot merge into a node with no repairs")
            if top.merges is None:
                merged = RepairMerge.merged(top.repair, Cactus().child(new.repairs))
            else:
                merged = RepairMerge.merged(top.repair, top.merges.child(new.repairs))
            old.repairs = old.repairs.parent().child(merged)

        def success(n: PathFNode) -> bool:
            if ends_with_parse_at_least_shifts(n.repairs):
                return True
            action = parser.stable.action(n.pstack.val(), parser.next_tidx(n.laidx))
            return isinstance(action, Accept)

        cnds = dijkstra(start_node, neighbours, merge, success)
        if not cnds:
            return in_laidx, []

        full_rprs = self._collect_repairs(in_laidx, cnds)
        rnk_rprs = rank_cnds(parser, finish_by, in_laidx, in_pstack, full_rprs)
        if not rnk_rprs:
            return in_laidx, []
        simplify_repairs(parser, rnk_rprs)
        laidx = apply_repairs(parser, in_laidx, in_pstack, astack, spans, rnk_rprs[0])
        return laidx, rnk_rprs

    def _insert(self, n: PathFNode, nbrs: list) -> None:
        parser = self.parser
        laidx = n.laidx
        for tidx in parser.stable.state_actions(n.pstack.val()):
            if tidx == parser.grm.eof_token_idx:
                continue
            start = parser.next_lexeme(laidx).span().start
            new_lexeme = Lexeme.new_faulty(tidx, start, 0)
            new_laidx, n_pstack = parser.lr_cactus(
                new_lexeme, laidx, laidx + 1, n.pstack, None
            )
            if new_laidx > laidx:
                nn = PathFNode(
                    n_pstack,
                    laidx,
                    n.repairs.child(RepairMerge.of(Repair.insert_term(tidx))),
                    _add_cost(n.cf, parser.token_cost(tidx)),
                )
                nbrs.append((nn.cf, nn))

    def _delete(self, n: PathFNode, nbrs: list) -> None:
        parser = self.parser
        if n.laidx == len(parser.lexemes):
            return
        cost = parser.token_cost(parser.next_tidx(n.laidx))
        nn = PathFNode(
            n.pstack,
            n.laidx + 1,
            n.repairs.child(RepairMerge.of(Repair.delete())),
            _add_cost(n.cf, cost),
        )
        nbrs.append((nn.cf, nn))

    def _shift(self, n: PathFNode, nbrs: list) -> None:
        # Only one symbol is shifted at a time: shifting several in one go misses
        # some minimal-cost repairs.
        laidx = n.laidx
        new_laidx, n_pstack = self.parser.lr_cactus(
            None, laidx, laidx + 1, n.pstack, None
        )
        if n.pstack != n_pstack:
            if new_laidx > laidx:
                repairs = n.repairs.child(RepairMerge.of(Repair.shift()))
            else:
                repairs = n.repairs
            nn = PathFNode(n_pstack, new_laidx, repairs, n.cf)
            nbrs.append((nn.cf, nn))

    def _collect_repairs(
        self, in_laidx: int, cnds: Sequence[PathFNode]
    ) -> list[list[list[ParseRepair]]]:
        return [
            [self._to_parse_repairs(in_laidx, seq) for seq in _traverse(cnd.repairs)]
            for cnd in cnds
        ]

    def _to_parse_repairs(
        self, laidx: int, seq: Sequence[Repair]
    ) -> list[ParseRepair]:
        out: list[ParseRepair] = []
        for repair in seq:
            if repair.kind is RepairKind.INSERT_TERM:
                out.append(InsertRepair(repair.tidx))
            elif repair.kind is RepairKind.DELETE:
                out.append(DeleteRepair(self.parser.next_lexeme(laidx)))
                laidx += 1
            else:
                out.append(ShiftRepair(self.parser.next_lexeme(laidx)))
                laidx += 1
        return out


def recoverer(parser: Parser) -> CPCTPlus:
    """Return a CPCT+ recoverer for ``parser``."""
    return CPCTPlus(parser)