"""Repair sequences and the search nodes, ranking and replay used by error recovery."""

from __future__ import annotations

import enum
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from .errors import DeleteRepair, InsertRepair, ParseRepair, ShiftRepair
from .lex_api import Lexeme, Span
from .parser import Cactus, Parser

__all__ = [
    "PARSE_AT_LEAST",
    "TRY_PARSE_AT_MOST",
    "RepairKind",
    "Repair",
    "RepairMerge",
    "TERMINATOR",
    "PathFNode",
    "apply_repairs",
    "simplify_repairs",
    "rank_cnds",
    "ends_with_parse_at_least_shifts",
]

# N in Corchuelo et al.: this many consecutive shifts make a success node.
PARSE_AT_LEAST = 3
TRY_PARSE_AT_MOST = 250


class RepairKind(enum.Enum):
    INSERT_TERM = "InsertTerm"
    DELETE = "Delete"
    SHIFT = "Shift"


@dataclass(frozen=True)
class Repair:
    """A single search step: insert token ``tidx``, delete a lexeme, or shift a lexeme."""

    kind: RepairKind
    tidx: Optional[int] = None

    @classmethod
    def insert_term(cls, tidx: int) -> Repair:
        return cls(RepairKind.INSERT_TERM, tidx)

    @classmethod
    def delete(cls) -> Repair:
        return cls(RepairKind.DELETE)

    @classmethod
    def shift(cls) -> Repair:
        return cls(RepairKind.SHIFT)


@dataclass(frozen=True)
class RepairMerge:
    """An entry in a repair cactus.

    ``repair`` is ``None`` for the terminator at the bottom of every sequence.
    ``merges``, if present, is a cactus of alternative repair cacti that were merged
    into this one because they reached a compatible search node.
    """

    repair: Optional[Repair]
    merges: Optional[Cactus] = None

    @classmethod
    def of(cls, repair: Repair) -> RepairMerge:
        return cls(repair)

    @classmethod
    def merged(cls, repair: Repair, merges: Cactus) -> RepairMerge:
        return cls(repair, merges)

    @property
    def is_terminator(self) -> bool:
        return self.repair is None


TERMINATOR = RepairMerge(None)


def _is_shift(rm: RepairMerge) -> bool:
    return rm.repair is not None and rm.repair.kind is RepairKind.SHIFT


def _trailing_shifts(repairs: Cactus) -> int:
    count = 0
    for rm in repairs.vals():
        if not _is_shift(rm):
            break
        count += 1
    return count


class PathFNode:
    """A node in the repair search: a parse stack, a position, and the repairs to get there.

    Nodes hash by stack and position only. Two nodes are equal when their repair
    sequences are compatible: they end with the same number of shifts, and either
    both or neither end in a delete.
    """

    __slots__ = ("pstack", "laidx", "repairs", "cf")

    def __init__(self, pstack: Cactus, laidx: int, repairs: Cactus, cf: int) -> None:
        self.pstack = pstack
        self.laidx = laidx
        self.repairs = repairs
        self.cf = cf

    def last_repair(self) -> Optional[Repair]:
        top = self.repairs.val()
        if top is None:
            raise ValueError("a repair sequence must end with a terminator")
        return top.repair

    def __hash__(self) -> int:
        return hash((self.pstack, self.laidx))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathFNode):
            return NotImplemented
        if self.laidx != other.laidx or self.pstack != other.pstack:
            return False
        mine, theirs = self.last_repair(), other.last_repair()
        mine_del = mine is not None and mine.kind is RepairKind.DELETE
        theirs_del = theirs is not None and theirs.kind is RepairKind.DELETE
        if mine_del != theirs_del:
            return False
        return _trailing_shifts(self.repairs) == _trailing_shifts(other.repairs)

    def __repr__(self) -> str:
        return (
            f"PathFNode(pstack={self.pstack!r}, laidx={self.laidx}, "
            f"repairs={self.repairs!r}, cf={self.cf})"
        )


def apply_repairs(
    parser: Parser,
    laidx: int,
    pstack: list[int],
    astack: Optional[list],
    spans: Optional[list[Span]],
    repairs: Sequence[ParseRepair],
) -> int:
    """Apply ``repairs`` to ``pstack`` from position ``laidx``; return the new position.

    Values and spans are built only if ``astack`` and ``spans`` are given.
    """
    for repair in repairs:
        if isinstance(repair, InsertRepair):
            start = parser.next_lexeme(laidx).span().start
            new_lexeme = Lexeme.new_faulty(repair.tidx, start, 0)
            parser.lr_upto(new_lexeme, laidx, laidx + 1, pstack, astack, spans)
        elif isinstance(repair, DeleteRepair):
            laidx += 1
        elif isinstance(repair, ShiftRepair):
            laidx = parser.lr_upto(None, laidx, laidx + 1, pstack, astack, spans)
        else:
            raise TypeError(f"not a repair: {repair!r}")
    return laidx


def simplify_repairs(parser: Parser, all_rprs: list[list[ParseRepair]]) -> None:
    """Strip trailing shifts, remove duplicates and sort ``all_rprs`` in place.

    Sequences that insert an ``%avoid_insert`` token come last; otherwise shorter
    sequences come first.
    """
    stripped = []
    for rprs in all_rprs:
        seq = list(rprs)
        while seq and isinstance(seq[-1], ShiftRepair):
            seq.pop()
        stripped.append(tuple(seq))
    unique = list(dict.fromkeys(stripped))

    def contains_avoid_insert(rprs: tuple) -> bool:
        return any(
            isinstance(r, InsertRepair) and parser.grm.avoid_insert(r.tidx) for r in rprs
        )

    unique.sort(key=lambda rprs: (contains_avoid_insert(rprs), len(rprs)))
    all_rprs[:] = [list(rprs) for rprs in unique]


def rank_cnds(
    parser: Parser,
    finish_by: float,
    in_laidx: int,
    in_pstack: Sequence[int],
    in_cnds: Sequence[Sequence[list[ParseRepair]]],
) -> list[list[ParseRepair]]:
    """Keep only the candidates whose repairs let parsing continue furthest.

    Each candidate is a group of repair sequences that reach the same search node;
    the first of each group is replayed. ``finish_by`` is a ``time.monotonic()``
    deadline: if it passes, no candidates are returned.
    """
    ranked = []
    furthest = 0
    for rpr_seqs in in_cnds:
        if time.monotonic() >= finish_by:
            return []
        pstack = list(in_pstack)
        laidx = apply_repairs(parser, in_laidx, pstack, None, None, rpr_seqs[0])
        laidx = parser.lr_upto(
            None, laidx, in_laidx + TRY_PARSE_AT_MOST, pstack, None, None
        )
        furthest = max(furthest, laidx)
        ranked.append((laidx, rpr_seqs))
    return [
        list(seq) for laidx, seqs in ranked if laidx == furthest for seq in seqs
    ]


def ends_with_parse_at_least_shifts(repairs: Cactus) -> bool:
    """Do ``repairs`` end with ``PARSE_AT_LEAST`` shifts?"""
    shifts = 0
    for index, rm in enumerate(repairs.vals()):
        if index == PARSE_AT_LEAST:
            break
        if not _is_shift(rm):
            return False
        shifts += 1
    return shifts == PARSE_AT_LEAST