"""Least-cost search used by error recovery to find all cheapest success nodes."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from typing import Optional, TypeVar

__all__ = ["dijkstra"]

N = TypeVar("N", bound=Hashable)

Neighbours = Callable[[bool, N], Optional[Iterable[tuple[int, N]]]]


def _add(bucket: dict, node, merge: Callable) -> None:
    existing = bucket.get(node)
    if existing is None:
        bucket[node] = node
    else:
        merge(existing, node)


def dijkstra(
    start_node: N,
    neighbours: Neighbours,
    merge: Callable[[N, N], None],
    success: Callable[[N], bool],
) -> list[N]:
    """Return, in arbitrary order, all least-cost success nodes reachable from ``start_node``.

    ``neighbours(explore_all, node)`` returns ``(cost, neighbour)`` pairs, where ``cost``
    is the neighbour's total cost from the start; it returns ``None`` to abandon the
    search, in which case no nodes are returned. ``merge(old, new)`` folds ``new`` into
    an equal node ``old`` that is already queued, mutating ``old`` in place.
    ``success(node)`` says whether ``node`` is a success node.
    """
    todo: list[dict] = [{start_node: start_node}]
    cost = 0
    while True:
        bucket = todo[cost]
        if not bucket:
            cost += 1
            if cost == len(todo):
                return []
            continue
        _, node = bucket.popitem()
        if success(node):
            found = [node]
            break
        nbrs = neighbours(True, node)
        if nbrs is None:
            return []
        for nbr_cost, nbr in nbrs:
            if nbr_cost >= len(todo):
                todo.extend({} for _ in range(nbr_cost + 1 - len(todo)))
            _add(todo[nbr_cost], nbr, merge)

    # Having found one success node at this cost, find all the others at the same cost.
    scs_todo = todo[cost]
    while scs_todo:
        _, node = scs_todo.popitem()
        if success(node):
            found.append(node)
            continue
        nbrs = neighbours(False, node)
        if nbrs is None:
            return []
        for nbr_cost, nbr in nbrs:
            if nbr_cost == cost:
                _add(scs_todo, nbr, merge)
    return found