from dataclasses import dataclass, field

from lrpar.dijkstra import dijkstra


def _graph_search(edges, start="s"):
    calls = []

    def neighbours(explore_all, node):
        calls.append((explore_all, node))
        return list(edges.get(node, []))

    def merge(old, new):
        raise AssertionError("no merges expected")

    found = dijkstra(start, neighbours, merge, lambda n: n.startswith("g"))
    return found, calls


def test_start_node_is_success():
    found, calls = _graph_search({}, start="g0")
    assert found == ["g0"]
    assert calls == []


def test_no_success_reachable():
    found, _ = _graph_search({"s": [(1, "a")], "a": [(2, "b")]})
    assert found == []


def test_abandoned_search_returns_nothing():
    def neighbours(explore_all, node):
        return None

    found = dijkstra("s", neighbours, lambda o, n: None, lambda n: n == "g")
    assert found == []


def test_cheapest_success_preferred_even_if_found_later():
    edges = {"s": [(5, "g5"), (2, "x")], "x": [(3, "g3")]}
    found, _ = _graph_search(edges)
    assert found == ["g3"]


def test_all_least_cost_success_nodes_returned():
    edges = {"s": [(1, "g1"), (1, "x"), (3, "g3")], "x": [(1, "g2")]}
    found, _ = _graph_search(edges)
    assert sorted(found) == ["g1", "g2"]


def test_second_phase_does_not_explore_all():
    edges = {"s": [(1, "y"), (1, "g1")], "y": [(1, "g2"), (2, "g9")]}
    found, calls = _graph_search(edges)
    assert sorted(found) == ["g1", "g2"]
    assert calls == [(True, "s"), (False, "y")]


@dataclass(unsafe_hash=True)
class _Item:
    name: str
    tags: list = field(default_factory=list, compare=False, hash=False)


def test_equal_nodes_are_merged():
    def neighbours(explore_all, node):
        if node.name == "s":
            return [(1, _Item("m", ["a"])), (1, _Item("m", ["b"]))]
        return []

    def merge(old, new):
        old.tags.extend(new.tags)

    found = dijkstra(_Item("s"), neighbours, merge, lambda n: n.name == "m")
    assert len(found) == 1
    assert found[0].tags == ["a", "b"]