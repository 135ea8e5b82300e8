"""Cycle detection over a module dependency graph."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

Cycle = tuple[str, ...]


def detect_cycles(graph: Mapping[str, Sequence[str]]) -> list[Cycle]:
    """Find every distinct cycle reachable in ``graph``.

    ``graph`` maps each module name to the names it depends on.  Each cycle is
    returned as the names along the loop, starting from the module where the
    traversal first entered it, without repeating that module at the end.  A
    module that depends on itself is a one-element cycle.

    Names that appear only as dependencies are treated as leaves; reporting
    them is the job of the missing dependency check.

    Modules whose whole subgraph has been explored and found free of cycles
    are never walked again, so shared subgraphs don't cost more than once.
    """
    cycles: list[Cycle] = []
    seen: set[Cycle] = set()
    explored: set[str] = set()

    for start in sorted(graph):
        if start in explored:
            continue

        path: list[str] = []
        on_path: dict[str, int] = {}
        # each frame is a node and the iterator over its remaining dependencies
        stack = [(start, iter(graph[start]))]
        path.append(start)
        on_path[start] = 0
        tainted: set[str] = set()

        while stack:
            node, dependencies = stack[-1]
            dependency = next(dependencies, None)

            if dependency is None:
                stack.pop()
                path.pop()
                del on_path[node]
                if node not in tainted:
                    explored.add(node)
                elif path:
                    tainted.add(path[-1])
                continue

            if dependency in on_path:
                cycle = tuple(path[on_path[dependency] :])
                key = _canonical(cycle)
                if key not in seen:
                    seen.add(key)
                    cycles.append(cycle)
                tainted.update(cycle)
                continue

            if dependency in explored or dependency not in graph:
                continue

            on_path[dependency] = len(path)
            path.append(dependency)
            stack.append((dependency, iter(graph[dependency])))

    return cycles


def reachable(
    graph: Mapping[str, Sequence[str]], starts: Iterable[str]
) -> frozenset[str]:
    """Every name reachable from ``starts`` in ``graph``, ``starts`` included."""
    found: set[str] = set()
    stack = list(starts)
    while stack:
        name = stack.pop()
        if name in found:
            continue
        found.add(name)
        stack.extend(graph.get(name, ()))
    return frozenset(found)


def _canonical(cycle: Cycle) -> Cycle:
    """Rotate a cycle so that it starts at its smallest name."""
    pivot = cycle.index(min(cycle))
    return cycle[pivot:] + cycle[:pivot]


def format_cycle(cycle: Sequence[str]) -> str:
    """Render a cycle as ``a -> b -> a``."""
    if not cycle:
        return ""
    return " -> ".join([*cycle, cycle[0]])
