"""Cycle Search — pure bounded breadth-first reachability over a relationship adjacency map.

Invariants:
    - All functions are PURE: no IO, no async, no DB
    - An edge source -> target closes a cycle iff target already reaches source
    - Walk is bounded by max_depth and max_nodes; exceeding either raises
      ResourceLimitError (never returns "no cycle" for an unexplored graph)
    - Visited set guarantees termination even on corrupted (cyclic) input

Design Decisions:
    - Level-order BFS: depth is the shortest distance from start, so a node reachable
      through both a long and a short branch is judged by the short one
    - Same level semantics as the frontier loader in services/cycle_guard.py
    - Adjacency passed in: the shell decides how to load it (DB frontier batches, tests dicts)
"""

from collections import deque
from collections.abc import Hashable, Iterable, Mapping

from familygraph.core.errors import ResourceLimitError


def find_path(
    adjacency: Mapping[Hashable, Iterable[Hashable]],
    start: Hashable,
    goal: Hashable,
    max_depth: int = 50,
    max_nodes: int = 5000,
) -> list | None:
    """Return a directed path start -> ... -> goal, or None if goal is unreachable."""
    if start == goal:
        return [start]

    visited = {start}
    parents: dict = {start: None}
    queue = deque([(start, 0)])

    while queue:
        node, depth = queue.popleft()
        for nxt in adjacency.get(node, ()):
            if nxt in visited:
                continue
            parents[nxt] = node
            if nxt == goal:
                return _unwind(parents, goal)
            if depth + 1 > max_depth:
                raise ResourceLimitError("cycle_max_depth", max_depth, depth + 1)
            visited.add(nxt)
            if len(visited) > max_nodes:
                raise ResourceLimitError("cycle_max_nodes", max_nodes, len(visited))
            queue.append((nxt, depth + 1))
    return None


def would_create_cycle(
    adjacency: Mapping[Hashable, Iterable[Hashable]],
    source: Hashable,
    target: Hashable,
    max_depth: int = 50,
    max_nodes: int = 5000,
) -> list | None:
    """Cycle that adding source -> target would close, as [source, target, ..., source].

    None when the edge is safe.
    """
    path = find_path(adjacency, target, source, max_depth, max_nodes)
    if path is None:
        return None
    return [source, *path]


def _unwind(parents: dict, goal: Hashable) -> list:
    path = [goal]
    node = parents[goal]
    while node is not None:
        path.append(node)
        node = parents[node]
    path.reverse()
    return path
