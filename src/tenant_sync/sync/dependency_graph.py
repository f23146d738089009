"""Dependency graph construction and cycle checking."""

from collections.abc import Mapping, Sequence

from tenant_sync.exceptions import DependencyCycleError

from .scripts import SyncScript

DependencyGraph = dict[str, list[str]]
"""Script identity -> identities that must complete first."""


def resolve_dependency(dependency: str, scripts: Sequence[SyncScript]) -> SyncScript | None:
    """Find the first script producing ``dependency``.

    A dependency matches a script's resource name or its identity.
    """
    for script in scripts:
        if script.resource_name == dependency or script.identity == dependency:
            return script
    return None


def build_dependency_graph(scripts: Sequence[SyncScript]) -> DependencyGraph:
    """Build the prerequisite map for a list of scripts.

    Every script gets an entry. Dependencies that match no script are
    dropped (they name optional upstream producers), as are
    self-references. When several scripts produce the same resource the
    first in list order wins.

    Args:
        scripts: Script descriptors in registration order

    Returns:
        Mapping of script identity to prerequisite identities
    """
    graph: DependencyGraph = {script.identity: [] for script in scripts}
    for script in scripts:
        prerequisites = graph[script.identity]
        for dependency in script.depends_on:
            target = resolve_dependency(dependency, scripts)
            if target is None or target.identity == script.identity:
                continue
            if target.identity not in prerequisites:
                prerequisites.append(target.identity)
    return graph


def find_cycle(graph: Mapping[str, Sequence[str]]) -> list[str] | None:
    """Return one dependency cycle as a path, or None if the graph is acyclic.

    The returned path starts and ends with the same identity,
    e.g. ``["a", "b", "a"]``.
    """
    visited: set[str] = set()
    visiting: list[str] = []
    on_path: set[str] = set()

    def visit(node: str) -> list[str] | None:
        visiting.append(node)
        on_path.add(node)
        for prerequisite in graph.get(node, ()):
            if prerequisite in on_path:
                start = visiting.index(prerequisite)
                return [*visiting[start:], prerequisite]
            if prerequisite not in visited:
                cycle = visit(prerequisite)
                if cycle:
                    return cycle
        visiting.pop()
        on_path.discard(node)
        visited.add(node)
        return None

    for node in graph:
        if node not in visited:
            cycle = visit(node)
            if cycle:
                return cycle
    return None


def validate_acyclic(graph: Mapping[str, Sequence[str]]) -> None:
    """Raise if the graph contains a dependency cycle.

    Raises:
        DependencyCycleError: With the offending path
    """
    cycle = find_cycle(graph)
    if cycle is not None:
        raise DependencyCycleError(cycle)
