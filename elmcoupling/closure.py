"""
Transitive closure engine.

Computes, for every module in a dependency graph, the set of module names
transitively related to it under a given edge relation. Following imports
forward yields the instability closure; following importers backwards yields
the ossification closure.

The traversal is memoized on a shared accumulator. A module is marked as in
progress (with an empty set) before any of its neighbors are visited, and a
module that is already marked is never entered again. That marker is what
stops the walk on import cycles. Its consequence is that a module reached
again while still in progress contributes only the partial set gathered so
far, so cycles of three or more modules under-count: for A -> B -> C -> A
seeded from A, the closures of A and B hold all three modules while the
closure of C misses C itself.
"""
import enum
import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from elmcoupling.registry import DependencyGraphView, ModuleRecord

logger = logging.getLogger(__name__)

# Import targets under these prefixes are compiler built-ins (e.g. Elm.Kernel.List)
DEFAULT_BUILTIN_PREFIXES = ("Elm.",)

EdgeFunction = Callable[[ModuleRecord], Sequence[str]]
LookupFunction = Callable[[str], Optional[ModuleRecord]]


class VisitState(enum.Enum):
    """Visitation state of a module within one closure pass."""

    UNVISITED = "unvisited"
    IN_PROGRESS = "in_progress"
    FINALIZED = "finalized"


class ClosureAccumulator:
    """
    Mutable state threaded through one closure pass.

    Holds the related-name set of every visited module, its visitation state,
    and the (module, target) pairs whose target could not be resolved.
    """

    def __init__(self):
        self.sets: Dict[str, Set[str]] = {}
        self.states: Dict[str, VisitState] = {}
        self.unresolved: List[Tuple[str, str]] = []

    def state_of(self, name: str) -> VisitState:
        return self.states.get(name, VisitState.UNVISITED)

    def get(self, name: str) -> Optional[Set[str]]:
        """Return the related set for ``name``, or None if it was never visited."""
        return self.sets.get(name)

    def begin(self, name: str) -> Set[str]:
        self.states[name] = VisitState.IN_PROGRESS
        self.sets[name] = set()
        return self.sets[name]

    def finish(self, name: str) -> None:
        self.states[name] = VisitState.FINALIZED

    def count(self, name: str) -> Optional[int]:
        related = self.sets.get(name)
        return None if related is None else len(related)


def is_builtin(name: str, prefixes: Iterable[str] = DEFAULT_BUILTIN_PREFIXES) -> bool:
    """Check whether ``name`` belongs to a recognised built-in namespace."""
    return name.startswith(tuple(prefixes))


def resolve(
    accumulator: ClosureAccumulator,
    module: str,
    record: ModuleRecord,
    edges_of: EdgeFunction,
    lookup: LookupFunction,
    builtin_prefixes: Iterable[str] = DEFAULT_BUILTIN_PREFIXES,
) -> ClosureAccumulator:
    """
    Resolve the closure of a single module into the accumulator.

    Neighbors are visited depth first in edge order. The walk keeps its own
    stack of frames, so the depth of an import chain is not bounded by the
    interpreter's recursion limit.

    Args:
        accumulator: Shared accumulator, mutated in place
        module: Name of the module being resolved
        record: Record of the module
        edges_of: Returns the neighbor names to follow for a record
        lookup: Resolves a neighbor name to its record, or None
        builtin_prefixes: Namespaces that are skipped without a diagnostic

    Returns:
        The same accumulator
    """
    if accumulator.state_of(module) is not VisitState.UNVISITED:
        return accumulator

    targets = edges_of(record)
    if not targets:
        # Nothing to relate; the module stays unvisited in this direction
        return accumulator

    builtin_prefixes = tuple(builtin_prefixes)
    # Frames of (name, related set, remaining targets)
    stack: List[Tuple[str, Set[str], Iterator[str]]] = [(module, accumulator.begin(module), iter(targets))]

    while stack:
        name, related, remaining = stack[-1]

        for target in remaining:
            target_record = lookup(target)
            if target_record is not None:
                related.add(target)
                if accumulator.state_of(target) is VisitState.UNVISITED:
                    target_edges = edges_of(target_record)
                    if target_edges:
                        stack.append((target, accumulator.begin(target), iter(target_edges)))
                        break
                target_related = accumulator.get(target)
                if target_related:
                    related.update(target_related)
            elif is_builtin(target, builtin_prefixes):
                continue
            else:
                related.add(target)
                accumulator.unresolved.append((name, target))
                logger.warning("package not found: %s (imported by %s)", target, name)
        else:
            # All targets done: finalize and merge into the importing frame
            accumulator.finish(name)
            stack.pop()
            if stack:
                stack[-1][1].update(related)

    return accumulator


def forward_edges(record: ModuleRecord) -> Sequence[str]:
    """Edge relation for instability: the module's own imports."""
    return record.direct_imports


def reverse_edges(graph: DependencyGraphView) -> EdgeFunction:
    """Edge relation for ossification: the modules importing the record."""

    def edges_of(record: ModuleRecord) -> Sequence[str]:
        return graph.importers_of(record.name)

    return edges_of


def compute_closure(
    graph: DependencyGraphView,
    edges_of: EdgeFunction,
    builtin_prefixes: Iterable[str] = DEFAULT_BUILTIN_PREFIXES,
) -> ClosureAccumulator:
    """
    Resolve every module of the graph under one edge relation.

    Args:
        graph: Graph view over the registry
        edges_of: Edge relation to follow
        builtin_prefixes: Namespaces that are skipped without a diagnostic

    Returns:
        A fresh accumulator covering every module of both partitions
    """
    builtin_prefixes = tuple(builtin_prefixes)
    accumulator = ClosureAccumulator()
    for record in graph:
        resolve(accumulator, record.name, record, edges_of, graph.lookup, builtin_prefixes)
    return accumulator


def instability_closure(
    graph: DependencyGraphView,
    builtin_prefixes: Iterable[str] = DEFAULT_BUILTIN_PREFIXES,
) -> ClosureAccumulator:
    """Closure over outgoing imports: everything a module depends on."""
    return compute_closure(graph, forward_edges, builtin_prefixes)


def ossification_closure(
    graph: DependencyGraphView,
    builtin_prefixes: Iterable[str] = DEFAULT_BUILTIN_PREFIXES,
) -> ClosureAccumulator:
    """Closure over incoming imports: everything depending on a module."""
    return compute_closure(graph, reverse_edges(graph), builtin_prefixes)
