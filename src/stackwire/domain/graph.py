"""Resource graph construction.

The builder is the only place where edges are created:
- every ``Reference``/``Interpolation`` token inside a spec's inputs becomes an
  edge to the referenced spec
- explicit ``depends_on`` names are kept as ordering-only edges

The resulting graph is immutable; reconciliation reads it but never writes it.
"""

from __future__ import annotations

import heapq
from collections.abc import Mapping
from dataclasses import dataclass, replace
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

from stackwire.domain.errors import CycleError, DuplicateResourceError, UnknownReferenceError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from stackwire.domain.model import ResourceSpec

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResourceGraph:
    """Directed acyclic graph of resource specs.

    ``specs`` keeps declaration order, which is used to break ties wherever an
    ordering is derived from the graph.
    """

    specs: tuple[ResourceSpec, ...]
    _by_name: Mapping[str, ResourceSpec]
    _dependencies: Mapping[str, tuple[str, ...]]
    _dependents: Mapping[str, tuple[str, ...]]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.specs)

    def __len__(self) -> int:
        return len(self.specs)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def spec(self, name: str) -> ResourceSpec:
        return self._by_name[name]

    def dependencies(self, name: str) -> tuple[str, ...]:
        return self._dependencies[name]

    def dependents(self, name: str) -> tuple[str, ...]:
        return self._dependents[name]

    def descendants(self, name: str) -> tuple[str, ...]:
        """All nodes reachable from ``name`` along dependent edges, in declaration order."""

        seen: set[str] = set()
        stack = list(self._dependents[name])
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._dependents[current])
        return tuple(spec.name for spec in self.specs if spec.name in seen)

    def topological_order(self) -> tuple[str, ...]:
        """Kahn's algorithm; among ready nodes the earliest declared goes first."""

        position = {spec.name: index for index, spec in enumerate(self.specs)}
        remaining = {name: len(deps) for name, deps in self._dependencies.items()}
        ready = [position[name] for name, count in remaining.items() if count == 0]
        heapq.heapify(ready)
        order: list[str] = []
        while ready:
            name = self.specs[heapq.heappop(ready)].name
            order.append(name)
            for dependent in self._dependents[name]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, position[dependent])
        return tuple(order)


def build(specs: Sequence[ResourceSpec]) -> ResourceGraph:
    """Build an immutable graph, resolving reference tokens into edges.

    Raises ``DuplicateResourceError``, ``UnknownReferenceError`` or
    ``CycleError``; no external service is touched either way.
    """

    by_name: dict[str, ResourceSpec] = {}
    for spec in specs:
        if spec.name in by_name:
            raise DuplicateResourceError(spec.name)
        by_name[spec.name] = spec

    dependencies: dict[str, tuple[str, ...]] = {}
    for spec in specs:
        dependencies[spec.name] = _dependencies_of(spec, by_name)

    _assert_acyclic(tuple(by_name), dependencies)

    dependents: dict[str, list[str]] = {name: [] for name in by_name}
    for spec in specs:
        for dependency in dependencies[spec.name]:
            dependents[dependency].append(spec.name)

    resolved_specs = tuple(
        replace(spec, depends_on=frozenset(dependencies[spec.name])) for spec in specs
    )
    graph = ResourceGraph(
        specs=resolved_specs,
        _by_name=MappingProxyType({spec.name: spec for spec in resolved_specs}),
        _dependencies=MappingProxyType(dependencies),
        _dependents=MappingProxyType({name: tuple(items) for name, items in dependents.items()}),
    )
    log.debug(
        "Built resource graph: %s nodes, %s edges",
        len(graph),
        sum(len(items) for items in dependencies.values()),
    )
    return graph


def _dependencies_of(spec: ResourceSpec, by_name: Mapping[str, ResourceSpec]) -> tuple[str, ...]:
    ordered: dict[str, None] = {}
    targets: Iterable[str] = (
        *sorted(spec.depends_on),
        *(reference.resource for reference in spec.references()),
    )
    for target in targets:
        if target not in by_name:
            raise UnknownReferenceError(spec.name, target)
        ordered[target] = None
    return tuple(ordered)


def _assert_acyclic(names: Sequence[str], dependencies: Mapping[str, Sequence[str]]) -> None:
    """Depth-first traversal with an explicit recursion stack."""

    visited: set[str] = set()
    on_stack: list[str] = []
    on_stack_set: set[str] = set()

    def visit(name: str) -> None:
        visited.add(name)
        on_stack.append(name)
        on_stack_set.add(name)
        for dependency in dependencies[name]:
            if dependency in on_stack_set:
                start = on_stack.index(dependency)
                raise CycleError([*on_stack[start:], dependency])
            if dependency not in visited:
                visit(dependency)
        on_stack.pop()
        on_stack_set.discard(name)

    for name in names:
        if name not in visited:
            visit(name)
