from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from wireplan.context import ResolutionContext
from wireplan.exceptions import WirePlanCycleError
from wireplan.tokens import Token


class _Mark(Enum):
    UNVISITED = 0
    IN_PROGRESS = 1
    DONE = 2


@dataclass(frozen=True, slots=True)
class TokenGraph:
    """Requires-before graph over tokens.

    An edge ``a -> b`` means token ``b`` must be emitted before token ``a``.
    """

    nodes: tuple[Token, ...]
    """All tokens in first-discovery order."""
    edges: dict[str, tuple[str, ...]]
    """Token id to the ids it requires, in discovery order."""

    def requirements(self, token_id: str) -> tuple[str, ...]:
        return self.edges.get(token_id, ())

    def iter_edges(self) -> Iterator[tuple[str, str]]:
        for source, targets in self.edges.items():
            for target in targets:
                yield source, target


def build_token_graph(context: ResolutionContext) -> TokenGraph:
    """Collect base and generic-argument edges recorded by the earlier passes."""
    nodes = tuple(context.registry.values())
    edges: dict[str, list[str]] = {token.id: [] for token in nodes}

    def add(source: Token, target: Token) -> None:
        targets = edges.setdefault(source.id, [])
        if target.id not in targets:
            targets.append(target.id)

    for token in nodes:
        relation = context.relations.get(token.id)
        if relation is not None:
            add(token, relation.base_token)
        metadata = context.token_metadata.get(token.id)
        if metadata is None:
            continue
        for generic in metadata.generics:
            if generic != token:
                add(token, generic)
        for implemented in metadata.implements:
            if implemented != token:
                add(token, implemented)

    return TokenGraph(
        nodes=nodes,
        edges={token_id: tuple(targets) for token_id, targets in edges.items()},
    )


def topological_order(graph: TokenGraph) -> tuple[Token, ...]:
    """Order tokens so every requirement precedes its dependents.

    Iterative depth-first traversal with three marks. Roots and requirements are
    visited in discovery order, so ties keep a deterministic order.

    Raises:
        WirePlanCycleError: A requirement is reached while it is still in progress.

    """
    by_id = {token.id: token for token in graph.nodes}
    marks = dict.fromkeys(by_id, _Mark.UNVISITED)
    ordered: list[Token] = []

    for root in graph.nodes:
        if marks[root.id] is not _Mark.UNVISITED:
            continue

        marks[root.id] = _Mark.IN_PROGRESS
        stack: list[tuple[str, Iterator[str]]] = [(root.id, iter(graph.requirements(root.id)))]
        while stack:
            node_id, requirements = stack[-1]
            for requirement in requirements:
                mark = marks[requirement]
                if mark is _Mark.IN_PROGRESS:
                    path = [item_id for item_id, _ in stack]
                    start = path.index(requirement)
                    raise WirePlanCycleError([*path[start:], requirement])
                if mark is _Mark.UNVISITED:
                    marks[requirement] = _Mark.IN_PROGRESS
                    stack.append((requirement, iter(graph.requirements(requirement))))
                    break
            else:
                stack.pop()
                marks[node_id] = _Mark.DONE
                ordered.append(by_id[node_id])

    return tuple(ordered)


def order_tokens(context: ResolutionContext) -> ResolutionContext:
    """Assert the token graph is acyclic and store the emission order."""
    context.ordered_tokens = topological_order(build_token_graph(context))
    return context
