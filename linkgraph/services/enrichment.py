"""Graph data providers: computed properties, synthetic edges and filters.

Providers run in descending priority. Every callback is isolated: an
exception is recorded in :attr:`EnrichmentResult.failures` and the pipeline
moves on. Enrichments merge last-write-wins in that order, so a field set by a
later (lower-priority) provider replaces the same field from an earlier one,
while fields it leaves unset are kept.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, Union

from ..models.enrichment import CustomEdge, EdgeEnrichment, NodeEnrichment
from ..models.filters import Direction
from ..models.graph import GraphEdge, GraphNode
from .database import GraphStore
from .pipeline import PriorityRegistry, ProviderFailure, call_isolated

logger = logging.getLogger(__name__)

EdgeKey = Tuple[str, str]
MaybeAwaitable = Union[Any, Awaitable[Any]]


@dataclass(frozen=True)
class GraphDataContext:
    """What a provider knows about the build it is enriching."""

    center_file: str
    depth: int
    max_depth: int
    direction: Direction
    store: Optional[GraphStore] = None


@dataclass
class EnrichmentProvider:
    """A plugin contributing to graph builds. All callbacks are optional.

    Callbacks may be plain functions or coroutines. ``enrich_*`` return a
    ``NodeEnrichment``/``EdgeEnrichment`` (or an equivalent dict) or ``None``;
    ``filter_*`` return ``False`` to exclude; ``get_custom_edges`` receives a
    node id and returns a list of ``CustomEdge`` (or dicts).
    """

    id: str
    name: str = ""
    description: Optional[str] = None
    priority: int = 0
    enrich_node: Optional[Callable[[GraphNode, GraphDataContext], MaybeAwaitable]] = None
    enrich_edge: Optional[Callable[[GraphEdge, GraphDataContext], MaybeAwaitable]] = None
    get_custom_edges: Optional[Callable[[str, GraphDataContext], MaybeAwaitable]] = None
    filter_node: Optional[Callable[[GraphNode, GraphDataContext], MaybeAwaitable]] = None
    filter_edge: Optional[Callable[[GraphEdge, GraphDataContext], MaybeAwaitable]] = None


@dataclass
class EnrichmentResult:
    node_enrichments: Dict[str, NodeEnrichment] = field(default_factory=dict)
    edge_enrichments: Dict[EdgeKey, EdgeEnrichment] = field(default_factory=dict)
    custom_edges: List[CustomEdge] = field(default_factory=list)
    excluded_nodes: Set[str] = field(default_factory=set)
    excluded_edges: Set[EdgeKey] = field(default_factory=set)
    failures: List[ProviderFailure] = field(default_factory=list)


class EnrichmentRegistry(PriorityRegistry[EnrichmentProvider]):
    """Registry of graph data providers owned by the composition root."""

    kind = "graph data provider"

    async def apply(
        self,
        nodes: List[GraphNode],
        edges: List[GraphEdge],
        context: GraphDataContext,
    ) -> EnrichmentResult:
        result = EnrichmentResult()

        for provider in self.get_all():
            try:
                await self._apply_provider(provider, nodes, edges, context, result)
            except Exception as exc:
                logger.warning(f"Graph data provider '{provider.id}' failed: {exc}")
                result.failures.append(ProviderFailure(provider_id=provider.id, error=exc))

        return result

    async def _apply_provider(
        self,
        provider: EnrichmentProvider,
        nodes: List[GraphNode],
        edges: List[GraphEdge],
        context: GraphDataContext,
        result: EnrichmentResult,
    ) -> None:
        failures = result.failures

        if provider.enrich_node:
            for node in nodes:
                ok, enrichment = await call_isolated(
                    provider.id, failures, _coerced(provider.enrich_node, NodeEnrichment), node, context
                )
                if ok and enrichment is not None:
                    existing = result.node_enrichments.get(node.id)
                    result.node_enrichments[node.id] = (
                        existing.merged_with(enrichment) if existing else enrichment
                    )

        if provider.filter_node:
            for node in nodes:
                ok, keep = await call_isolated(provider.id, failures, provider.filter_node, node, context)
                if ok and keep is False:
                    result.excluded_nodes.add(node.id)

        if provider.enrich_edge:
            for edge in edges:
                ok, enrichment = await call_isolated(
                    provider.id, failures, _coerced(provider.enrich_edge, EdgeEnrichment), edge, context
                )
                if ok and enrichment is not None:
                    existing = result.edge_enrichments.get(edge.key)
                    result.edge_enrichments[edge.key] = (
                        existing.merged_with(enrichment) if existing else enrichment
                    )

        if provider.filter_edge:
            for edge in edges:
                ok, keep = await call_isolated(provider.id, failures, provider.filter_edge, edge, context)
                if ok and keep is False:
                    result.excluded_edges.add(edge.key)

        if provider.get_custom_edges:
            for node in nodes:
                ok, custom_edges = await call_isolated(
                    provider.id, failures, _custom_edges(provider.get_custom_edges), node.id, context
                )
                if ok and custom_edges:
                    result.custom_edges.extend(custom_edges)


def _coerced(callback: Callable[..., MaybeAwaitable], model):
    """Wrap a callback so dict results are validated inside the isolated call."""

    async def _call(*args: Any):
        value = await _resolve(callback(*args))
        if value is None or isinstance(value, model):
            return value
        return model.model_validate(value)

    return _call


def _custom_edges(callback: Callable[..., MaybeAwaitable]):
    async def _call(*args: Any) -> List[CustomEdge]:
        values = await _resolve(callback(*args))
        return [
            value if isinstance(value, CustomEdge) else CustomEdge.model_validate(value)
            for value in values or []
        ]

    return _call


async def _resolve(value: MaybeAwaitable) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


__all__ = [
    "EnrichmentProvider",
    "EnrichmentRegistry",
    "EnrichmentResult",
    "GraphDataContext",
]
