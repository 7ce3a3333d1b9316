"""Fold enrichment into nodes/edges and bound the final graph."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from ..models.enrichment import CustomEdge, EdgeEnrichment, NodeEnrichment
from ..models.graph import GraphData, GraphEdge, GraphNode
from .enrichment import EnrichmentResult


def _set_fields(mapping: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in mapping.items() if value is not None}


def enrich_node(node: GraphNode, enrichment: NodeEnrichment) -> GraphNode:
    metadata = {
        **node.metadata,
        **enrichment.properties,
        **_set_fields(
            {
                "enriched_color": enrichment.color,
                "enriched_size": enrichment.size,
                "enriched_shape": enrichment.shape,
                "importance": enrichment.importance,
                "group": enrichment.group,
            }
        ),
    }
    return node.model_copy(
        update={
            "label": enrichment.label if enrichment.label is not None else node.label,
            "title": enrichment.tooltip if enrichment.tooltip is not None else node.title,
            "metadata": metadata,
        }
    )


def enrich_edge(edge: GraphEdge, enrichment: EdgeEnrichment) -> GraphEdge:
    metadata = {
        **edge.metadata,
        **enrichment.properties,
        **_set_fields(
            {
                "enriched_color": enrichment.color,
                "enriched_width": enrichment.width,
                "enriched_style": enrichment.style,
                "weight": enrichment.weight,
            }
        ),
    }
    return edge.model_copy(
        update={
            "title": enrichment.label if enrichment.label is not None else edge.title,
            "metadata": metadata,
        }
    )


def materialize_custom_edge(custom: CustomEdge) -> GraphEdge:
    return GraphEdge(
        id=f"custom-{custom.source}-{custom.target}-{custom.type}",
        source=custom.source,
        target=custom.target,
        link_type=custom.type,
        count=1,
        title=custom.label or custom.type,
        metadata={
            "is_custom": True,
            "custom_type": custom.type,
            **_set_fields(
                {
                    "enriched_color": custom.color,
                    "enriched_width": custom.width,
                    "enriched_style": custom.style,
                }
            ),
            **custom.properties,
        },
    )


def apply_enrichment(
    nodes: List[GraphNode], edges: List[GraphEdge], result: EnrichmentResult
) -> Tuple[List[GraphNode], List[GraphEdge]]:
    """Drop excluded items, fold enrichments in, and append custom edges.

    Node order is preserved, so the canonical relevance order survives.
    Custom edges are unique per (from, to, type); the first one declared
    (highest-priority provider, earliest node) wins.
    """
    merged_nodes: List[GraphNode] = []
    for node in nodes:
        if node.id in result.excluded_nodes:
            continue
        enrichment = result.node_enrichments.get(node.id)
        merged_nodes.append(enrich_node(node, enrichment) if enrichment else node)

    merged_edges: List[GraphEdge] = []
    for edge in edges:
        if edge.key in result.excluded_edges:
            continue
        enrichment = result.edge_enrichments.get(edge.key)
        merged_edges.append(enrich_edge(edge, enrichment) if enrichment else edge)

    custom_edges: Dict[Tuple[str, str, str], GraphEdge] = {}
    for custom in result.custom_edges:
        key = (custom.source, custom.target, custom.type)
        if key not in custom_edges:
            custom_edges[key] = materialize_custom_edge(custom)
    merged_edges.extend(custom_edges.values())
    return merged_nodes, merged_edges


def bound_graph(nodes: List[GraphNode], edges: List[GraphEdge], max_nodes: int) -> GraphData:
    """Keep the first ``max_nodes`` nodes and only edges between kept nodes."""
    truncated = len(nodes) > max_nodes
    kept = nodes[:max_nodes] if truncated else list(nodes)
    kept_ids = {node.id for node in kept}
    kept_edges = [edge for edge in edges if edge.source in kept_ids and edge.target in kept_ids]
    return GraphData(
        nodes=kept,
        edges=kept_edges,
        truncated=truncated,
        total_edges=len(edges),
    )


__all__ = [
    "apply_enrichment",
    "bound_graph",
    "enrich_node",
    "enrich_edge",
    "materialize_custom_edge",
]
