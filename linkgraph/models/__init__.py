"""Pydantic models for data validation and serialization."""

from .enrichment import CustomEdge, EdgeEnrichment, NodeEnrichment
from .filters import DEFAULT_LINK_TYPES, Direction, LinkFilters
from .graph import GraphData, GraphEdge, GraphNode, GraphRequest, IndexStats, LinkStats

__all__ = [
    "LinkFilters",
    "Direction",
    "DEFAULT_LINK_TYPES",
    "GraphNode",
    "GraphEdge",
    "GraphData",
    "GraphRequest",
    "LinkStats",
    "IndexStats",
    "NodeEnrichment",
    "EdgeEnrichment",
    "CustomEdge",
]
