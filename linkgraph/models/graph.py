"""Graph data models."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .filters import Direction, LinkFilters


class GraphNode(BaseModel):
    """Represents a single indexed file in the graph."""

    id: str = Field(..., description="Unique identifier (file path)")
    label: str = Field(..., description="Display label (basename)")
    title: str = Field("", description="Hover tooltip (HTML)")
    level: int = Field(..., ge=0, description="Hop distance from the center file")
    is_center: bool = False
    file_type: str = "org"
    mtime: float = Field(0.0, description="Modification time, epoch seconds")

    heading_count: int = 0
    todo_count: int = 0
    link_count: int = 0
    has_upcoming_deadline: bool = False
    top_tags: List[str] = Field(default_factory=list)

    metadata: Dict[str, Any] = Field(default_factory=dict)


class GraphEdge(BaseModel):
    """Represents a directed, aggregated link between two files."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    source: str = Field(..., alias="from", description="ID of the source node")
    target: str = Field(..., alias="to", description="ID of the target node")
    link_type: str = "file"
    count: int = Field(1, ge=1)
    title: str = ""
    arrows: Literal["to"] = "to"
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        return (self.source, self.target)


class GraphData(BaseModel):
    """The top-level payload returned by a graph build."""

    nodes: List[GraphNode]
    edges: List[GraphEdge]
    truncated: bool = False
    total_edges: int = Field(0, ge=0, description="Edge count before truncation")


class LinkStats(BaseModel):
    """Simple link counts for one file."""

    outgoing: int = 0
    incoming: int = 0
    outgoing_by_type: Dict[str, int] = Field(default_factory=dict)


class IndexStats(BaseModel):
    """Row counts of the link index, used as a readiness check."""

    files: int = 0
    headings: int = 0
    links: int = 0


class GraphRequest(BaseModel):
    """Request payload for a filtered graph build."""

    file: str = Field(..., min_length=1)
    depth: Optional[int] = Field(None, ge=0, le=10)
    direction: Optional[Direction] = None
    max_nodes: Optional[int] = Field(None, ge=1)
    filters: LinkFilters = Field(default_factory=LinkFilters)


__all__ = ["GraphNode", "GraphEdge", "GraphData", "LinkStats", "IndexStats", "GraphRequest"]
