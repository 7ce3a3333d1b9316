"""Enrichment overlays returned by graph data providers."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

EdgeStyle = Literal["solid", "dashed", "dotted"]


class NodeEnrichment(BaseModel):
    """Partial overlay for one node. Unset fields leave earlier values alone."""

    properties: Dict[str, Any] = Field(default_factory=dict)
    label: Optional[str] = None
    color: Optional[str] = None
    size: Optional[float] = None
    shape: Optional[str] = None
    tooltip: Optional[str] = None
    group: Optional[str] = None
    importance: Optional[float] = None

    def merged_with(self, other: "NodeEnrichment") -> "NodeEnrichment":
        """Overlay ``other`` on top of this enrichment."""
        return _merge(self, other)


class EdgeEnrichment(BaseModel):
    """Partial overlay for one edge."""

    properties: Dict[str, Any] = Field(default_factory=dict)
    label: Optional[str] = None
    color: Optional[str] = None
    width: Optional[float] = None
    style: Optional[EdgeStyle] = None
    weight: Optional[float] = None

    def merged_with(self, other: "EdgeEnrichment") -> "EdgeEnrichment":
        return _merge(self, other)


class CustomEdge(BaseModel):
    """A provider-declared edge independent of the link table."""

    source: str = Field(..., alias="from")
    target: str = Field(..., alias="to")
    type: str
    label: Optional[str] = None
    color: Optional[str] = None
    width: Optional[float] = None
    style: Optional[EdgeStyle] = None
    properties: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


def _merge(base, overlay):
    scalars = {
        name: value
        for name, value in overlay
        if name != "properties" and value is not None
    }
    properties = {**base.properties, **overlay.properties}
    return base.model_copy(update={**scalars, "properties": properties})


__all__ = ["NodeEnrichment", "EdgeEnrichment", "CustomEdge", "EdgeStyle"]
