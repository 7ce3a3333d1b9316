"""Filter models for link graph queries."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Direction = Literal["both", "outgoing", "incoming"]

DEFAULT_LINK_TYPES: tuple[str, ...] = ("file",)
TERMINAL_TODO_STATES: tuple[str, ...] = ("DONE", "CANCELLED")


class LinkFilters(BaseModel):
    """Constraints applied while discovering files and aggregating edges.

    File-level filters are evaluated against the file record joined to a link.
    Heading-level filters are evaluated against the heading containing the link;
    a link outside any heading passes them unless the filter is a presence check.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "tags": ["project"],
                "exclude_done": True,
                "link_types": ["file", "id"],
            }
        },
    )

    # File-level
    file_types: Optional[List[str]] = Field(None, description="e.g. ['org', 'md']")
    modified_after: Optional[float] = Field(None, description="Epoch seconds, exclusive")
    modified_before: Optional[float] = Field(None, description="Epoch seconds, exclusive")
    project_ids: Optional[List[int]] = None

    # Heading-level
    tags: Optional[List[str]] = Field(None, description="ANY of these tags")
    exclude_tags: Optional[List[str]] = Field(None, description="NONE of these tags")
    todo_states: Optional[List[str]] = None
    exclude_done: bool = False
    priorities: Optional[List[str]] = None
    has_deadline: bool = False
    has_scheduled: bool = False
    deadline_within_days: Optional[int] = Field(None, ge=0)

    properties: Optional[Dict[str, str]] = Field(
        None, description="Heading property equality (key -> value)"
    )

    # Link-level
    link_types: Optional[List[str]] = Field(
        None, description="Link types to follow; defaults to file links only"
    )

    @field_validator("tags", "exclude_tags", "todo_states", "priorities", "file_types", "link_types")
    @classmethod
    def _strip_blank(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        cleaned = [item.strip() for item in value if isinstance(item, str) and item.strip()]
        return cleaned or None

    def effective_link_types(self) -> List[str]:
        """Return the de-duplicated link types to follow."""
        if not self.link_types:
            return list(DEFAULT_LINK_TYPES)
        return list(dict.fromkeys(self.link_types))


__all__ = ["LinkFilters", "Direction", "DEFAULT_LINK_TYPES", "TERMINAL_TODO_STATES"]
