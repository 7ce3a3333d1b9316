"""Per-file display aggregates for graph nodes."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
import json
import logging
from typing import Dict, List

from ..models.filters import TERMINAL_TODO_STATES
from ..models.graph import GraphNode
from .database import GraphStore, StoreQueryError
from .filter_compiler import placeholders
from .link_targets import basename

logger = logging.getLogger(__name__)

TOP_TAG_LIMIT = 5


@dataclass
class FileMetadata:
    """Aggregates used to build one node; zeroed when the store is unreadable."""

    file_type: str = "org"
    mtime: float = 0.0
    heading_count: int = 0
    todo_count: int = 0
    link_count: int = 0
    has_upcoming_deadline: bool = False
    top_tags: List[str] = field(default_factory=list)


def build_tooltip(file_path: str, metadata: FileMetadata) -> str:
    """Build the HTML hover text for a node."""
    name = basename(file_path)
    warning = " (deadline soon)" if metadata.has_upcoming_deadline else ""
    modified = (
        datetime.fromtimestamp(metadata.mtime).strftime("%Y-%m-%d")
        if metadata.mtime
        else "Unknown"
    )
    lines = [
        f"<b>{name}</b>{warning}",
        "<hr>",
        f"Path: {file_path}",
        f"{metadata.heading_count} headings",
        f"{metadata.todo_count} active TODOs",
        f"{metadata.link_count} links",
        f"Modified: {modified}",
    ]
    if metadata.top_tags:
        lines.append("Tags: " + " ".join(f":{tag}:" for tag in metadata.top_tags))
    return "\n".join(lines)


class NodeMetadataAggregator:
    """Fetch heading, TODO, deadline, link and tag aggregates for files."""

    def __init__(self, store: GraphStore, upcoming_deadline_days: int = 7):
        self.store = store
        self.upcoming_deadline_days = upcoming_deadline_days

    def build_nodes(self, center_file: str, connected: Dict[str, int]) -> List[GraphNode]:
        """Create one node per discovered file, most relevant first.

        Ordering is level ascending, then outgoing link count descending;
        ties keep discovery order.
        """
        nodes: List[GraphNode] = []
        for file_path, level in connected.items():
            metadata = self.file_metadata(file_path)
            nodes.append(
                GraphNode(
                    id=file_path,
                    label=basename(file_path),
                    title=build_tooltip(file_path, metadata),
                    level=level,
                    is_center=file_path == center_file,
                    file_type=metadata.file_type,
                    mtime=metadata.mtime,
                    heading_count=metadata.heading_count,
                    todo_count=metadata.todo_count,
                    link_count=metadata.link_count,
                    has_upcoming_deadline=metadata.has_upcoming_deadline,
                    top_tags=metadata.top_tags,
                )
            )

        nodes.sort(key=lambda node: (node.level, -node.link_count))
        return nodes

    def file_metadata(self, file_path: str) -> FileMetadata:
        try:
            file_rows = self.store.execute(
                "SELECT file_type, mtime FROM files WHERE path = ?", [file_path]
            )
            heading_rows = self.store.execute(
                f"""
                SELECT
                    COUNT(*) AS total,
                    SUM(CASE WHEN todo_state IS NOT NULL
                              AND todo_state NOT IN ({placeholders(len(TERMINAL_TODO_STATES))})
                        THEN 1 ELSE 0 END) AS todos,
                    SUM(CASE WHEN deadline IS NOT NULL
                              AND deadline > date('now')
                              AND deadline < date('now', ?)
                        THEN 1 ELSE 0 END) AS upcoming
                FROM headings
                WHERE file_path = ?
                """,
                [*TERMINAL_TODO_STATES, f"+{self.upcoming_deadline_days} days", file_path],
            )
            link_rows = self.store.execute(
                "SELECT COUNT(*) AS count FROM links WHERE file_path = ?", [file_path]
            )
            tag_rows = self.store.execute(
                "SELECT tags FROM headings WHERE file_path = ? AND tags IS NOT NULL AND tags != '[]'",
                [file_path],
            )
        except StoreQueryError as exc:
            logger.error(f"Error getting file metadata for {file_path}: {exc}")
            return FileMetadata()

        file_row = file_rows[0] if file_rows else None
        headings = heading_rows[0] if heading_rows else None
        return FileMetadata(
            file_type=(file_row["file_type"] if file_row else None) or "org",
            mtime=float((file_row["mtime"] if file_row else None) or 0.0),
            heading_count=int((headings["total"] if headings else None) or 0),
            todo_count=int((headings["todos"] if headings else None) or 0),
            link_count=int(link_rows[0]["count"] if link_rows else 0),
            has_upcoming_deadline=int((headings["upcoming"] if headings else None) or 0) > 0,
            top_tags=_top_tags(row["tags"] for row in tag_rows),
        )


def _top_tags(serialized_tag_lists) -> List[str]:
    counts: Counter[str] = Counter()
    for raw in serialized_tag_lists:
        try:
            tags = json.loads(raw)
        except (TypeError, ValueError):
            continue
        if isinstance(tags, list):
            counts.update(tag for tag in tags if isinstance(tag, str))
    return [tag for tag, _ in counts.most_common(TOP_TAG_LIMIT)]


__all__ = ["NodeMetadataAggregator", "FileMetadata", "build_tooltip", "TOP_TAG_LIMIT"]
