"""Aggregate raw link rows into weighted edges between discovered nodes."""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Sequence

from ..models.filters import Direction, LinkFilters
from ..models.graph import GraphEdge
from .config import LinkResolutionMode
from .database import GraphStore, StoreQueryError
from .filter_compiler import FilterCompiler, placeholders
from .link_targets import resolve_target

logger = logging.getLogger(__name__)

# Stay well below SQLite's bound-parameter limit.
SOURCE_BATCH_SIZE = 500


def _batches(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def edge_title(count: int) -> str:
    return f"{count} link(s)"


class EdgeAggregator:
    """Group links by (source, resolved target, link type) and sum their counts."""

    def __init__(
        self,
        store: GraphStore,
        compiler: FilterCompiler,
        resolution_mode: LinkResolutionMode = "tiered",
    ):
        self.store = store
        self.compiler = compiler
        self.resolution_mode = resolution_mode

    def build_edges(
        self,
        node_ids: Sequence[str],
        direction: Direction,
        filters: LinkFilters,
        center_file: Optional[str] = None,
    ) -> List[GraphEdge]:
        """Return deduplicated edges whose endpoints are both in ``node_ids``.

        ``node_ids`` must be in canonical order; it decides which node wins
        when a link target matches several of them.
        """
        if not node_ids:
            return []

        node_set = set(node_ids)
        edges: Dict[str, GraphEdge] = {}

        for source, raw_target, link_type, count in self._grouped_links(node_ids, filters):
            if source not in node_set:
                continue
            target = resolve_target(raw_target, node_ids, self.resolution_mode)
            if target is None:
                continue
            if not self._direction_allows(direction, source, target, center_file):
                continue

            edge_id = f"{source}|{target}|{link_type}"
            existing = edges.get(edge_id)
            if existing is None:
                edges[edge_id] = GraphEdge(
                    id=edge_id,
                    source=source,
                    target=target,
                    link_type=link_type,
                    count=count,
                    title=edge_title(count),
                )
            else:
                existing.count += count
                existing.title = edge_title(existing.count)

        return list(edges.values())

    def _grouped_links(self, node_ids: Sequence[str], filters: LinkFilters):
        # Every node already satisfied the file-level filters during traversal.
        compiled = self.compiler.compile(
            filters, filters.effective_link_types(), include_file_conditions=False
        )
        for batch in _batches(list(node_ids), SOURCE_BATCH_SIZE):
            sql = f"""
                SELECT l.file_path, l.target, l.link_type, COUNT(*) AS count
                FROM links l
                LEFT JOIN headings h ON l.heading_id = h.id
                WHERE l.file_path IN ({placeholders(len(batch))})
                  AND {compiled.where_clause()}
                GROUP BY l.file_path, l.target, l.link_type
                ORDER BY l.file_path, l.target, l.link_type
            """
            try:
                rows = self.store.execute(sql, [*batch, *compiled.params])
            except StoreQueryError as exc:
                logger.error(f"Error building edges: {exc}")
                continue
            for row in rows:
                yield row["file_path"], row["target"], row["link_type"], int(row["count"])

    @staticmethod
    def _direction_allows(
        direction: Direction, source: str, target: str, center_file: Optional[str]
    ) -> bool:
        if center_file is None or source == target:
            return True
        if direction == "outgoing":
            return target != center_file
        if direction == "incoming":
            return source != center_file
        return True


__all__ = ["EdgeAggregator", "edge_title", "SOURCE_BATCH_SIZE"]
