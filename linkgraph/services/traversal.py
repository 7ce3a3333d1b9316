"""Breadth-first discovery of files connected to a center file."""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from ..models.filters import Direction, LinkFilters
from .database import GraphStore, StoreQueryError
from .filter_compiler import FilterCompiler
from .link_targets import backlink_condition, target_matches

logger = logging.getLogger(__name__)


class GraphTraversal:
    """Frontier-based BFS over the file/link relation.

    Filters are applied while links are followed, so a file that only
    qualifies through a filtered-out neighbour is never visited.
    """

    def __init__(self, store: GraphStore, compiler: FilterCompiler):
        self.store = store
        self.compiler = compiler

    def connected_files(
        self,
        center_file: str,
        depth: int,
        direction: Direction,
        filters: LinkFilters,
    ) -> Dict[str, int]:
        """Return ``{file path: hop distance}`` for every reachable file.

        The center is always present at distance 0. Insertion order is
        discovery order.
        """
        link_types = filters.effective_link_types()
        visited: Dict[str, int] = {center_file: 0}
        frontier: List[str] = [center_file]

        for current_depth in range(depth):
            next_frontier: List[str] = []
            for file_path in frontier:
                neighbours: List[str] = []
                if direction != "incoming":
                    neighbours.extend(self.links_from(file_path, filters, link_types))
                if direction != "outgoing":
                    neighbours.extend(self.links_to(file_path, filters, link_types))

                for neighbour in neighbours:
                    if neighbour not in visited:
                        visited[neighbour] = current_depth + 1
                        next_frontier.append(neighbour)

            frontier = next_frontier
            if not frontier:
                break

        return visited

    def links_from(
        self, file_path: str, filters: LinkFilters, link_types: Sequence[str]
    ) -> List[str]:
        """Targets of filtered outgoing links that are indexed files."""
        compiled = self.compiler.compile(filters, link_types)
        sql = f"""
            SELECT DISTINCT l.target
            FROM links l
            LEFT JOIN files f ON l.target = f.path
            LEFT JOIN headings h ON l.heading_id = h.id
            WHERE l.file_path = ?
              AND {compiled.where_clause()}
              AND f.id IS NOT NULL
            ORDER BY l.target
        """
        try:
            rows = self.store.execute(sql, [file_path, *compiled.params])
        except StoreQueryError as exc:
            logger.error(f"Error getting outgoing links for {file_path}: {exc}")
            return []
        return [row["target"] for row in rows]

    def links_to(
        self, file_path: str, filters: LinkFilters, link_types: Sequence[str]
    ) -> List[str]:
        """Sources of filtered links whose target resolves to ``file_path``."""
        match_condition, match_params = backlink_condition(file_path)
        compiled = self.compiler.compile(filters, link_types)
        sql = f"""
            SELECT DISTINCT l.file_path, l.target
            FROM links l
            LEFT JOIN files f ON l.file_path = f.path
            LEFT JOIN headings h ON l.heading_id = h.id
            WHERE {match_condition}
              AND {compiled.where_clause()}
              AND f.id IS NOT NULL
            ORDER BY l.file_path
        """
        try:
            rows = self.store.execute(sql, [*match_params, *compiled.params])
        except StoreQueryError as exc:
            logger.error(f"Error getting incoming links for {file_path}: {exc}")
            return []

        sources: Dict[str, None] = {}
        for row in rows:
            # LIKE is case-insensitive in SQLite; re-check the match exactly.
            if target_matches(row["target"], file_path):
                sources.setdefault(row["file_path"], None)
        return list(sources)


__all__ = ["GraphTraversal"]
