"""Build bounded, enriched link graphs around a center file."""

from __future__ import annotations

import logging
import time
from typing import Dict, Optional

from ..models.filters import Direction, LinkFilters
from ..models.graph import GraphData, IndexStats, LinkStats
from .assembler import apply_enrichment, bound_graph
from .config import AppConfig, get_config
from .database import DatabaseService, StoreQueryError
from .edge_aggregator import EdgeAggregator
from .enrichment import EnrichmentRegistry, GraphDataContext
from .filter_compiler import Clock, FilterCompiler
from .link_targets import backlink_sources
from .node_metadata import NodeMetadataAggregator
from .traversal import GraphTraversal

logger = logging.getLogger(__name__)


class LinkGraphService:
    """Traverse, aggregate, enrich and truncate a file link graph.

    Each build opens its own read-only store and allocates fresh state; the
    only long-lived collaborator is the enrichment registry.
    """

    def __init__(
        self,
        db_service: DatabaseService | None = None,
        registry: EnrichmentRegistry | None = None,
        config: AppConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or get_config()
        self.db_service = db_service or DatabaseService(self.config.database_path)
        self.registry = registry if registry is not None else EnrichmentRegistry()
        self.clock = clock

    async def build_graph(
        self,
        center_file: str,
        depth: Optional[int] = None,
        direction: Optional[Direction] = None,
        filters: Optional[LinkFilters] = None,
        max_nodes: Optional[int] = None,
    ) -> GraphData:
        depth = self.config.default_depth if depth is None else depth
        direction = direction or self.config.default_direction
        filters = filters or LinkFilters()
        max_nodes = self.config.max_nodes if max_nodes is None else max_nodes
        start_time = time.time()

        logger.debug(
            "Building link graph",
            extra={
                "center_file": center_file,
                "depth": depth,
                "direction": direction,
                "max_nodes": max_nodes,
            },
        )

        with self.db_service.open_store() as store:
            compiler = FilterCompiler(self.config.tag_match_mode, clock=self.clock)

            connected = GraphTraversal(store, compiler).connected_files(
                center_file, depth, direction, filters
            )
            nodes = NodeMetadataAggregator(
                store, self.config.upcoming_deadline_days
            ).build_nodes(center_file, connected)
            edges = EdgeAggregator(
                store, compiler, self.config.link_resolution_mode
            ).build_edges([node.id for node in nodes], direction, filters, center_file)

            if len(self.registry):
                context = GraphDataContext(
                    center_file=center_file,
                    depth=depth,
                    max_depth=depth,
                    direction=direction,
                    store=store,
                )
                enrichment = await self.registry.apply(nodes, edges, context)
                for failure in enrichment.failures:
                    logger.warning(
                        "Graph data provider error",
                        extra={"provider_id": failure.provider_id, "error": str(failure.error)},
                    )
                nodes, edges = apply_enrichment(nodes, edges, enrichment)

        graph = bound_graph(nodes, edges, max_nodes)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Link graph built",
            extra={
                "center_file": center_file,
                "nodes": len(graph.nodes),
                "edges": len(graph.edges),
                "truncated": graph.truncated,
                "duration_ms": f"{duration_ms:.2f}",
            },
        )
        return graph

    def get_link_stats(self, file_path: str) -> LinkStats:
        """Outgoing counts by link type and the number of distinct backlinking files."""
        with self.db_service.open_store() as store:
            try:
                outgoing_rows = store.execute(
                    """
                    SELECT link_type, COUNT(*) AS count
                    FROM links
                    WHERE file_path = ?
                    GROUP BY link_type
                    ORDER BY link_type
                    """,
                    [file_path],
                )
                sources = backlink_sources(store, file_path)
            except StoreQueryError as exc:
                logger.error(f"Error getting link stats for {file_path}: {exc}")
                return LinkStats()

        outgoing_by_type: Dict[str, int] = {
            row["link_type"]: int(row["count"]) for row in outgoing_rows
        }
        return LinkStats(
            outgoing=sum(outgoing_by_type.values()),
            incoming=len(sources),
            outgoing_by_type=outgoing_by_type,
        )

    def get_index_stats(self) -> IndexStats:
        """Row counts of the link index; raises ``StoreQueryError`` when it is unreadable."""
        with self.db_service.open_store() as store:
            counts = {
                table: int(store.execute(f"SELECT COUNT(*) AS count FROM {table}")[0]["count"])
                for table in ("files", "headings", "links")
            }
        return IndexStats(**counts)


__all__ = ["LinkGraphService"]
