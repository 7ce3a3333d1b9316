"""Graph data providers shipped with the service.

Both run at priority -10, after any provider registered at the default
priority. Enrichments merge last-write-wins in priority order, so the
``size`` set by ``link-count-importance`` and the ``color`` set by
``recency-coloring`` replace the same fields from earlier providers. A
provider that must own those fields registers below -10, or the built-ins
are turned off with ``GRAPH_BUILTIN_PROVIDERS=false``. Property keys the
built-ins do not write are left alone.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import math
import time
from typing import Optional

from ..models.enrichment import NodeEnrichment
from ..models.graph import GraphNode
from .database import StoreQueryError
from .enrichment import EnrichmentProvider, EnrichmentRegistry, GraphDataContext
from .link_targets import backlink_sources
from .pipeline import Registration

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60

RECENCY_COLORS: tuple[tuple[float, str], ...] = (
    (DAY_SECONDS, "#4caf50"),  # modified today
    (7 * DAY_SECONDS, "#2196f3"),  # this week
    (30 * DAY_SECONDS, "#ff9800"),  # this month
)
STALE_COLOR = "#9e9e9e"


def importance_size(total_links: int) -> float:
    """Node size in [10, 50], growing logarithmically with link count."""
    return min(50.0, max(10.0, 10 + math.log2(total_links + 1) * 10))


def _incoming_links(node: GraphNode, context: GraphDataContext) -> int:
    """Distinct backlinking files, counted over the whole index."""
    if context.store is None:
        return 0
    try:
        return len(backlink_sources(context.store, node.id))
    except StoreQueryError as exc:
        logger.error(f"Error counting backlinks for {node.id}: {exc}")
        return 0


def _link_count_importance(node: GraphNode, context: GraphDataContext) -> NodeEnrichment:
    incoming = _incoming_links(node, context)
    outgoing = node.link_count
    total = incoming + outgoing
    return NodeEnrichment(
        size=importance_size(total),
        importance=total,
        properties={
            "link_count": total,
            "incoming_links": incoming,
            "outgoing_links": outgoing,
        },
    )


def _recency_color(
    node: GraphNode, context: GraphDataContext, now: Optional[float] = None
) -> Optional[NodeEnrichment]:
    if not node.mtime:
        return None

    age = (now if now is not None else time.time()) - node.mtime
    color = next((color for limit, color in RECENCY_COLORS if age < limit), STALE_COLOR)
    return NodeEnrichment(
        color=color,
        properties={
            "age_in_days": int(age // DAY_SECONDS),
            "last_modified": datetime.fromtimestamp(node.mtime, tz=timezone.utc).isoformat(),
        },
    )


link_count_importance_provider = EnrichmentProvider(
    id="link-count-importance",
    name="Link Count Importance",
    description="Sizes nodes based on their incoming and outgoing link count",
    priority=-10,
    enrich_node=_link_count_importance,
)

recency_coloring_provider = EnrichmentProvider(
    id="recency-coloring",
    name="Recency Coloring",
    description="Colors nodes based on how recently they were modified",
    priority=-10,
    enrich_node=_recency_color,
)

BUILTIN_PROVIDERS = (link_count_importance_provider, recency_coloring_provider)


def register_builtin_providers(registry: EnrichmentRegistry) -> list[Registration]:
    return [registry.register(provider) for provider in BUILTIN_PROVIDERS]


__all__ = [
    "link_count_importance_provider",
    "recency_coloring_provider",
    "register_builtin_providers",
    "importance_size",
    "BUILTIN_PROVIDERS",
]
