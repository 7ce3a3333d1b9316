"""HTTP API routes for link graphs and link statistics."""

from __future__ import annotations

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel

from ...models.filters import Direction
from ...models.graph import GraphData, GraphRequest, IndexStats, LinkStats
from ...services.builtin_providers import BUILTIN_PROVIDERS
from ...services.enrichment import EnrichmentProvider, EnrichmentRegistry
from ...services.link_graph import LinkGraphService

router = APIRouter()

BUILTIN_PROVIDERS_BY_ID = {provider.id: provider for provider in BUILTIN_PROVIDERS}


class ProviderInfo(BaseModel):
    """Registered graph data provider, as listed to clients."""

    id: str
    name: str
    description: Optional[str] = None
    priority: int = 0


def get_registry(request: Request) -> EnrichmentRegistry:
    return request.app.state.enrichment_registry


def get_graph_service(request: Request) -> LinkGraphService:
    return LinkGraphService(
        registry=request.app.state.enrichment_registry,
        config=request.app.state.config,
    )


@router.get("/api/graph", response_model=GraphData)
async def get_graph(
    graph_service: Annotated[LinkGraphService, Depends(get_graph_service)],
    file: str = Query(..., min_length=1),
    depth: Optional[int] = Query(None, ge=0, le=10),
    direction: Optional[Direction] = Query(None),
    max_nodes: Optional[int] = Query(None, ge=1),
) -> GraphData:
    """Build an unfiltered link graph around ``file``."""
    try:
        return await graph_service.build_graph(
            file, depth=depth, direction=direction, max_nodes=max_nodes
        )
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to build graph: {str(e)}")


@router.post("/api/graph", response_model=GraphData)
async def post_graph(
    payload: GraphRequest,
    graph_service: Annotated[LinkGraphService, Depends(get_graph_service)],
) -> GraphData:
    """Build a link graph with metadata filters."""
    try:
        return await graph_service.build_graph(
            payload.file,
            depth=payload.depth,
            direction=payload.direction,
            filters=payload.filters,
            max_nodes=payload.max_nodes,
        )
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to build graph: {str(e)}")


@router.get("/api/links/stats", response_model=LinkStats)
async def get_link_stats(
    graph_service: Annotated[LinkGraphService, Depends(get_graph_service)],
    file: str = Query(..., min_length=1),
) -> LinkStats:
    """Outgoing links by type and backlink count for one file."""
    try:
        return graph_service.get_link_stats(file)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get link stats: {str(e)}")


@router.get("/api/index/status", response_model=IndexStats)
async def get_index_status(
    graph_service: Annotated[LinkGraphService, Depends(get_graph_service)],
) -> IndexStats:
    """Row counts of the link index. Answers 503 when the index cannot be read."""
    return graph_service.get_index_stats()


def _provider_info(provider: EnrichmentProvider) -> ProviderInfo:
    return ProviderInfo(
        id=provider.id,
        name=provider.name or provider.id,
        description=provider.description,
        priority=provider.priority or 0,
    )


@router.get("/api/graph/providers", response_model=List[ProviderInfo])
async def list_providers(
    registry: Annotated[EnrichmentRegistry, Depends(get_registry)],
) -> List[ProviderInfo]:
    """Registered graph data providers in the order they run."""
    return [_provider_info(provider) for provider in registry.get_all()]


@router.post(
    "/api/graph/providers/{provider_id}",
    response_model=ProviderInfo,
    status_code=status.HTTP_201_CREATED,
)
async def enable_builtin_provider(
    provider_id: str,
    registry: Annotated[EnrichmentRegistry, Depends(get_registry)],
) -> ProviderInfo:
    """Register a built-in provider again; 409 if it is already active."""
    provider = BUILTIN_PROVIDERS_BY_ID.get(provider_id)
    if provider is None:
        raise HTTPException(status_code=404, detail=f"Unknown built-in provider: {provider_id}")
    registry.register(provider)
    return _provider_info(provider)


@router.delete("/api/graph/providers/{provider_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_provider(
    provider_id: str,
    registry: Annotated[EnrichmentRegistry, Depends(get_registry)],
) -> Response:
    """Unregister a provider for the rest of the process lifetime."""
    if not registry.unregister(provider_id):
        raise HTTPException(status_code=404, detail=f"Unknown graph data provider: {provider_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router", "ProviderInfo", "get_graph_service", "get_registry"]
