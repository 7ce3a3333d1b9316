"""System routes for health and diagnostics."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from ..middleware import LOG_BUFFER

router = APIRouter()


class LogEntry(BaseModel):
    timestamp: str
    level: str
    logger: str
    message: str
    extra: Dict[str, Any]


@router.get("/health")
async def health():
    """Liveness check."""
    return {"status": "healthy"}


@router.get("/api/system/logs", response_model=List[LogEntry])
async def get_logs(level: Optional[str] = Query(None, description="e.g. WARNING")):
    """Recent log records, such as graph data provider failures."""
    entries = list(LOG_BUFFER)
    if level:
        entries = [entry for entry in entries if entry["level"] == level.upper()]
    return entries


__all__ = ["router", "LogEntry"]
