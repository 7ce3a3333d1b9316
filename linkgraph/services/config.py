"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.filters import Direction

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DB_PATH = PROJECT_ROOT / "data" / "index.db"

TagMatchMode = Literal["json", "substring"]
LinkResolutionMode = Literal["tiered", "legacy"]


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    database_path: Path = Field(..., description="SQLite link index location")
    default_depth: int = Field(default=2, ge=0, le=10)
    default_direction: Direction = "both"
    max_nodes: int = Field(default=100, ge=1)
    upcoming_deadline_days: int = Field(
        default=7, ge=1, description="Window for the upcoming-deadline flag"
    )
    tag_match_mode: TagMatchMode = Field(
        default="json",
        description="'json' tests structured membership, 'substring' matches the serialized array",
    )
    link_resolution_mode: LinkResolutionMode = "tiered"
    enable_builtin_providers: bool = True
    log_level: str = "INFO"

    @field_validator("database_path", mode="before")
    @classmethod
    def _normalize_db_path(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            raise ValueError("LINKGRAPH_DB_PATH cannot be empty")
        path = value if isinstance(value, Path) else Path(value)
        return path.expanduser().resolve()

    @field_validator("log_level", mode="before")
    @classmethod
    def _check_log_level(cls, value: Optional[str]) -> str:
        level = (value or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown LOG_LEVEL: {value}")
        return level


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


def _read_flag(key: str, default: str = "true") -> bool:
    return (_read_env(key, default) or default).lower() not in {"0", "false", "no"}


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    return AppConfig(
        database_path=_read_env("LINKGRAPH_DB_PATH", str(DEFAULT_DB_PATH)),
        default_depth=_read_env("GRAPH_DEFAULT_DEPTH", "2"),
        default_direction=_read_env("GRAPH_DEFAULT_DIRECTION", "both"),
        max_nodes=_read_env("GRAPH_MAX_NODES", "100"),
        upcoming_deadline_days=_read_env("GRAPH_UPCOMING_DEADLINE_DAYS", "7"),
        tag_match_mode=_read_env("GRAPH_TAG_MATCH_MODE", "json"),
        link_resolution_mode=_read_env("GRAPH_LINK_RESOLUTION", "tiered"),
        enable_builtin_providers=_read_flag("GRAPH_BUILTIN_PROVIDERS"),
        log_level=_read_env("LOG_LEVEL", "INFO"),
    )


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


def configure_logging(config: AppConfig | None = None) -> None:
    """Apply the configured log level to the root logger."""
    config = config or get_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "configure_logging",
    "TagMatchMode",
    "LinkResolutionMode",
    "PROJECT_ROOT",
    "DEFAULT_DB_PATH",
]
