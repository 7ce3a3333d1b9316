"""Service layer: link index access, graph construction and enrichment."""

from .builtin_providers import register_builtin_providers
from .config import AppConfig, get_config, reload_config
from .database import DatabaseService, GraphStore, StoreQueryError, init_database
from .enrichment import (
    EnrichmentProvider,
    EnrichmentRegistry,
    EnrichmentResult,
    GraphDataContext,
)
from .filter_compiler import CompiledFilter, FilterCompiler
from .link_graph import LinkGraphService
from .pipeline import PriorityRegistry, ProviderFailure, Registration, RegistrationError

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "DatabaseService",
    "GraphStore",
    "StoreQueryError",
    "init_database",
    "FilterCompiler",
    "CompiledFilter",
    "LinkGraphService",
    "EnrichmentProvider",
    "EnrichmentRegistry",
    "EnrichmentResult",
    "GraphDataContext",
    "PriorityRegistry",
    "ProviderFailure",
    "Registration",
    "RegistrationError",
    "register_builtin_providers",
]
