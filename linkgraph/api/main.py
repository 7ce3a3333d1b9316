"""FastAPI application main entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from ..services.builtin_providers import register_builtin_providers
from ..services.config import AppConfig, get_config
from ..services.database import init_database
from ..services.enrichment import EnrichmentRegistry
from .middleware import install_log_buffer, register_error_handlers
from .routes import graph, system

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig | None = None, registry: EnrichmentRegistry | None = None
) -> FastAPI:
    """Composition root: one enrichment registry per application."""
    config = config or get_config()
    if registry is None:
        registry = EnrichmentRegistry()
        if config.enable_builtin_providers:
            register_builtin_providers(registry)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Running startup: ensuring link index schema...")
        try:
            init_database(config.database_path)
            logger.info(f"Link index ready at {config.database_path}")
        except Exception as exc:
            logger.exception("Startup failed: %s", exc)
            logger.error("App starting without an initialized link index")
        yield

    app = FastAPI(
        title="Link Graph API",
        description="Link graph construction and enrichment over an indexed document corpus",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.enrichment_registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    install_log_buffer(level=logging.getLevelName(config.log_level))

    app.include_router(graph.router, tags=["graph"])
    app.include_router(system.router, tags=["system"])
    return app


app = create_app()

__all__ = ["app", "create_app"]
