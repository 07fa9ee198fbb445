"""
FastAPI application entry point.

Run:
- development: uvicorn coursedocs.app.main:app --reload
- production: uvicorn coursedocs.app.main:app
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from coursedocs.app.routes import generate, templates
from coursedocs.core.config import PackageSettings, load_config, resolve_path
from coursedocs.templates.manager import TemplateManager
from coursedocs.templates.registry import create_default_registry

logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifecycle.

    Startup: config, package settings, template store, template registry
    """
    config = load_config()
    templates_root = resolve_path(config, "templates_root", "templates")
    manifest_path = resolve_path(config, "manifest", "templates/manifest.yaml")

    app.state.config = config
    app.state.settings = PackageSettings.from_dict(config.get("package"))
    app.state.logs_dir = resolve_path(config, "logs", "logs")
    app.state.template_manager = TemplateManager(templates_root)
    app.state.registry = create_default_registry(
        manifest_path=manifest_path,
        manager=app.state.template_manager,
    )
    logger.info(f"Template registry ready: {len(app.state.registry.ids())} templates")

    yield


# =============================================================================
# App Instance
# =============================================================================

app = FastAPI(
    title="Course Document Package Engine",
    description="Course record → filled training documents, packaged in one archive",
    version="2.1.0",
    lifespan=lifespan,
)

app.include_router(generate.api_router, prefix="/api/generate", tags=["Generate API"])
app.include_router(templates.api_router, prefix="/api/templates", tags=["Templates API"])


# =============================================================================
# Root Endpoints
# =============================================================================


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check."""
    return {"status": "ok"}


# =============================================================================
# CLI Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "coursedocs.app.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
