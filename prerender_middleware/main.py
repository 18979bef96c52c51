"""
Prerender Middleware - FastAPI Application Factory
==================================================

What:  Builds a FastAPI application with PrerenderMiddleware installed.
How:   create_app(**options) resolves the configuration once, shares one
       PrerenderService between the middleware and the lifespan, and mounts
       the health route. Host applications add their own routes to the result.
Who:   uvicorn (prerender_middleware.main:app) and the test suite.

Lifecycle:
    Startup:   configure logging at the configured level
    Shutdown:  close the render client's pooled connections
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from prerender_middleware import __version__
from prerender_middleware.exceptions import ConfigurationError
from prerender_middleware.middleware.prerender import PrerenderMiddleware
from prerender_middleware.routes import health
from prerender_middleware.services.prerender_service import PrerenderService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure process-wide logging.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # One line per outbound request is already logged by RenderClient
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    service: PrerenderService = app.state.prerender
    setup_logging(service.config.log_level)
    logger.info("Prerender middleware %s starting up...", __version__)
    logger.info("Rendering service: %s", service.config.service_url)

    yield

    logger.info("Prerender middleware shutting down...")
    await service.aclose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(service: Optional[PrerenderService] = None, **options) -> FastAPI:
    """
    Create a FastAPI application with prerendering enabled.

    Args:
        service:   A ready PrerenderService; built from `options` when omitted.
        **options: PrerenderConfig options (token, service_url, whitelist, ...)
                   plus `transport` / `hooks` for PrerenderService.

    Raises:
        ConfigurationError: invalid options, or both `service` and options
                            given; reported before the app starts.
    """
    if service is not None and options:
        raise ConfigurationError(
            message="Pass either a PrerenderService or options, not both",
            context={"options": sorted(options)},
        )
    service = service or PrerenderService.from_options(**options)

    app = FastAPI(
        title="Prerender Middleware",
        description="Serves prerendered HTML snapshots to crawlers and link-preview bots.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.prerender = service

    app.add_middleware(PrerenderMiddleware, service=service)
    app.include_router(health.router)

    return app


# uvicorn prerender_middleware.main:app
app = create_app()
