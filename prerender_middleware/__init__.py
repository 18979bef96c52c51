"""
Prerender Middleware - Package Initializer
==========================================

What: ASGI middleware that serves prerendered HTML snapshots to crawlers.
How:  Requests from bots (or carrying `_escaped_fragment_`) are proxied to a
      rendering service; everything else reaches the host application untouched.

Architecture Note:
    ┌─────────────────────────────────────┐
    │      Middleware (ASGI boundary)     │  ← Starlette request/response
    ├─────────────────────────────────────┤
    │   PrerenderService (orchestration)  │  ← fail-open decision flow
    ├─────────────────────────────────────┤
    │ Eligibility · TargetUrl · CacheBridge · RenderClient │
    ├─────────────────────────────────────┤
    │       Config & Schemas (data)       │  ← pydantic models
    └─────────────────────────────────────┘

Usage:
    from fastapi import FastAPI
    from prerender_middleware import PrerenderMiddleware

    app = FastAPI()
    app.add_middleware(PrerenderMiddleware, token="MY_TOKEN")
"""

__version__ = "1.0.0"

from prerender_middleware.config import PrerenderConfig  # noqa: E402
from prerender_middleware.middleware.prerender import PrerenderMiddleware  # noqa: E402
from prerender_middleware.schemas.render import IncomingRequest, RenderResult  # noqa: E402
from prerender_middleware.services.cache_bridge import CacheHooks  # noqa: E402
from prerender_middleware.services.prerender_service import PrerenderService  # noqa: E402

__all__ = [
    "__version__",
    "CacheHooks",
    "IncomingRequest",
    "PrerenderConfig",
    "PrerenderMiddleware",
    "PrerenderService",
    "RenderResult",
]
