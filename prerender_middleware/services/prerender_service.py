"""
Prerender Middleware - Intercept Orchestrator
=============================================

What:  Sequences eligibility, cache lookup, URL building and the remote fetch
       for one request, and decides between "respond" and "pass through".
Who:   Called by PrerenderMiddleware.dispatch() for every request.

Per-request state machine:

    Start → Evaluating ──reject──────────────────────────────→ PassThrough
                 │
               admit
                 ↓
            CacheLookup ──hit──────────────────────────────────→ Respond
                 │
                miss
                 ↓
            RemoteFetch ──success─→ Respond (+ after_render)
                 │
              failure ─────────────────────────────────────────→ PassThrough

Fail-open boundary:
    intercept() wraps the whole flow in one try/except. Any PrerenderError or
    unexpected exception is logged and becomes PassThrough, so the host site
    keeps serving even when the rendering service or a hook is broken.
    asyncio.CancelledError is not an Exception and is never caught: a cancelled
    request abandons its outstanding fetch.
"""

import logging
from typing import Literal, Optional

import httpx
from pydantic import BaseModel, ConfigDict

from prerender_middleware.config import PrerenderConfig
from prerender_middleware.exceptions import PrerenderError
from prerender_middleware.schemas.render import IncomingRequest, RenderResult
from prerender_middleware.services.cache_bridge import CacheBridge, CacheHooks, FunctionCacheHooks
from prerender_middleware.services.eligibility import should_intercept
from prerender_middleware.services.render_client import RenderClient
from prerender_middleware.services.target_url import build_render_url

logger = logging.getLogger(__name__)

SOURCE_CACHE = "cache"
SOURCE_REMOTE = "remote"


class RenderOutcome(BaseModel):
    """A decision to respond: the result to send and where it came from."""

    result: RenderResult
    source: Literal["cache", "remote"]

    model_config = ConfigDict(frozen=True)

    @property
    def from_cache(self) -> bool:
        return self.source == SOURCE_CACHE


class PrerenderService:
    """
    Orchestrates the prerender decision for a single configuration.

    Args:
        config:    Resolved configuration snapshot.
        hooks:     Cache hooks; defaults to the before/after_render callables
                   from `config` (no-ops when unset).
        transport: Optional httpx transport for the render client.
    """

    def __init__(
        self,
        config: Optional[PrerenderConfig] = None,
        hooks: Optional[CacheHooks] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or PrerenderConfig.from_options()
        if hooks is None:
            hooks = FunctionCacheHooks(self.config.before_render, self.config.after_render)
        self.cache = CacheBridge(hooks)
        self.render_client = RenderClient(self.config, transport=transport)

        logger.info(
            "PrerenderService initialized: service_url=%s, token=%s, "
            "whitelist=%d, blacklist=%d",
            self.config.service_url,
            "set" if self.config.token else "unset",
            len(self.config.whitelist),
            len(self.config.blacklist),
        )

    @classmethod
    def from_options(cls, **options) -> "PrerenderService":
        """Build the service from keyword options (see PrerenderConfig)."""
        transport = options.pop("transport", None)
        hooks = options.pop("hooks", None)
        return cls(PrerenderConfig.from_options(**options), hooks=hooks, transport=transport)

    def should_intercept(self, request: IncomingRequest) -> bool:
        return should_intercept(request, self.config)

    async def intercept(self, request: IncomingRequest) -> Optional[RenderOutcome]:
        """
        Run the state machine for `request`.

        Returns:
            RenderOutcome to respond with, or None to pass through to the host.
        """
        try:
            return await self._intercept(request)
        except PrerenderError as e:
            logger.warning(
                "Prerender skipped for %s: %s | Context: %s",
                request.url,
                e.message,
                e.context,
            )
        except Exception as e:
            logger.error(
                "Unexpected prerender error for %s: %s",
                request.url,
                str(e),
                exc_info=True,
            )
        return None

    async def _intercept(self, request: IncomingRequest) -> Optional[RenderOutcome]:
        if not self.should_intercept(request):
            return None

        cached = await self.cache.lookup(request)
        if cached is not None:
            return RenderOutcome(result=cached, source=SOURCE_CACHE)

        render_url = build_render_url(request, self.config)
        result = await self.render_client.fetch_render(render_url)
        return RenderOutcome(result=result, source=SOURCE_REMOTE)

    async def after_render(self, request: IncomingRequest, result: RenderResult) -> None:
        """Hand a freshly fetched result to the cache; never raises."""
        await self.cache.store(request, result)

    async def aclose(self) -> None:
        await self.render_client.aclose()
