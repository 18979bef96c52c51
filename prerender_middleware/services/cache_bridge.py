"""
Prerender Middleware - Cache Bridge
===================================

What:  Extension points that let the host plug an external cache around the
       remote render fetch.
How:   CacheHooks is an interface with two optional async methods; the defaults
       are no-ops. FunctionCacheHooks adapts the before_render / after_render
       callables from configuration (plain functions or coroutines).
       CacheBridge wraps a CacheHooks instance and owns the failure policy:
       - before_render raising → logged, treated as a miss
       - after_render raising  → logged, ignored

The cache storage itself belongs to the hooks; this package keeps no cache state.

Example:
    cache = {}

    async def before_render(request):
        return cache.get(request.url)

    def after_render(request, result):
        cache[request.url] = result

    app.add_middleware(
        PrerenderMiddleware, before_render=before_render, after_render=after_render
    )
"""

import inspect
import logging
from typing import Any, Callable, Optional

from prerender_middleware.exceptions import HookFailureError
from prerender_middleware.schemas.render import IncomingRequest, RenderResult

logger = logging.getLogger(__name__)


class CacheHooks:
    """
    Interface for a cache sitting in front of the rendering service.

    Subclass and override either method. Both may suspend.
    """

    async def before_render(self, request: IncomingRequest) -> Optional[RenderResult]:
        """Return a cached result to skip the remote fetch, or None on a miss."""
        return None

    async def after_render(self, request: IncomingRequest, result: RenderResult) -> None:
        """Observe a freshly fetched result (e.g. to store it)."""
        return None


async def _call(func: Callable[..., Any], *args: Any) -> Any:
    value = func(*args)
    if inspect.isawaitable(value):
        value = await value
    return value


class FunctionCacheHooks(CacheHooks):
    """CacheHooks built from two optional callables, sync or async."""

    def __init__(
        self,
        before_render: Optional[Callable[..., Any]] = None,
        after_render: Optional[Callable[..., Any]] = None,
    ):
        self._before = before_render
        self._after = after_render

    async def before_render(self, request: IncomingRequest) -> Optional[RenderResult]:
        if self._before is None:
            return None
        value = await _call(self._before, request)
        if value is None:
            return None
        return RenderResult.coerce(value)

    async def after_render(self, request: IncomingRequest, result: RenderResult) -> None:
        if self._after is not None:
            await _call(self._after, request, result)


class CacheBridge:
    """Applies the fail-soft policy around a CacheHooks implementation."""

    def __init__(self, hooks: Optional[CacheHooks] = None):
        self.hooks = hooks or CacheHooks()

    async def lookup(self, request: IncomingRequest) -> Optional[RenderResult]:
        try:
            result = await self.hooks.before_render(request)
        except Exception as e:
            failure = HookFailureError("before_render", context={"url": request.url})
            logger.warning("%s: %s (treating as cache miss)", failure.message, e, exc_info=True)
            return None
        if result is not None:
            logger.debug("Cache hit for %s", request.url)
        return result

    async def store(self, request: IncomingRequest, result: RenderResult) -> None:
        try:
            await self.hooks.after_render(request, result)
        except Exception as e:
            failure = HookFailureError("after_render", context={"url": request.url})
            logger.warning("%s: %s", failure.message, e, exc_info=True)
