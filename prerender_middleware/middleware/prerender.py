"""
Prerender Middleware - ASGI Middleware
======================================

What:  Starlette middleware exposing the prerender decision to the host app.
How:   For each request the middleware asks PrerenderService.intercept():
       - None           → call_next(request): the host handles it unchanged
       - RenderOutcome  → a Response with the result's status, headers and body
Who:   Registered by the host with app.add_middleware(PrerenderMiddleware, ...).

Response synthesis:
    Status and headers are relayed from the RenderResult. Framing headers
    (content-length, transfer-encoding and other hop-by-hop headers) are left
    to Starlette, since the body may have been decoded from gzip.

after_render:
    For results fetched from the rendering service, the cache hook runs as a
    Starlette BackgroundTask with the exact result that was sent, after the
    body has been written.
"""

import logging
from typing import List, Optional, Tuple

from starlette.background import BackgroundTask
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from prerender_middleware.exceptions import ConfigurationError
from prerender_middleware.schemas.render import IncomingRequest, RenderResult
from prerender_middleware.services.prerender_service import PrerenderService, RenderOutcome

logger = logging.getLogger(__name__)

# Headers describing the upstream connection rather than the page
EXCLUDED_RESPONSE_HEADERS = {
    "connection",
    "content-length",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
}


def relay_headers(result: RenderResult) -> List[Tuple[str, str]]:
    return [
        (name, value)
        for name, value in result.headers
        if name.lower() not in EXCLUDED_RESPONSE_HEADERS
    ]


class PrerenderMiddleware(BaseHTTPMiddleware):
    """
    Serves prerendered snapshots to crawlers, fails open to the host app.

    Args:
        app:      The wrapped ASGI application.
        service:  A ready PrerenderService. The caller owns it and closes it
                  (create_app() does so in its lifespan).
        **options: PrerenderConfig options, used when `service` is not given.
                   Invalid options raise ConfigurationError at construction.

    A service built from `options` belongs to the middleware and is closed
    when the application receives lifespan.shutdown.
    """

    def __init__(
        self,
        app: ASGIApp,
        service: Optional[PrerenderService] = None,
        **options,
    ):
        super().__init__(app)
        if service is not None and options:
            raise ConfigurationError(
                message="Pass either a PrerenderService or options, not both",
                context={"options": sorted(options)},
            )
        self.owns_service = service is None
        self.service = service or PrerenderService.from_options(**options)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan" and self.owns_service:
            await self.app(scope, self._closing_on_shutdown(receive), send)
            return
        await super().__call__(scope, receive, send)

    def _closing_on_shutdown(self, receive: Receive) -> Receive:
        async def wrapped_receive() -> Message:
            message = await receive()
            if message["type"] == "lifespan.shutdown":
                await self.service.aclose()
            return message

        return wrapped_receive

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        view = IncomingRequest.from_starlette(request)
        outcome = await self.service.intercept(view)
        if outcome is None:
            return await call_next(request)
        return self.build_response(view, outcome)

    def build_response(self, view: IncomingRequest, outcome: RenderOutcome) -> Response:
        result = outcome.result
        background = None
        if not outcome.from_cache:
            background = BackgroundTask(self.service.after_render, view, result)

        logger.info(
            "Prerendered %s %s → %d (%s)",
            view.method,
            view.url,
            result.status_code,
            outcome.source,
        )
        response = Response(
            content=result.body,
            status_code=result.status_code,
            background=background,
        )
        # append, not assign: repeated headers (Set-Cookie) stay separate lines
        for name, value in relay_headers(result):
            response.headers.append(name, value)
        return response
