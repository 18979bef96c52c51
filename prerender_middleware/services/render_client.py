"""
Prerender Middleware - Rendering Service Client
===============================================

What:  Performs the outbound GET against the rendering service.
How:   One shared httpx.AsyncClient per RenderClient, created lazily and closed
       with aclose() on application shutdown.

Wire behavior:
    GET <service_url><original-url>
        X-Prerender-Token: <token>     (only when a token is configured)
        Accept-Encoding: gzip

    The response is relayed as a RenderResult:
        - status code and headers forwarded verbatim, repeated headers included
        - a gzip body is decoded and its content-encoding header removed
        - any other body is passed through byte for byte
        - redirects are NOT followed; a 301 from the service is relayed as-is

Failure policy:
    Transport errors, timeouts and undecodable gzip bodies raise
    RenderFetchFailedError. There is no retry: the caller falls back to the host
    application immediately. An HTTP error status is not a failure here.
"""

import gzip
import logging
import time
import zlib
from typing import Optional

import httpx

from prerender_middleware.config import PrerenderConfig
from prerender_middleware.exceptions import RenderFetchFailedError
from prerender_middleware.schemas.render import RenderResult

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Prerender-Token"
GZIP_ENCODINGS = {"gzip", "x-gzip"}


class RenderClient:
    """
    Async client for the rendering service.

    Args:
        config:    Resolved middleware configuration (token, timeout).
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests.
    """

    def __init__(
        self,
        config: PrerenderConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            kwargs = {"follow_redirects": False}
            if self.config.timeout is not None:
                kwargs["timeout"] = self.config.timeout
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    def _request_headers(self) -> dict:
        headers = {"Accept-Encoding": "gzip"}
        if self.config.token:
            headers[TOKEN_HEADER] = self.config.token
        return headers

    async def fetch_render(self, url: str) -> RenderResult:
        """
        Fetch the prerendered page for `url` (already a full service URL).

        Raises:
            RenderFetchFailedError: on any transport-level failure.
        """
        start_time = time.perf_counter()
        try:
            async with self._get_client().stream(
                "GET", url, headers=self._request_headers()
            ) as response:
                # aiter_raw: bytes as sent, so only gzip gets decoded below
                raw = b"".join([chunk async for chunk in response.aiter_raw()])
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "Rendering service request failed after %.0fms: %s (%s)",
                duration_ms,
                url,
                type(e).__name__,
            )
            raise RenderFetchFailedError(
                message=f"Rendering service request failed: {e}",
                url=url,
                context={"error_type": type(e).__name__},
            ) from e

        # multi_items keeps repeated headers (Set-Cookie) as separate pairs
        headers = response.headers.multi_items()
        body = raw
        encoding = response.headers.get("content-encoding", "").strip().lower()
        if encoding in GZIP_ENCODINGS:
            try:
                body = gzip.decompress(raw)
            except (OSError, EOFError, zlib.error) as e:
                raise RenderFetchFailedError(
                    message="Rendering service returned an undecodable gzip body",
                    url=url,
                    context={"error_type": type(e).__name__},
                ) from e
            headers = [
                (name, value) for name, value in headers if name.lower() != "content-encoding"
            ]

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Rendered %s → %d in %.0fms (%d bytes)",
            url,
            response.status_code,
            duration_ms,
            len(body),
        )
        return RenderResult(status_code=response.status_code, headers=headers, body=body)

    async def aclose(self) -> None:
        """Close the pooled connections; safe to call more than once."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
