"""
Prerender Middleware - Target URL Builder
=========================================

What:  Reconstructs the URL the client asked for and composes the rendering
       service URL from it.
How:   Pure string operations; the path and query are used exactly as received
       so already-encoded characters are never re-encoded.

Scheme resolution (first match wins):
    1. config.protocol                         (explicit override)
    2. CF-Visitor: {"scheme":"https"}          (Cloudflare Flexible SSL)
    3. X-Forwarded-Proto: https[,http]         (Heroku SSL add-on, load balancers)
    4. the scheme the server received
"""

import json
import logging
from typing import Optional

from prerender_middleware.config import PrerenderConfig
from prerender_middleware.schemas.render import IncomingRequest

logger = logging.getLogger(__name__)


def _cloudflare_scheme(request: IncomingRequest) -> Optional[str]:
    raw = request.header("cf-visitor")
    if not raw:
        return None
    try:
        scheme = json.loads(raw).get("scheme")
    except (ValueError, AttributeError):
        logger.debug("Ignoring unparseable CF-Visitor header: %r", raw)
        return None
    return scheme.lower() if isinstance(scheme, str) and scheme else None


def _forwarded_scheme(request: IncomingRequest) -> Optional[str]:
    raw = request.header("x-forwarded-proto")
    if not raw:
        return None
    # Chained proxies append: "https,http" → the client-facing hop is first
    first = raw.split(",")[0].strip().lower()
    return first or None


def resolve_scheme(request: IncomingRequest, config: PrerenderConfig) -> str:
    return (
        config.protocol
        or _cloudflare_scheme(request)
        or _forwarded_scheme(request)
        or request.scheme
    )


def build_full_url(request: IncomingRequest, config: PrerenderConfig) -> str:
    """Original request URL: scheme://host/path?query."""
    scheme = resolve_scheme(request, config)
    host = config.host or request.host
    url = f"{scheme}://{host}{request.path}"
    if request.query_string:
        url = f"{url}?{request.query_string}"
    return url


def build_render_url(request: IncomingRequest, config: PrerenderConfig) -> str:
    """
    Rendering service URL for `request`.

    Example:
        service_url = "http://service.prerender.io/"
        request     = GET http://127.0.0.1:8888/foo?bar=true
        result      = "http://service.prerender.io/http://127.0.0.1:8888/foo?bar=true"

    A trailing slash on service_url is used as-is; when missing, one "/" is added.
    """
    service_url = config.service_url
    if not service_url.endswith("/"):
        service_url = f"{service_url}/"
    return f"{service_url}{build_full_url(request, config)}"
