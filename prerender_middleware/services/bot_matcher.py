"""
Prerender Middleware - Bot Matcher
==================================

What:  Pure predicate deciding whether a client will not execute JavaScript.
How:   A request is a bot when either
       1. its User-Agent contains a known crawler token (case-insensitive), or
       2. its query string carries the `_escaped_fragment_` parameter (any value,
          including empty), the legacy AJAX-crawling marker.
"""

import logging
from typing import Iterable

import httpx

from prerender_middleware.config import CRAWLER_USER_AGENTS, PrerenderConfig
from prerender_middleware.schemas.render import IncomingRequest

logger = logging.getLogger(__name__)

ESCAPED_FRAGMENT = "_escaped_fragment_"


def has_escaped_fragment(url: str) -> bool:
    """True when the URL's query string has an `_escaped_fragment_` key."""
    try:
        params = httpx.URL(url).params
    except (httpx.InvalidURL, ValueError):
        return False
    return ESCAPED_FRAGMENT in params


def is_bot(
    user_agent: str,
    url: str,
    crawlers: Iterable[str] = CRAWLER_USER_AGENTS,
) -> bool:
    """
    Decide whether a request comes from a non-executing client.

    Args:
        user_agent: User-Agent header; None or empty counts as a regular browser.
        url:        Fully-qualified request URL.
        crawlers:   Lower-case tokens to look for in the User-Agent.

    Never raises.
    """
    ua = (user_agent or "").lower()
    if ua and any(token in ua for token in crawlers):
        return True
    return has_escaped_fragment(url)


def is_bot_request(request: IncomingRequest, config: PrerenderConfig) -> bool:
    """
    is_bot() over a request view, with the configured crawler list.

    The Buffer link-preview crawler identifies itself with an X-BufferBot header
    instead of a distinctive User-Agent.
    """
    if request.header("x-bufferbot"):
        return True
    return is_bot(request.user_agent, request.url, config.crawler_user_agents)
