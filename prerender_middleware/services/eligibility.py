"""
Prerender Middleware - Eligibility Filter
=========================================

What:  Single admit/reject decision for "should this request be prerendered?".
How:   Every rule is a hard veto; the request is admitted only if none fires.

Rules:
    1. Method must be exactly GET
    2. Path extension must not be in extension_blacklist (case-insensitive)
    3. Non-empty whitelist: URL must match at least one pattern
    4. Non-empty blacklist: URL or Referer matching any pattern vetoes
    5. The client must be a bot (see bot_matcher)

A URL that cannot be parsed vetoes instead of raising, so a malformed request
always reaches the host application unmodified.
"""

import logging
import posixpath
from re import Pattern
from typing import Iterable

import httpx

from prerender_middleware.config import PrerenderConfig
from prerender_middleware.exceptions import InvalidUrlError
from prerender_middleware.schemas.render import IncomingRequest
from prerender_middleware.services.bot_matcher import is_bot_request
from prerender_middleware.services.target_url import build_full_url

logger = logging.getLogger(__name__)


def _matches_any(patterns: Iterable[Pattern[str]], value: str) -> bool:
    return bool(value) and any(p.search(value) for p in patterns)


def _parse_url(url: str) -> httpx.URL:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, ValueError) as e:
        raise InvalidUrlError(url=url, context={"reason": str(e)}) from e
    return parsed


def has_blacklisted_extension(path: str, extensions: Iterable[str]) -> bool:
    """True when the last path segment ends in one of `extensions`."""
    ext = posixpath.splitext(path)[1].lower()
    return bool(ext) and ext in extensions


def should_intercept(request: IncomingRequest, config: PrerenderConfig) -> bool:
    """
    Decide whether `request` is eligible for prerendering.

    Returns:
        True only when no rule vetoes. Never raises.
    """
    if request.method != "GET":
        logger.debug("Skip %s %s: method", request.method, request.path)
        return False

    url = build_full_url(request, config)
    try:
        parsed = _parse_url(url)
    except InvalidUrlError as e:
        logger.debug("Skip %s: %s", url, e.context.get("reason", e.message))
        return False

    if has_blacklisted_extension(parsed.path, config.extension_blacklist):
        logger.debug("Skip %s: static resource", url)
        return False

    if config.whitelist and not _matches_any(config.whitelist, url):
        logger.debug("Skip %s: not whitelisted", url)
        return False

    if config.blacklist and (
        _matches_any(config.blacklist, url)
        or _matches_any(config.blacklist, request.referer)
    ):
        logger.debug("Skip %s: blacklisted (referer=%r)", url, request.referer)
        return False

    if not is_bot_request(request, config):
        return False

    logger.debug("Intercept %s (user-agent=%r)", url, request.user_agent)
    return True
