"""
Prerender Middleware - Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for each failure mode of the prerender flow.
How:   Each exception carries a message and an optional context dict. The
       orchestrator's outer boundary catches them and degrades to pass-through,
       so none of them ever reaches the end client.
Who:   Raised by services; caught by PrerenderService.intercept() and the
       cache bridge. ConfigurationError is the only one that escapes, at startup.

Exception Hierarchy:
    PrerenderError (base)
    ├── InvalidUrlError          → request is not eligible (filter veto)
    ├── RenderFetchFailedError   → pass-through to the host handler
    ├── HookFailureError         → cache miss / ignored store
    └── ConfigurationError       → fatal, raised while building the middleware
"""

from typing import Any, Dict, Optional


class PrerenderError(Exception):
    """
    Base exception for all prerender middleware errors.

    Attributes:
        message:  Human-readable error description
        context:  Additional debug info (logged, never sent to clients)
    """

    def __init__(
        self,
        message: str = "An unexpected prerender error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class InvalidUrlError(PrerenderError):
    """
    Raised when the incoming request URL cannot be parsed.

    When:    Host header or query string contains characters httpx refuses.
    Effect:  EligibilityFilter vetoes; the request passes through unmodified.
    """

    def __init__(
        self,
        url: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["url"] = url
        super().__init__(message=f"Cannot parse request URL '{url}'", context=ctx)
        self.url = url


class RenderFetchFailedError(PrerenderError):
    """
    Raised when the outbound request to the rendering service fails.

    When:    DNS/connection failure, timeout, any other transport error, or a
             gzip body that cannot be decoded. A non-2xx status is NOT an error.
    Effect:  The orchestrator treats the request as non-intercepted.
    Retries: None. A failed fetch is reported once and the site keeps serving.
    """

    def __init__(
        self,
        message: str = "Rendering service request failed",
        url: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if url:
            ctx["url"] = url
        super().__init__(message=message, context=ctx)
        self.url = url


class HookFailureError(PrerenderError):
    """
    Raised (and immediately handled) when a before/after render hook fails.

    before_render failure → treated as a cache miss
    after_render failure  → ignored after logging
    """

    def __init__(
        self,
        hook: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["hook"] = hook
        super().__init__(message=f"Cache hook '{hook}' raised an error", context=ctx)
        self.hook = hook


class ConfigurationError(PrerenderError):
    """
    Raised when middleware options are structurally invalid.

    When:    Building PrerenderConfig (bad regex, unknown protocol, wrong types).
    Effect:  Fatal at startup; never raised per request.
    """

    def __init__(
        self,
        message: str = "Invalid prerender configuration",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
