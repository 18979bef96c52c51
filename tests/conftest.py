"""
Prerender Middleware - Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   The rendering service is replaced by an httpx.MockTransport stub; the
       host application is a FastAPI app from create_app() with two routes that
       mirror a typical site (a stylesheet and a catch-all page).

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── clean_prerender_env (autouse): no PRERENDER_* variables leak in
    ├── render_service: stub rendering service recording every request
    ├── make_request: IncomingRequest factory for unit tests
    ├── make_config: PrerenderConfig factory
    └── make_client: HTTPX AsyncClient bound to a freshly built app
"""

from typing import Dict, List, Optional, Tuple, Union

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from httpx import ASGITransport, AsyncClient

from prerender_middleware.config import PrerenderConfig
from prerender_middleware.main import create_app
from prerender_middleware.schemas.render import IncomingRequest

BASE_URL = "http://127.0.0.1:8888"

PRERENDER_ENV_VARS = (
    "PRERENDER_TOKEN",
    "PRERENDER_SERVICE_URL",
    "PRERENDER_WHITELIST",
    "PRERENDER_BLACKLIST",
    "PRERENDER_PROTOCOL",
    "PRERENDER_HOST",
    "PRERENDER_TIMEOUT",
    "PRERENDER_LOG_LEVEL",
    "PRERENDER_EXTENSION_BLACKLIST",
    "PRERENDER_CRAWLER_USER_AGENTS",
)


# ══════════════════════════════════════════════════════════════════════════
# Rendering Service Stub
# ══════════════════════════════════════════════════════════════════════════

StubHeaders = Union[Dict[str, str], List[Tuple[str, str]]]
StubEntry = Union[Tuple[int, bytes, StubHeaders], Exception]


class RenderServiceStub:
    """
    Stand-in for the remote rendering service.

    Register replies per full URL; any other URL fails like an unreachable
    host (httpx.ConnectError). Every request is kept in `requests`.
    """

    def __init__(self):
        self.routes: Dict[str, StubEntry] = {}
        self.requests: List[httpx.Request] = []

    def reply(
        self,
        url: str,
        status_code: int = 200,
        content: Union[str, bytes] = b"",
        headers: Optional[StubHeaders] = None,
    ) -> None:
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.routes[url] = (status_code, content, headers or {})

    def fail(self, url: str, exc: Exception) -> None:
        self.routes[url] = exc

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        entry = self.routes.get(str(request.url))
        if entry is None:
            raise httpx.ConnectError(f"No stub for {request.url}", request=request)
        if isinstance(entry, Exception):
            raise entry
        status_code, content, headers = entry
        # A stream (not content=) keeps the body raw and unread, like the wire
        return httpx.Response(status_code, headers=headers, stream=httpx.ByteStream(content))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_prerender_env(monkeypatch):
    for name in PRERENDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def render_service() -> RenderServiceStub:
    return RenderServiceStub()


@pytest.fixture
def make_request():
    """
    Build an IncomingRequest from a URL, the way the middleware would.

    Usage:
        request = make_request("http://example.com/foo?bar=1", user_agent="googlebot")
    """

    def _make(
        url: str = f"{BASE_URL}/",
        method: str = "GET",
        user_agent: Optional[str] = None,
        referer: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> IncomingRequest:
        scheme, rest = url.split("://", 1)
        host, _, path_and_query = rest.partition("/")
        path, _, query = f"/{path_and_query}".partition("?")
        all_headers = {k.lower(): v for k, v in (headers or {}).items()}
        if user_agent is not None:
            all_headers["user-agent"] = user_agent
        if referer is not None:
            all_headers["referer"] = referer
        return IncomingRequest(
            method=method,
            scheme=scheme,
            host=host,
            path=path,
            query_string=query,
            headers=all_headers,
        )

    return _make


@pytest.fixture
def make_config():
    def _make(**options) -> PrerenderConfig:
        return PrerenderConfig.from_options(**options)

    return _make


def add_site_routes(app: FastAPI) -> None:
    """Routes of the host site; they answer whenever prerendering passes through."""

    @app.get("/foo.css")
    async def stylesheet():
        return PlainTextResponse("body { color: pink; }")

    @app.api_route(
        "/{p:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    )
    async def catch_all(p: str):
        return PlainTextResponse("ok")


@pytest_asyncio.fixture
async def make_client(render_service):
    """
    Build an app with the given prerender options and return a client for it.

    Usage:
        async def test_x(make_client, render_service):
            client = await make_client(token="MY_TOKEN")
            response = await client.get("/", headers={"User-Agent": "googlebot"})
    """
    opened = []

    async def _make(**options) -> AsyncClient:
        options.setdefault("transport", render_service.transport)
        app = create_app(**options)
        add_site_routes(app)
        client = AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL)
        opened.append((client, app))
        return client

    yield _make

    for client, app in opened:
        await client.aclose()
        await app.state.prerender.aclose()
