"""
Prerender Middleware - Request/Result Schemas
=============================================

What:  Pydantic models for the two values that flow through the prerender pipeline.
       - IncomingRequest: read-only view of the host request
       - RenderResult:    status, headers and body to send back to the client
Who:   Built by the middleware (IncomingRequest) and by RenderClient or a
       before_render cache hook (RenderResult).
When:  Per request; neither is persisted by this package.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from starlette.requests import Request


class IncomingRequest(BaseModel):
    """
    What:  The parts of the host request the prerender decision needs.
    How:   Path and query string are kept exactly as received on the wire
           (raw_path / query_string from the ASGI scope) so the outbound URL is
           never re-encoded.

    Header names are lower-cased.
    """

    method: str = Field(description="HTTP verb exactly as received")
    scheme: str = Field(default="http")
    host: str = Field(default="", description="Host header, including port")
    path: str = Field(default="/", description="Raw, still-encoded request path")
    query_string: str = Field(default="", description="Raw query string without '?'")
    headers: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @property
    def url(self) -> str:
        """Fully-qualified URL as seen by the server."""
        url = f"{self.scheme}://{self.host}{self.path}"
        if self.query_string:
            url = f"{url}?{self.query_string}"
        return url

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def referer(self) -> str:
        return self.headers.get("referer", "")

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    @classmethod
    def from_starlette(cls, request: Request) -> "IncomingRequest":
        """
        Build the view from a Starlette request.

        raw_path is latin-1 encoded bytes under ASGI; fall back to the decoded path
        for servers that do not provide it.
        """
        scope = request.scope
        raw_path = scope.get("raw_path")
        path = raw_path.decode("latin-1") if raw_path else scope.get("path", "/")
        # raw_path may carry the query on some servers
        path = path.split("?", 1)[0]

        host = request.headers.get("host", "")
        if not host and request.url.hostname:
            host = request.url.netloc

        return cls(
            method=request.method,
            scheme=scope.get("scheme", "http"),
            host=host,
            path=path,
            query_string=scope.get("query_string", b"").decode("latin-1"),
            headers={k.lower(): v for k, v in request.headers.items()},
        )


class RenderResult(BaseModel):
    """
    What:  A prerendered page ready to be written back to the client.
    Who:   Produced by RenderClient.fetch_render() or a before_render hook;
           consumed once by the middleware to build the response.

    Headers are an ordered list of (name, value) pairs so repeated headers
    such as Set-Cookie survive unchanged. A mapping is accepted on input.
    Forwarded verbatim except content-encoding when a gzip body has been decoded.
    """

    status_code: int = Field(default=200, ge=100, le=599)
    headers: List[Tuple[str, str]] = Field(default_factory=list)
    body: bytes = Field(default=b"")

    model_config = ConfigDict(frozen=True)

    @field_validator("headers", mode="before")
    @classmethod
    def headers_from_mapping(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return list(v.items())
        return v

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of header `name` (case-insensitive)."""
        values = self.header_list(name)
        return values[0] if values else default

    def header_list(self, name: str) -> List[str]:
        name = name.lower()
        return [value for key, value in self.headers if key.lower() == name]

    @classmethod
    def coerce(cls, value: Union["RenderResult", str, bytes]) -> "RenderResult":
        """
        Normalize what a before_render hook returned.

        A bare str/bytes is treated as a 200 HTML page.
        """
        if isinstance(value, RenderResult):
            return value
        if isinstance(value, str):
            value = value.encode("utf-8")
        if isinstance(value, (bytes, bytearray)):
            return cls(
                status_code=200,
                headers=[("content-type", "text/html; charset=utf-8")],
                body=bytes(value),
            )
        raise TypeError(
            f"before_render must return RenderResult, str, bytes or None, "
            f"got {type(value).__name__}"
        )
