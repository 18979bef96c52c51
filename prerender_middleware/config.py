"""
Prerender Middleware - Configuration
====================================

What:  Immutable configuration snapshot built once when the middleware is created.
How:   Pydantic Settings merges three sources with a fixed precedence:
           explicit keyword option  >  PRERENDER_* environment variable  >  default
       The snapshot is frozen; environment changes after construction only affect
       instances built later.
Who:   PrerenderService and every component it drives receive the same instance.

Environment variables:
    PRERENDER_TOKEN          X-Prerender-Token value
    PRERENDER_SERVICE_URL    rendering service base URL
    PRERENDER_WHITELIST      JSON list of regular expressions
    PRERENDER_BLACKLIST      JSON list of regular expressions
    PRERENDER_PROTOCOL       force http/https in the reconstructed URL
    PRERENDER_HOST           force the host in the reconstructed URL
    PRERENDER_TIMEOUT        outbound timeout in seconds
    PRERENDER_LOG_LEVEL      DEBUG, INFO, WARNING, ERROR, CRITICAL

No .env file is read: the host application owns its working directory.
"""

from re import Pattern
from typing import Any, Callable, FrozenSet, Optional, Tuple

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, SettingsError

from prerender_middleware.exceptions import ConfigurationError

DEFAULT_SERVICE_URL = "http://service.prerender.io/"

# Case-insensitive substrings of User-Agent headers sent by crawlers and
# link-preview bots that do not execute JavaScript.
CRAWLER_USER_AGENTS: Tuple[str, ...] = (
    "googlebot",
    "yahoo! slurp",
    "bingbot",
    "yandex",
    "baiduspider",
    "facebookexternalhit",
    "twitterbot",
    "rogerbot",
    "linkedinbot",
    "embedly",
    "quora link preview",
    "showyoubot",
    "outbrain",
    "pinterest/0.",
    "pinterestbot",
    "developers.google.com/+/web/snippet",
    "slackbot",
    "vkshare",
    "w3c_validator",
    "redditbot",
    "applebot",
    "whatsapp",
    "flipboard",
    "tumblr",
    "bitlybot",
    "skypeuripreview",
    "nuzzel",
    "discordbot",
    "google page speed",
    "qwantify",
    "bitrix link preview",
    "xing-contenttabreceiver",
    "chrome-lighthouse",
    "telegrambot",
)

# Static resources are never prerendered, even for bots.
DEFAULT_EXTENSION_BLACKLIST: FrozenSet[str] = frozenset({
    # stylesheets & scripts
    ".js", ".css", ".less", ".xml", ".rss",
    # images
    ".png", ".jpg", ".jpeg", ".gif", ".ico", ".tif", ".psd", ".ai", ".svg",
    # fonts
    ".woff", ".woff2", ".ttf", ".eot",
    # documents
    ".pdf", ".doc", ".txt", ".ppt", ".xls", ".dat", ".webmanifest",
    # archives & binaries
    ".zip", ".rar", ".exe", ".dmg", ".iso", ".torrent",
    # media
    ".mp3", ".wmv", ".avi", ".mpg", ".mpeg", ".wav", ".mov", ".mp4",
    ".m4a", ".m4v", ".swf", ".flv",
})

_VALID_PROTOCOLS = {"http", "https"}
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class PrerenderConfig(BaseSettings):
    """
    Settings for one middleware instance.

    Build with PrerenderConfig.from_options(**options) to get a
    ConfigurationError instead of a raw pydantic ValidationError.
    """

    # ── Rendering service ─────────────────────────────────────────────────
    token: Optional[str] = Field(
        default=None,
        description="Sent as X-Prerender-Token; omitted when unset",
    )
    service_url: str = Field(default=DEFAULT_SERVICE_URL)

    # Seconds; None keeps httpx's default timeout
    timeout: Optional[float] = Field(default=None, gt=0)

    # ── Eligibility ───────────────────────────────────────────────────────
    # Regular expressions, matched with re.search against the full request URL
    # (and the Referer header for the blacklist)
    whitelist: Tuple[Pattern[str], ...] = Field(default=())
    blacklist: Tuple[Pattern[str], ...] = Field(default=())
    extension_blacklist: FrozenSet[str] = Field(default=DEFAULT_EXTENSION_BLACKLIST)
    crawler_user_agents: Tuple[str, ...] = Field(default=CRAWLER_USER_AGENTS)

    # ── URL reconstruction overrides ──────────────────────────────────────
    protocol: Optional[str] = Field(default=None)
    host: Optional[str] = Field(default=None)

    # ── Cache hooks ───────────────────────────────────────────────────────
    before_render: Optional[Callable[..., Any]] = Field(default=None)
    after_render: Optional[Callable[..., Any]] = Field(default=None)

    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="PRERENDER_",
        case_sensitive=False,
        frozen=True,
        extra="forbid",
    )

    @field_validator("service_url")
    @classmethod
    def validate_service_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"service_url must be an http(s) URL, got '{v}'")
        return v

    @field_validator("protocol")
    @classmethod
    def validate_protocol(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        lower = v.lower().rstrip(":")
        if lower not in _VALID_PROTOCOLS:
            raise ValueError(f"protocol must be one of {sorted(_VALID_PROTOCOLS)}, got '{v}'")
        return lower

    @field_validator("extension_blacklist")
    @classmethod
    def normalize_extensions(cls, v: FrozenSet[str]) -> FrozenSet[str]:
        """Lower-case every extension and make sure it carries a leading dot."""
        return frozenset(
            ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            for ext in v
            if ext
        )

    @field_validator("crawler_user_agents")
    @classmethod
    def normalize_crawlers(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(token.lower() for token in v if token)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {_VALID_LOG_LEVELS}")
        return upper

    @classmethod
    def from_options(cls, **options: Any) -> "PrerenderConfig":
        """
        Resolve explicit options against the environment and defaults.

        Raises:
            ConfigurationError: when any option fails validation.
        """
        try:
            return cls(**options)
        except ValidationError as e:
            raise ConfigurationError(
                message=f"Invalid prerender configuration: {e.error_count()} error(s)",
                context={"errors": e.errors(include_url=False)},
            ) from e
        except SettingsError as e:
            # Malformed PRERENDER_* environment value (e.g. non-JSON list)
            raise ConfigurationError(
                message=f"Invalid prerender environment: {e}",
            ) from e
