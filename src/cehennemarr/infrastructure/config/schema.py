"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from cehennemarr.domain.entities.proxy import ProxyProtocol

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
ProxyMode = Literal["auto", "always", "never"]
MatchStrategy = Literal["imdb_only", "title_fallback"]


class SiteConfig(BaseModel):
    """Target site and metadata service endpoints."""

    base_url: str = Field(
        default="https://www.hdfilmcehennemi.ws",
        description="Content site base URL (search + content pages).",
    )
    embed_base_url: str = Field(
        default="https://hdfilmcehennemi.mobi",
        description="Embed player host used for alternate-source URLs.",
    )
    protected_domains: list[str] = Field(
        default=["hdfilmcehennemi.ws", "hdfilmcehennemi.mobi"],
        description="Domains behind the anti-bot perimeter (proxy fallback applies).",
    )
    metadata_base_url: str = Field(
        default="https://v3-cinemeta.strem.io/meta",
        description="Metadata service base: {base}/{type}/{id}.json",
    )
    match_strategy: MatchStrategy = Field(
        default="imdb_only",
        description="'imdb_only' trusts the id search; 'title_fallback' adds title search.",
    )
    title_match_threshold: float = Field(
        default=0.4,
        description="Minimum title score for the title-fallback strategy.",
    )

    @field_validator("base_url", "embed_base_url", "metadata_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("title_match_threshold")
    @classmethod
    def _validate_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("title_match_threshold must be within [0, 2]")
        return v


class HttpConfig(BaseModel):
    """Resilient fetcher settings."""

    timeout_seconds: float = Field(default=15.0, description="Per-attempt timeout.")
    max_retries: int = Field(default=3, description="Attempts per phase/proxy.")
    retry_delay_seconds: float = Field(
        default=1.0,
        description="Backoff base: delay = base * 2**(attempt-1).",
    )
    max_concurrent: int = Field(
        default=5,
        description="Admission limit for simultaneous outbound requests.",
    )
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
    )
    accept_language: str = Field(default="tr-TR,tr;q=0.9,en;q=0.8")

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_seconds must be > 0")
        return v

    @field_validator("max_retries", "max_concurrent")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("retry_delay_seconds")
    @classmethod
    def _validate_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("retry_delay_seconds must be >= 0")
        return v


class ProxyFeedConfig(BaseModel):
    """One external proxy list endpoint."""

    url: str
    protocol: ProxyProtocol = ProxyProtocol.HTTP
    format: Literal["text", "json"] = "text"


class ProxyConfig(BaseModel):
    """Proxy pool settings."""

    mode: ProxyMode = Field(
        default="auto",
        description="'auto' = proxy on block, 'always' = proxy only, 'never' = direct only.",
    )
    max_proxy_attempts: int = Field(default=5)
    no_proxy_pause_seconds: float = Field(default=2.0)
    candidate_ttl_seconds: int = Field(default=1800)
    known_good_ttl_seconds: int = Field(default=3600)
    test_timeout_seconds: float = Field(default=5.0)
    max_to_test: int = Field(default=20)
    test_batch_size: int = Field(default=10)
    min_content_length: int = Field(default=1000)
    discovery_rounds: int = Field(default=2)
    round_pause_seconds: float = Field(default=3.0)
    test_url: Optional[str] = Field(
        default=None,
        description="URL used to validate proxies. Defaults to the site base URL.",
    )
    feeds: list[ProxyFeedConfig] = Field(default_factory=list)

    @field_validator("max_proxy_attempts", "max_to_test", "test_batch_size")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v


class CacheConfig(BaseModel):
    """TTLs (seconds) of the in-memory caches. 0 disables a cache."""

    search_ttl_seconds: int = Field(default=600)
    episodes_ttl_seconds: int = Field(default=1800)
    metadata_ttl_seconds: int = Field(default=1800)
    success_ttl_seconds: int = Field(default=900)

    @field_validator("*")
    @classmethod
    def _validate_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("ttl must be >= 0")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (site/http/proxy/logging/cache).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    app_name: str = Field(default="cehennemarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    site: SiteConfig = Field(default_factory=SiteConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    relay_base_url: Optional[str] = Field(
        default=None,
        description=(
            "HLS relay endpoint. When set, stream URLs are routed through it "
            "instead of exposing proxyHeaders."
        ),
    )

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "site": self.site.model_dump(),
            "http": self.http.model_dump(),
            "proxy": self.proxy.model_dump(mode="json"),
            "cache": self.cache.model_dump(),
            "logging": {"level": self.log_level, "format": self.log_format},
            "relay_base_url": self.relay_base_url,
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Supported env var examples (flat, explicit):
    - CEHENNEMARR_SITE_BASE_URL
    - CEHENNEMARR_PROXY_MODE
    - CEHENNEMARR_HTTP_TIMEOUT_SECONDS
    - CEHENNEMARR_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="CEHENNEMARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    site_base_url: Optional[str] = None
    embed_base_url: Optional[str] = None
    metadata_base_url: Optional[str] = None
    match_strategy: Optional[MatchStrategy] = None

    http_timeout_seconds: Optional[float] = None
    http_max_retries: Optional[int] = None
    http_max_concurrent: Optional[int] = None
    http_user_agent: Optional[str] = None

    proxy_mode: Optional[ProxyMode] = None
    proxy_list_url: Optional[str] = None
    proxy_max_attempts: Optional[int] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    relay_base_url: Optional[str] = None

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
