"""
Shared configuration management for the Recent Tracks service.
"""

from typing import List, Tuple

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_LISTEN = ":9123"


def _env(field_name: str, env_name: str) -> AliasChoices:
    """Accept both the attribute name and its environment variable."""
    return AliasChoices(field_name, env_name)


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local", validation_alias=_env("env", "ACCESS_ENV"))
    log_level: str = Field(default="info", validation_alias=_env("log_level", "ACCESS_LOG_LEVEL"))

    # Upstream (Last.fm)
    lastfm_api_key: str = Field(default="", validation_alias=_env("lastfm_api_key", "LASTFM_API_KEY"))
    lastfm_user: str = Field(default="", validation_alias=_env("lastfm_user", "LASTFM_USER"))
    lastfm_base_url: str = Field(
        default="https://ws.audioscrobbler.com/2.0/",
        validation_alias=_env("lastfm_base_url", "LASTFM_BASE_URL"),
    )
    upstream_timeout_seconds: float = Field(
        default=10.0,
        validation_alias=_env("upstream_timeout_seconds", "TRACKS_UPSTREAM_TIMEOUT_SECONDS"),
    )

    # Listen address, "host:port" or ":port"
    listen: str = Field(default=DEFAULT_LISTEN, validation_alias=_env("listen", "LISTEN"))

    # Snapshot cache
    cache_ttl_seconds: float = Field(default=5.0, validation_alias=_env("cache_ttl_seconds", "TRACKS_CACHE_TTL_SECONDS"))
    single_flight: bool = Field(default=True, validation_alias=_env("single_flight", "TRACKS_SINGLE_FLIGHT"))

    # Request handling
    default_limit: int = Field(default=10, validation_alias=_env("default_limit", "TRACKS_DEFAULT_LIMIT"))
    max_limit: int = Field(default=50, validation_alias=_env("max_limit", "TRACKS_MAX_LIMIT"))
    soft_fail: bool = Field(default=False, validation_alias=_env("soft_fail", "TRACKS_SOFT_FAIL"))

    def validate_required(self) -> List[str]:
        """Return the names of missing required env vars."""
        missing = []
        if not self.lastfm_api_key:
            missing.append("LASTFM_API_KEY")
        if not self.lastfm_user:
            missing.append("LASTFM_USER")
        return missing


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str

    @property
    def host(self) -> str:
        return parse_listen(self.listen)[0]

    @property
    def port(self) -> int:
        return parse_listen(self.listen)[1]


def parse_listen(listen: str) -> Tuple[str, int]:
    """Split a "host:port" listen string; an empty host binds all interfaces."""
    value = (listen or DEFAULT_LISTEN).strip()
    host, sep, port_text = value.rpartition(":")
    if not sep:
        raise ValueError(f"listen address must be 'host:port' or ':port', got {listen!r}")
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"listen port must be numeric, got {port_text!r}") from None
    return host or "0.0.0.0", port


def get_config(service_name: str, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)
