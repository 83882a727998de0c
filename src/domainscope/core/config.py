"""Configuration management using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DOMAINSCOPE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Outbound identity
    user_agent: str = Field(default="domainscope/0.1 (+https://github.com/domainscope)")

    # Safe fetch defaults
    fetch_timeout: float = Field(default=8.0, ge=0.1, le=120)
    fetch_max_bytes: int = Field(default=15 * 1024 * 1024, ge=1)
    fetch_max_redirects: int = Field(default=3, ge=0, le=20)

    # DNS-over-HTTPS, tried strictly in this order
    doh_providers: list[str] = Field(default=["cloudflare", "google"])
    doh_timeout: float = Field(default=2.0, ge=0.1, le=30)

    # TLS
    tls_timeout: float = Field(default=6.0, ge=0.1, le=60)
    tls_max_chain_depth: int = Field(default=10, ge=1, le=32)
    tls_port: int = Field(default=443, ge=1, le=65535)
    # PEM trust anchors used instead of the system store
    tls_ca_file: str | None = Field(default=None)

    # Registration lookups
    whois_timeout: float = Field(default=5.0, ge=0.1, le=60)
    rdap_bootstrap_url: str = Field(default="https://data.iana.org/rdap/dns.json")
    rdap_bootstrap_ttl: int = Field(default=7 * 24 * 3600, ge=60)

    # Coalescing and retry
    coalesce_timeout: float = Field(default=30.0, ge=1, le=600)
    default_retry_after: float = Field(default=5.0, ge=0)
    retry_unknown_errors: bool = Field(default=True)

    # Rate Limiting
    doh_queries_per_second: int = Field(default=50, ge=1, le=500)
    whois_queries_per_minute: int = Field(default=10, ge=1, le=60)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "text"] = Field(default="json")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
