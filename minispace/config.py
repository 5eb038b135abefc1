"""Application configuration settings."""

from typing import Literal

from pydantic import Field
from pydantic import PositiveInt
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class MinispaceConfig(BaseSettings):
    """Application configuration settings.

    Every field can be set from a ``MINISPACE_<FIELD>`` environment variable;
    explicit keyword arguments take precedence.
    """

    model_config = SettingsConfigDict(
        env_prefix="MINISPACE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Data cache
    cache_expiration_ms: int = Field(
        default=5 * 60 * 1000,
        gt=0,
        description="Default data cache time-to-live in milliseconds (default: 5 minutes)",
    )
    cache_max_entries: PositiveInt | None = Field(
        default=10_000,
        description="Maximum number of cache entries (None = unbounded)",
    )
    cache_cleanup_interval: float = Field(
        default=60,
        gt=0,
        description="Seconds between periodic sweeps of expired cache entries",
    )
    cache_coalesce_fetches: bool = Field(
        default=False,
        description="Whether concurrent misses on the same key share one fetch",
    )

    # Preview store
    preview_ttl: int = Field(
        default=30 * 60,
        gt=0,
        description="Preview settings time-to-live in seconds (default: 30 minutes)",
    )

    # Session cookie
    session_cookie_name: str = Field(default="session", description="Session cookie name")
    session_ttl_ms: int = Field(
        default=60 * 60 * 24 * 14 * 1000,
        gt=0,
        description="Session lifetime in milliseconds (default: 2 weeks)",
    )
    cookie_secure: bool = Field(
        default=True,
        description="Whether cookie should only be sent over HTTPS",
    )
    cookie_samesite: Literal["lax", "strict", "none"] = Field(
        default="strict",
        description="SameSite cookie attribute for the session cookie",
    )

    # Routing
    root_domain_label: str = Field(
        default="minispace",
        description="Host label of the main site; other first labels are user subdomains",
    )
    login_path: str = Field(default="/login", description="Where unauthenticated users go")
    dev_mode: bool = Field(
        default=False,
        description="Use the unverified development auth provider",
    )
