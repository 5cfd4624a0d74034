"""
Shared configuration management for the storefront commerce gateway.
"""

from typing import Dict, Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DISPENSE_BASE_URL = "https://api.dispenseapp.com/2023-03"

# Logical setting -> (private env var, public env var). The private variant wins.
DUPLICATED_SETTINGS: Dict[str, Tuple[str, str]] = {
    "base_url": ("DISPENSE_BASE_URL", "PUBLIC_DISPENSE_BASE_URL"),
    "api_key": ("DISPENSE_API_KEY", "PUBLIC_DISPENSE_API_KEY"),
    "venue_id": ("DISPENSE_VENUE_ID", "PUBLIC_DISPENSE_VENUE_ID"),
}


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local", validation_alias="GATEWAY_ENV")
    log_level: str = Field(default="info", validation_alias="GATEWAY_LOG_LEVEL")
    host: str = Field(default="0.0.0.0", validation_alias="GATEWAY_HOST")
    port: int = Field(default=8000, validation_alias="GATEWAY_PORT")


class GatewayConfig(BaseConfig):
    """Commerce backend credentials and gateway tuning.

    The base URL, storefront API key and venue id can each be supplied
    under a private name and a public name. Both names are read; the
    private one takes precedence. See ``shadowed_settings``.
    """

    # Commerce backend
    dispense_base_url: Optional[str] = Field(default=None, validation_alias="DISPENSE_BASE_URL")
    public_dispense_base_url: Optional[str] = Field(default=None, validation_alias="PUBLIC_DISPENSE_BASE_URL")
    dispense_api_key: Optional[str] = Field(default=None, validation_alias="DISPENSE_API_KEY")
    public_dispense_api_key: Optional[str] = Field(default=None, validation_alias="PUBLIC_DISPENSE_API_KEY")
    dispense_org_api_key: Optional[str] = Field(default=None, validation_alias="DISPENSE_ORG_API_KEY")
    dispense_venue_id: Optional[str] = Field(default=None, validation_alias="DISPENSE_VENUE_ID")
    public_dispense_venue_id: Optional[str] = Field(default=None, validation_alias="PUBLIC_DISPENSE_VENUE_ID")

    # Upstream calls
    upstream_timeout_seconds: Optional[float] = Field(
        default=None, validation_alias="GATEWAY_UPSTREAM_TIMEOUT_SECONDS"
    )

    # Rate limiting
    rate_limit_max_clients: int = Field(default=10000, validation_alias="GATEWAY_RATE_LIMIT_MAX_CLIENTS")
    rate_limit_stale_windows: int = Field(default=2, validation_alias="GATEWAY_RATE_LIMIT_STALE_WINDOWS")

    # Product list cache
    product_list_cache_ttl_seconds: float = Field(
        default=15.0, validation_alias="GATEWAY_PRODUCT_LIST_CACHE_TTL_SECONDS"
    )
    product_list_cache_max_entries: int = Field(
        default=512, validation_alias="GATEWAY_PRODUCT_LIST_CACHE_MAX_ENTRIES"
    )

    @property
    def base_url(self) -> str:
        """Upstream base URL, falling back to the public variant, then the default."""
        return (self.dispense_base_url or self.public_dispense_base_url or DEFAULT_DISPENSE_BASE_URL).rstrip("/")

    @property
    def api_key(self) -> Optional[str]:
        """Storefront API key used for catalog, order and registration calls."""
        return self.dispense_api_key or self.public_dispense_api_key or None

    @property
    def org_api_key(self) -> Optional[str]:
        """Organisation API key used for cart calls."""
        return self.dispense_org_api_key or None

    @property
    def venue_id(self) -> Optional[str]:
        """Default venue the storefront operates on."""
        return self.dispense_venue_id or self.public_dispense_venue_id or None

    def shadowed_settings(self) -> Dict[str, Tuple[str, str]]:
        """Return settings whose private and public variants are both set and disagree."""
        shadowed = {}
        for setting, (private_name, public_name) in DUPLICATED_SETTINGS.items():
            private_value = getattr(self, private_name.lower())
            public_value = getattr(self, public_name.lower())
            if private_value and public_value and private_value != public_value:
                shadowed[setting] = (private_name, public_name)
        return shadowed


def get_config(**overrides) -> GatewayConfig:
    """Build the gateway configuration once at process start."""
    return GatewayConfig(**overrides)
