"""
Configuration Management for the Warranty Lifecycle Engine
==========================================================
Centralized configuration for manufacturer APIs, lookup behaviour, report
thresholds, logging and the MCP server.
"""

import os
from typing import Optional
from pydantic import BaseModel, Field


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() == "true"


class APIConfig(BaseModel):
    """Manufacturer warranty API settings."""

    base_url: str = Field(
        default="https://api.warrantywatcher.com",
        description="Base URL of the manufacturer warranty relay API"
    )
    batch_url: Optional[str] = Field(
        default=None,
        description="Batch warranty endpoint (used by the batch strategy)"
    )
    platform_update_url: Optional[str] = Field(
        default=None,
        description="Source platform write-back endpoint"
    )
    timeout_seconds: float = Field(default=30.0, description="Per-request timeout")

    def get_batch_url(self) -> str:
        """Get the batch endpoint URL, derived from the base URL if unset."""
        if self.batch_url:
            return self.batch_url
        return f"{self.base_url.rstrip('/')}/warranty/fetch-batch"

    def get_platform_update_url(self) -> str:
        """Get the write-back endpoint URL, derived from the base URL if unset."""
        if self.platform_update_url:
            return self.platform_update_url
        return f"{self.base_url.rstrip('/')}/platform-data/update"


class LookupConfig(BaseModel):
    """Defaults for warranty lookup runs."""

    skip_existing_for_lookup: bool = Field(
        default=True,
        description="Skip devices that already have warranty data"
    )
    strategy: str = Field(default="sequential", description="sequential or batch")
    merge_key: str = Field(default="serial", description="serial or source_serial")


class ReportConfig(BaseModel):
    """Lifecycle report thresholds."""

    expiring_soon_days: int = 90
    aging_months_threshold: int = 12


class ServerConfig(BaseModel):
    """Configuration for the warranty MCP server."""

    name: str = "warranty-lifecycle"
    host: str = "127.0.0.1"
    port: int = 8002
    url: Optional[str] = None

    def get_url(self) -> str:
        """Get the MCP server URL (local or remote)."""
        if self.url:
            return self.url
        return f"http://{self.host}:{self.port}/mcp"


class CredentialsConfig(BaseModel):
    """Raw manufacturer credentials as read from the environment."""

    dell_client_id: Optional[str] = None
    dell_client_secret: Optional[str] = None
    hp_api_key: Optional[str] = None
    lenovo_api_key: Optional[str] = None


class LifecycleConfig(BaseModel):
    """Main configuration for the warranty lifecycle engine."""

    api: APIConfig = Field(default_factory=APIConfig)
    lookup: LookupConfig = Field(default_factory=LookupConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)

    log_level: str = Field(default="INFO", description="Root log level")
    log_buffer_size: int = Field(default=1000, description="Entries kept in the in-memory log buffer")

    @classmethod
    def from_env(cls) -> "LifecycleConfig":
        """Load configuration from environment variables."""

        api = APIConfig(
            base_url=os.environ.get("WARRANTY_API_BASE_URL", "https://api.warrantywatcher.com"),
            batch_url=os.environ.get("WARRANTY_BATCH_URL"),
            platform_update_url=os.environ.get("PLATFORM_UPDATE_URL"),
            timeout_seconds=float(os.environ.get("WARRANTY_API_TIMEOUT", "30")),
        )

        lookup = LookupConfig(
            skip_existing_for_lookup=_env_flag("SKIP_EXISTING_FOR_LOOKUP", "true"),
            strategy=os.environ.get("LOOKUP_STRATEGY", "sequential").lower(),
            merge_key=os.environ.get("MERGE_KEY", "serial").lower(),
        )

        report = ReportConfig(
            expiring_soon_days=int(os.environ.get("EXPIRING_SOON_DAYS", "90")),
            aging_months_threshold=int(os.environ.get("AGING_MONTHS_THRESHOLD", "12")),
        )

        server = ServerConfig(
            host=os.environ.get("WARRANTY_HOST", "127.0.0.1"),
            port=int(os.environ.get("WARRANTY_PORT", "8002")),
            url=os.environ.get("WARRANTY_URL"),
        )

        credentials = CredentialsConfig(
            dell_client_id=os.environ.get("DELL_CLIENT_ID"),
            dell_client_secret=os.environ.get("DELL_CLIENT_SECRET"),
            hp_api_key=os.environ.get("HP_API_KEY"),
            lenovo_api_key=os.environ.get("LENOVO_API_KEY"),
        )

        return cls(
            api=api,
            lookup=lookup,
            report=report,
            server=server,
            credentials=credentials,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            log_buffer_size=int(os.environ.get("LOG_BUFFER_SIZE", "1000")),
        )


# Global config instance
config = LifecycleConfig.from_env()
