"""Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env files.
Each collaborator of the core gets its own settings block.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL flow collector database configuration."""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = "localhost"
    port: int = 5432
    user: str = "netflow"
    password: SecretStr = SecretStr("netflow")
    database: str = "netflow"

    # Connection pool settings
    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=5, ge=0, le=50)
    pool_timeout: int = Field(default=30, ge=1)
    pool_recycle: int = Field(default=1800, ge=60)
    command_timeout: int = Field(default=60, ge=1)

    echo: bool = False

    @property
    def async_url(self) -> str:
        """Construct async PostgreSQL connection URL."""
        password = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{password}@{self.host}:{self.port}/{self.database}"


class GeoIPSettings(BaseSettings):
    """MaxMind database locations."""

    model_config = SettingsConfigDict(env_prefix="GEOIP_")

    city_database_path: Path = Path("./GeoLite2-City.mmdb")
    asn_database_path: Path | None = None


class TopologySettings(BaseSettings):
    """Flow-pair topology aggregation configuration."""

    model_config = SettingsConfigDict(env_prefix="TOPOLOGY_")

    # Placeholder location for addresses the City database cannot place
    fallback_latitude: float = Field(default=-34.5823511, ge=-90.0, le=90.0)
    fallback_longitude: float = Field(default=-58.6027697, ge=-180.0, le=180.0)

    # None keeps exact float equality for coordinate keys
    coordinate_precision: int | None = Field(default=None, ge=0, le=12)

    flow_tables: list[str] = Field(default_factory=lambda: ["flows_v9", "flows_v5"])

    @field_validator("flow_tables")
    @classmethod
    def validate_tables(cls, v: list[str]) -> list[str]:
        """Table names are interpolated into SQL, so only identifiers pass."""
        if not v:
            raise ValueError("at least one flow table is required")
        for name in v:
            if not name.replace("_", "").isalnum():
                raise ValueError(f"invalid flow table name: {name!r}")
        return v


class KnownNetwork(BaseModel):
    """A named local network used to label private addresses."""

    cidr: str
    name: str


class EnrichmentSettings(BaseSettings):
    """IP enrichment configuration."""

    model_config = SettingsConfigDict(env_prefix="ENRICHMENT_")

    # Reverse DNS
    dns_timeout: float = Field(default=2.0, ge=0.1)
    dns_servers: list[str] = Field(default_factory=list)

    # Batch fan-out
    concurrency_limit: int = Field(default=10, ge=1, le=256)
    max_batch_size: int = Field(default=1000, ge=1, le=100000)

    # None keeps entries for the life of the process
    cache_ttl: int | None = Field(default=None, ge=1)

    known_networks: list[KnownNetwork] = Field(default_factory=list)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    include_timestamp: bool = True
    include_caller: bool = True


class Settings(BaseSettings):
    """Main application settings aggregating all configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application info
    app_name: str = "FlowMap"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Sub-configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    geoip: GeoIPSettings = Field(default_factory=GeoIPSettings)
    topology: TopologySettings = Field(default_factory=TopologySettings)
    enrichment: EnrichmentSettings = Field(default_factory=EnrichmentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
