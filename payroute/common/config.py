"""Central environment-driven settings for the routing service.

The process loads this once at startup. Behavior is controlled by environment
variables (see `.env.example`).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "payment-router"
    log_level: str = "INFO"
    database_dsn: str = "sqlite:///./payroute.db"
    quote_ttl_seconds: int = 900
    # 0 disables the bound around rail calls.
    rail_timeout_seconds: float = 0.0
    # Worker threads available for bounded rail calls.
    rail_max_workers: int = 32
    tracing_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = CommonSettings()
