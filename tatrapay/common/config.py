"""Central environment-driven settings for the gateway client and payment API.

The process loads this once at startup. Behavior is controlled by
`TATRAPAY_*` environment variables (see `.env.example`).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


SANDBOX_BASE_URL = "https://api.tatrabanka.sk/tatrapayplus/sandbox"
PRODUCTION_BASE_URL = "https://api.tatrabanka.sk/tatrapayplus/production"
TOKEN_PATH = "/auth/oauth/v2/token"


class GatewaySettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "tatrapay-bridge"
    log_level: str = "INFO"
    client_id: str = ""
    client_secret: str = ""
    sandbox: bool = True
    token_scope: str = "TATRAPAYPLUS"
    public_base_url: str = "http://localhost:3000"
    http_timeout_seconds: float | None = None
    redis_url: str | None = None
    store_ttl_seconds: int = 30 * 86400
    otel_exporter_otlp_endpoint: str | None = None
    model_config = SettingsConfigDict(env_prefix="TATRAPAY_", env_file=".env", extra="ignore")

    @property
    def base_url(self) -> str:
        return SANDBOX_BASE_URL if self.sandbox else PRODUCTION_BASE_URL

    @property
    def environment(self) -> str:
        return "sandbox" if self.sandbox else "production"

    @property
    def token_url(self) -> str:
        return f"{self.base_url}{TOKEN_PATH}"


settings = GatewaySettings()
