"""Startup-time summary of the resolved gateway configuration."""

from typing import Any

from tatrapay.common.config import GatewaySettings
from tatrapay.common.logging import logger

REDACTED = "<redacted>"
UNSET = "<unset>"


def _redact(value: str | None) -> str:
    return REDACTED if value else UNSET


def startup_config(settings: GatewaySettings) -> dict[str, Any]:
    """Resolved settings safe to log; credentials appear only as set/unset."""

    return {
        "service": settings.service_name,
        "environment": settings.environment,
        "base_url": settings.base_url,
        "token_scope": settings.token_scope,
        "client_id": _redact(settings.client_id),
        "client_secret": _redact(settings.client_secret),
        "public_base_url": settings.public_base_url,
        "http_timeout_seconds": settings.http_timeout_seconds,
        "store": "redis" if settings.redis_url else "memory",
        "store_ttl_seconds": settings.store_ttl_seconds,
        "tracing": bool(settings.otel_exporter_otlp_endpoint),
    }


def log_startup_config(settings: GatewaySettings) -> None:
    config = startup_config(settings)
    logger.info("startup_config=%s", config)
    if config["client_id"] == UNSET or config["client_secret"] == UNSET:
        logger.warning("TatraPay credentials not configured; gateway-backed endpoints will fail")
