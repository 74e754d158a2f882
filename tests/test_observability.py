"""Startup config summary, log context fields and gateway spans."""

import logging

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from tatrapay.common.config import PRODUCTION_BASE_URL, GatewaySettings
from tatrapay.common.logging import ContextFilter, payment_method_ctx
from tatrapay.common.startup import REDACTED, UNSET, startup_config
from tatrapay.common.tracing import gateway_span


def test_startup_config_hides_credentials():
    """Credentials are reported as set or unset, never by value."""

    config = startup_config(
        GatewaySettings(
            client_id="merchant-42",
            client_secret="s3cret",
            sandbox=False,
            redis_url="redis://cache:6379/0",
        )
    )

    assert config["client_id"] == REDACTED
    assert config["client_secret"] == REDACTED
    assert "merchant-42" not in str(config)
    assert "s3cret" not in str(config)
    assert config["environment"] == "production"
    assert config["base_url"] == PRODUCTION_BASE_URL
    assert config["store"] == "redis"


def test_startup_config_marks_missing_credentials():
    """Empty credentials show as unset and the store falls back to memory."""

    config = startup_config(GatewaySettings(client_id="", client_secret="", redis_url=None))

    assert config["client_id"] == UNSET
    assert config["client_secret"] == UNSET
    assert config["environment"] == "sandbox"
    assert config["store"] == "memory"


def test_context_filter_adds_gateway_fields():
    """Log records carry the gateway environment and payment method."""

    record = logging.LogRecord("tatrapay", logging.INFO, __file__, 1, "msg", None, None)
    token = payment_method_ctx.set("BANK_TRANSFER")
    try:
        ContextFilter().filter(record)
    finally:
        payment_method_ctx.reset(token)

    assert record.payment_method == "BANK_TRANSFER"
    assert record.gateway_env in {"sandbox", "production"}


def test_gateway_span_attributes():
    """Each gateway call is one client span named after the operation."""

    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))

    with gateway_span("get_payment_status", "GET", "/v1/payments/pay-1/status", provider.get_tracer("test")) as span:
        span.set_attribute("http.response.status_code", 200)

    (finished,) = exporter.get_finished_spans()
    assert finished.name == "tatrapay.get_payment_status"
    assert finished.attributes["http.request.method"] == "GET"
    assert finished.attributes["tatrapay.path"] == "/v1/payments/pay-1/status"
    assert finished.attributes["http.response.status_code"] == 200
