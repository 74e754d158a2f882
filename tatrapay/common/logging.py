"""Structured JSON logging with gateway and order/payment context fields."""

import logging
import sys
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter

from tatrapay.common.config import settings


request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
order_id_ctx: ContextVar[str] = ContextVar("order_id", default="")
payment_id_ctx: ContextVar[str] = ContextVar("payment_id", default="")
payment_method_ctx: ContextVar[str] = ContextVar("payment_method", default="")

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(service_name)s %(gateway_env)s %(request_id)s "
    "%(order_id)s %(payment_id)s %(payment_method)s %(message)s"
)


class ContextFilter(logging.Filter):
    """Tag records with the gateway environment and the payment being handled."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = settings.service_name
        record.gateway_env = settings.environment
        record.request_id = request_id_ctx.get()
        record.order_id = order_id_ctx.get()
        record.payment_id = payment_id_ctx.get()
        record.payment_method = payment_method_ctx.get()
        return True


def configure_logging() -> None:
    handler = logging.StreamHandler(sys.stdout)
    context_filter = ContextFilter()
    handler.addFilter(context_filter)
    handler.setFormatter(JsonFormatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)
    root.addFilter(context_filter)
    # httpx would log every gateway URL at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


logger = logging.getLogger("tatrapay")
