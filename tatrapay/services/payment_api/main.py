"""HTTP surface for payment creation, browser callback and gateway webhook."""

from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from tatrapay.common.config import settings
from tatrapay.common.errors import TatraPayError, ValidationError
from tatrapay.common.logging import configure_logging, logger, request_id_ctx
from tatrapay.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from tatrapay.common.startup import log_startup_config
from tatrapay.common.tracing import instrument_app, setup_tracing
from tatrapay.services.gateway_client.service import GatewayClient
from tatrapay.services.payment_api.schemas import CreatePaymentBody, ErrorResponse, WebhookPayload
from tatrapay.services.payment_api.service import OUTCOME_ERROR, PaymentFlowService, result_url
from tatrapay.services.payment_api.store import InMemoryPaymentStore, RedisPaymentStore

configure_logging()
if settings.otel_exporter_otlp_endpoint:
    setup_tracing(settings.service_name, settings.otel_exporter_otlp_endpoint, settings.environment)
log_startup_config(settings)


def build_service() -> PaymentFlowService:
    """Wire gateway client + store from settings; credentials are validated here."""

    if settings.redis_url:
        store = RedisPaymentStore.from_url(settings.redis_url, settings.store_ttl_seconds)
    else:
        store = InMemoryPaymentStore()
    return PaymentFlowService(GatewayClient(settings), store, settings.public_base_url)


def get_service(request: Request) -> PaymentFlowService:
    """Return the app-wide flow service, building it on first use."""

    service = getattr(request.app.state, "service", None)
    if service is None:
        service = build_service()
        request.app.state.service = service
    return service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the gateway HTTP client with the app lifecycle."""

    yield
    service = getattr(app.state, "service", None)
    if service is not None:
        await service.gateway.aclose()


app = FastAPI(title="TatraPay+ Payment API", lifespan=lifespan)
if settings.otel_exporter_otlp_endpoint:
    instrument_app(app)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Record request count and latency for every HTTP call."""

    request_id_ctx.set(request.headers.get("x-request-id") or str(uuid4()))
    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        route_obj = request.scope.get("route")
        if route_obj is not None and getattr(route_obj, "path", None):
            route = route_obj.path
        return response
    finally:
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


@app.exception_handler(TatraPayError)
async def tatrapay_error_handler(_: Request, exc: TatraPayError):
    if exc.status_code >= 500:
        logger.error("request failed: %s", exc.message)
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=exc.message).model_dump())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(_: Request, exc: RequestValidationError):
    logger.warning("rejected malformed request: %s", exc.errors())
    return JSONResponse(status_code=400, content=ErrorResponse(error="Invalid request body").model_dump())


def client_ip(request: Request) -> str:
    """Caller IP from proxy headers, falling back to loopback."""

    forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    return forwarded or request.headers.get("x-real-ip") or "127.0.0.1"


def request_base_url(request: Request) -> str:
    host = request.headers.get("host") or "localhost:3000"
    protocol = request.headers.get("x-forwarded-proto") or "https"
    return f"{protocol}://{host}"


@app.post("/api/payment/create")
async def create_payment(
    body: CreatePaymentBody,
    request: Request,
    service: PaymentFlowService = Depends(get_service),
):
    """Create a gateway payment; returns a redirect URL or bank transfer details."""

    try:
        return await service.create_payment(body, client_ip(request), request_base_url(request))
    except ValidationError:
        raise
    except TatraPayError as exc:
        logger.error(
            "payment creation failed order_id=%s method=%s: %s",
            body.order_id,
            body.payment_method,
            exc.message,
        )
        return JSONResponse(status_code=500, content=ErrorResponse(error=exc.message).model_dump())
    except Exception as exc:
        logger.exception("payment creation error order_id=%s", body.order_id)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error=str(exc) or "Payment creation failed").model_dump(),
        )


@app.get("/api/payment/callback")
async def payment_callback(request: Request, orderId: str | None = None, paymentId: str | None = None):
    """Browser return URL: verify status and redirect to a result page."""

    try:
        service = get_service(request)
    except TatraPayError as exc:
        logger.error("payment callback cannot reach gateway: %s", exc.message)
        return RedirectResponse(
            result_url(settings.public_base_url, OUTCOME_ERROR, "Error verifying payment"),
            status_code=302,
        )
    return RedirectResponse(await service.handle_callback(orderId, paymentId), status_code=302)


@app.post("/api/payment/webhook")
async def payment_webhook(request: Request):
    """Gateway status push; 500 makes the gateway retry."""

    try:
        payload = WebhookPayload.model_validate(await request.json())
        await get_service(request).handle_webhook(payload)
    except (ValueError, TatraPayError) as exc:
        logger.error("webhook processing error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Webhook processing failed"})
    except Exception:
        logger.exception("webhook processing error")
        return JSONResponse(status_code=500, content={"error": "Webhook processing failed"})
    return {"received": True}


@app.get("/api/payment/webhook")
def webhook_liveness():
    """Gateway-side URL verification probe."""

    return {"status": "Webhook endpoint active"}


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
