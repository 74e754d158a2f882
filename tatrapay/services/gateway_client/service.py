"""TatraPay+ API client.

Builds gateway-specific payloads for CARD_PAY and BANK_TRANSFER, sends them
with a cached bearer token, and normalizes responses into the models in
`tatrapay.services.gateway_client.models`.
"""

import re
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable
from urllib.parse import quote
from uuid import uuid4

import httpx

from tatrapay.common.config import GatewaySettings
from tatrapay.common.errors import (
    ConfigurationError,
    GatewayError,
    MethodUnavailableError,
    PaymentCreationError,
    ValidationError,
)
from tatrapay.common.logging import logger
from tatrapay.common.metrics import gateway_request_duration_seconds, gateway_requests_total
from tatrapay.common.tracing import gateway_span
from tatrapay.services.gateway_client.models import (
    CREATABLE_METHODS,
    BankTransferInfo,
    GatewayAmount,
    PaymentMethod,
    PaymentMethodAvailability,
    PaymentRequest,
    PaymentResponse,
    PaymentStatus,
)
from tatrapay.services.gateway_client.token_cache import TokenCache

CARD_HOLDER_MAX_LENGTH = 45
CARD_HOLDER_FALLBACK = "Customer"
_CARD_HOLDER_DISALLOWED = re.compile(r"[^a-zA-Z0-9 .@_-]")
_WHITESPACE = re.compile(r"\s")


def sanitize_merchant_reference(reference: str) -> str:
    """The gateway rejects references containing whitespace."""

    return _WHITESPACE.sub("", reference)


def sanitize_card_holder(full_name: str | None) -> str:
    """Reduce a customer name to the character set the gateway accepts."""

    name = (full_name or "").strip()[:CARD_HOLDER_MAX_LENGTH]
    cleaned = _CARD_HOLDER_DISALLOWED.sub("", name)[:CARD_HOLDER_MAX_LENGTH]
    return cleaned or CARD_HOLDER_FALLBACK


def strip_query(url: str) -> str:
    return url.split("?", 1)[0]


def to_minor_units(value: Any) -> int:
    """Convert a decimal major-unit amount (79.9) to minor units (7990)."""

    return int((Decimal(str(value)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(value: int) -> Decimal:
    return (Decimal(value) / 100).quantize(Decimal("0.01"))


class GatewayClient:
    """Authenticated access to the TatraPay+ payments API."""

    def __init__(
        self,
        settings: GatewaySettings,
        http_client: httpx.AsyncClient | None = None,
        token_cache: TokenCache | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not settings.client_id or not settings.client_secret:
            raise ConfigurationError(
                "TatraPay credentials not configured. "
                "Set TATRAPAY_CLIENT_ID and TATRAPAY_CLIENT_SECRET."
            )
        self.settings = settings
        self.base_url = settings.base_url
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self.token_cache = token_cache or TokenCache(
            self.http_client,
            settings.token_url,
            settings.client_id,
            settings.client_secret,
            scope=settings.token_scope,
            clock=clock,
        )

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self.http_client.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        extra_headers: dict[str, str] | None = None,
        error_cls: type[GatewayError] = GatewayError,
    ) -> dict[str, Any]:
        """Send one authenticated call and return the decoded JSON object."""

        token = await self.token_cache.get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "X-Request-ID": str(uuid4()),
        }
        if extra_headers:
            headers.update({k: v for k, v in extra_headers.items() if v})

        logger.info("gateway request %s %s", method, path)
        with gateway_span(operation, method, path) as span:
            with gateway_request_duration_seconds.labels(operation=operation).time():
                try:
                    resp = await self.http_client.request(
                        method, f"{self.base_url}{path}", headers=headers, json=body
                    )
                except httpx.HTTPError as exc:
                    gateway_requests_total.labels(operation=operation, outcome="transport_error").inc()
                    logger.error("gateway transport error %s %s: %s", method, path, exc)
                    raise error_cls(f"TatraPay request failed: {exc}") from exc
            span.set_attribute("http.response.status_code", resp.status_code)
            return self._decode(operation, resp, error_cls)

    def _decode(self, operation: str, resp: httpx.Response, error_cls: type[GatewayError]) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as exc:
            gateway_requests_total.labels(operation=operation, outcome="malformed").inc()
            logger.error("gateway returned invalid JSON status=%s body=%s", resp.status_code, resp.text[:200])
            raise error_cls(
                f"TatraPay returned invalid response: {resp.text[:200]}",
                gateway_status=resp.status_code,
                body=resp.text,
            ) from exc

        if resp.status_code >= 400:
            gateway_requests_total.labels(operation=operation, outcome="rejected").inc()
            logger.error("gateway API error status=%s body=%s", resp.status_code, data)
            raise error_cls(
                f"TatraPay API error: {resp.status_code} - {data}",
                gateway_status=resp.status_code,
                body=data,
            )

        if not isinstance(data, dict):
            gateway_requests_total.labels(operation=operation, outcome="malformed").inc()
            raise error_cls(
                f"TatraPay returned invalid response: {resp.text[:200]}",
                gateway_status=resp.status_code,
                body=data,
            )

        gateway_requests_total.labels(operation=operation, outcome="ok").inc()
        return data

    def build_payment_body(self, req: PaymentRequest) -> dict[str, Any]:
        """Translate a PaymentRequest into the `/v1/payments` wire schema.

        Card payments need `cardDetail.cardHolder` and bank transfers need an
        empty `bankTransfer` object; without them the gateway answers with no
        available payment method.
        """

        body: dict[str, Any] = {
            "baseAmount": {
                "amountValue": req.amount.amount,
                "currency": req.amount.currency,
            },
            "merchantReference": sanitize_merchant_reference(req.merchant_reference),
            "language": req.language or "sk",
        }
        if req.description:
            body["paymentDescription"] = req.description
        if req.customer:
            user_data = {
                "firstName": req.customer.first_name,
                "lastName": req.customer.last_name,
                "email": req.customer.email,
            }
            if req.customer.phone:
                user_data["phone"] = req.customer.phone
            body["userData"] = user_data

        if req.payment_method == PaymentMethod.CARD_PAY:
            full_name = req.customer.full_name if req.customer else None
            body["cardDetail"] = {"cardHolder": sanitize_card_holder(full_name)}
        elif req.payment_method == PaymentMethod.BANK_TRANSFER:
            body["bankTransfer"] = {}
        return body

    async def create_payment(self, req: PaymentRequest) -> PaymentResponse:
        """Create a payment; returns a redirect URL or bank transfer details."""

        if req.payment_method not in CREATABLE_METHODS:
            raise ValidationError(f"Unsupported payment method: {req.payment_method.value}", "paymentMethod")

        logger.info(
            "creating payment method=%s amount=%s currency=%s reference=%s",
            req.payment_method.value,
            req.amount.amount,
            req.amount.currency,
            req.merchant_reference,
        )
        data = await self._request(
            "create_payment",
            "POST",
            "/v1/payments",
            body=self.build_payment_body(req),
            extra_headers={
                "IP-Address": req.customer_ip_address,
                "Redirect-URI": strip_query(req.return_url),
                "Preferred-Method": req.payment_method.value,
            },
            error_cls=PaymentCreationError,
        )

        payment_id = data.get("paymentId")
        if not payment_id:
            raise PaymentCreationError("TatraPay: response did not include a payment id", body=data)

        redirect_url = data.get("tatraPayPlusUrl")
        transfer = data.get("bankTransferData")

        if req.payment_method == PaymentMethod.CARD_PAY and not redirect_url:
            self._raise_card_unavailable(data)
        if req.payment_method == PaymentMethod.BANK_TRANSFER and not transfer:
            raise PaymentCreationError("TatraPay: No bank transfer data returned", body=data)

        bank_transfer_info = None
        if transfer:
            try:
                bank_transfer_info = BankTransferInfo(
                    iban=transfer["iban"],
                    bic=transfer["bic"],
                    variable_symbol=transfer["variableSymbol"],
                    amount=from_minor_units(req.amount.amount),
                    amount_minor=req.amount.amount,
                    currency=req.amount.currency,
                )
            except (KeyError, TypeError) as exc:
                raise PaymentCreationError("TatraPay: incomplete bank transfer data", body=data) from exc

        logger.info(
            "payment created payment_id=%s has_redirect_url=%s has_bank_transfer=%s",
            payment_id,
            bool(redirect_url),
            bank_transfer_info is not None,
        )
        return PaymentResponse(
            payment_id=payment_id,
            redirect_url=redirect_url,
            bank_transfer_info=bank_transfer_info,
        )

    def _raise_card_unavailable(self, data: dict[str, Any]) -> None:
        for entry in data.get("availablePaymentMethods") or []:
            if entry.get("paymentMethod") == PaymentMethod.CARD_PAY.value and not entry.get("isAvailable"):
                raise MethodUnavailableError(
                    "TatraPay: "
                    + (entry.get("reasonCodeMethodAvailabilityDescription") or "Card payment not available"),
                    method=PaymentMethod.CARD_PAY.value,
                    reason_code=entry.get("reasonCodeMethodAvailability"),
                )
        raise PaymentCreationError("TatraPay: No redirect URL returned for card payment", body=data)

    async def get_payment_status(self, payment_id: str) -> PaymentStatus:
        """Fetch the authoritative status of one payment."""

        logger.info("fetching payment status payment_id=%s", payment_id)
        data = await self._request(
            "get_payment_status", "GET", f"/v1/payments/{quote(payment_id, safe='')}/status"
        )
        try:
            status = PaymentStatus(
                payment_id=data["paymentId"],
                status=data["status"],
                merchant_reference=data.get("merchantReference") or "",
                amount=_gateway_amount(data.get("instructedAmount")),
                paid_amount=_gateway_amount(data.get("paidAmount")),
                payment_method=data.get("paymentMethod"),
                created_at=data.get("createdAt"),
                updated_at=data.get("updatedAt"),
                transaction_id=data.get("transactionId"),
            )
        except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
            raise GatewayError(f"TatraPay returned invalid status payload: {data}", body=data) from exc

        logger.info(
            "payment status payment_id=%s status=%s transaction_id=%s",
            status.payment_id,
            status.status,
            status.transaction_id,
        )
        return status

    async def get_available_payment_methods(self) -> list[PaymentMethodAvailability]:
        """List methods the merchant can currently offer, bounds in minor units."""

        data = await self._request("get_payment_methods", "GET", "/v1/payments/methods")
        methods = data.get("paymentMethods")
        if not isinstance(methods, list):
            raise GatewayError(f"TatraPay returned invalid methods payload: {data}", body=data)
        try:
            return [
                PaymentMethodAvailability(
                    method=m["paymentMethod"],
                    available=bool(m.get("isAvailable")),
                    min_amount=to_minor_units(m["minAmount"]) if m.get("minAmount") is not None else None,
                    max_amount=to_minor_units(m["maxAmount"]) if m.get("maxAmount") is not None else None,
                )
                for m in methods
            ]
        except (KeyError, TypeError, ArithmeticError) as exc:
            raise GatewayError(f"TatraPay returned invalid methods payload: {data}", body=data) from exc


def _gateway_amount(raw: dict[str, Any] | None) -> GatewayAmount | None:
    if not raw:
        return None
    return GatewayAmount(amount=Decimal(str(raw["amount"])), currency=raw["currency"])
