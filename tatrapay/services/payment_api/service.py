"""Payment API flow logic.

Sequences gateway client calls for the three endpoints: payment creation,
the browser return-URL callback, and the gateway webhook.
"""

from typing import Any
from urllib.parse import quote, urlencode

from pydantic import ValidationError as SchemaError

from tatrapay.common.errors import ValidationError
from tatrapay.common.logging import logger, order_id_ctx, payment_id_ctx, payment_method_ctx
from tatrapay.common.metrics import payment_outcomes_total
from tatrapay.common.status import is_payment_failed, is_payment_successful
from tatrapay.services.gateway_client.models import (
    CREATABLE_METHODS,
    Customer,
    Money,
    PaymentMethod,
    PaymentRequest,
    PaymentStatus,
)
from tatrapay.services.gateway_client.service import GatewayClient, sanitize_merchant_reference
from tatrapay.services.payment_api.schemas import CreatePaymentBody, WebhookPayload
from tatrapay.services.payment_api.store import PaymentStore

OUTCOME_SUCCESS = "success"
OUTCOME_FAILED = "failed"
OUTCOME_PENDING = "pending"
OUTCOME_ERROR = "error"


def result_url(public_base_url: str, outcome: str, message: str, order_id: str | None = None) -> str:
    """Static result page URL the browser is redirected to."""

    params = {"message": message}
    if order_id:
        params["orderId"] = order_id
    return f"{public_base_url.rstrip('/')}/payment/{outcome}?{urlencode(params)}"


class PaymentFlowService:
    """Owns the create / callback / webhook sequencing for one gateway."""

    def __init__(self, gateway: GatewayClient, store: PaymentStore, public_base_url: str) -> None:
        self.gateway = gateway
        self.store = store
        self.public_base_url = public_base_url.rstrip("/")

    def result_url(self, outcome: str, message: str, order_id: str | None = None) -> str:
        return result_url(self.public_base_url, outcome, message, order_id)

    def _validate(self, body: CreatePaymentBody) -> PaymentMethod:
        if not body.order_id or not body.payment_method or not body.amount or not (
            body.customer and body.customer.email
        ):
            raise ValidationError("Missing required fields")
        try:
            method = PaymentMethod(body.payment_method)
        except ValueError:
            raise ValidationError("Invalid payment method", "paymentMethod") from None
        if method not in CREATABLE_METHODS:
            raise ValidationError("Invalid payment method", "paymentMethod")
        if body.amount < 0:
            raise ValidationError("Invalid amount", "amount")
        return method

    async def create_payment(
        self, body: CreatePaymentBody, client_ip: str, request_base_url: str
    ) -> dict[str, Any]:
        """Create a gateway payment and build the JSON envelope for the caller."""

        method = self._validate(body)
        order_id_ctx.set(body.order_id)
        payment_method_ctx.set(method.value)
        return_url = f"{request_base_url}/api/payment/callback?orderId={quote(body.order_id, safe='')}"
        notification_url = f"{request_base_url}/api/payment/webhook"

        logger.info(
            "creating payment order_id=%s method=%s amount=%s currency=%s customer_ip=%s",
            body.order_id,
            method.value,
            body.amount,
            body.currency,
            client_ip,
        )
        try:
            request = PaymentRequest(
                payment_method=method,
                amount=Money(amount=body.amount, currency=body.currency),
                merchant_reference=body.order_id,
                description=body.description or f"Order {body.order_id}",
                customer=Customer(
                    first_name=body.customer.first_name,
                    last_name=body.customer.last_name,
                    email=body.customer.email,
                    phone=body.customer.phone,
                ),
                return_url=return_url,
                notification_url=notification_url,
                language=body.language or "sk",
                customer_ip_address=client_ip,
            )
        except SchemaError as exc:
            raise ValidationError(f"Invalid payment request: {exc.errors()[0]['msg']}") from exc
        payment = await self.gateway.create_payment(request)
        payment_id_ctx.set(payment.payment_id)
        self.store.record_payment_id(sanitize_merchant_reference(body.order_id), payment.payment_id)

        envelope: dict[str, Any] = {"success": True, "paymentId": payment.payment_id}
        bank_transfer = (
            payment.bank_transfer_info.model_dump(by_alias=True, exclude={"amount_minor"})
            if payment.bank_transfer_info
            else None
        )
        if method == PaymentMethod.CARD_PAY and payment.redirect_url:
            envelope["redirectUrl"] = payment.redirect_url
        elif method == PaymentMethod.BANK_TRANSFER and bank_transfer:
            envelope["bankTransfer"] = bank_transfer
        else:
            envelope["redirectUrl"] = payment.redirect_url
            envelope["bankTransfer"] = bank_transfer
        return envelope

    async def handle_callback(self, order_id: str | None, payment_id_hint: str | None = None) -> str:
        """Resolve the browser return to a result page URL; never raises.

        A `paymentId` hint is only trusted when the gateway reports it under
        this order's merchant reference.
        """

        try:
            logger.info("payment callback received order_id=%s", order_id)
            if not order_id:
                return self.result_url(OUTCOME_ERROR, "Missing order ID")
            order_id_ctx.set(order_id)

            order_key = sanitize_merchant_reference(order_id)
            payment_id = self.store.lookup_payment_id(order_key)
            from_store = payment_id is not None
            payment_id = payment_id or payment_id_hint
            if not payment_id:
                logger.error("no payment id found order_id=%s", order_id)
                return self.result_url(OUTCOME_ERROR, "Payment not found")
            payment_id_ctx.set(payment_id)

            status = await self.gateway.get_payment_status(payment_id)
            if not from_store and status.merchant_reference != order_key:
                logger.warning(
                    "callback payment id belongs to another order order_id=%s merchant_reference=%s",
                    order_id,
                    status.merchant_reference,
                )
                return self.result_url(OUTCOME_ERROR, "Payment not found")
            payment_method_ctx.set(status.payment_method or "")
            self.store.record_status(order_key, status)
            payment_outcomes_total.labels(source="callback", outcome=status.internal_status).inc()

            if is_payment_successful(status.status):
                logger.info("payment successful order_id=%s status=%s", order_id, status.status)
                return self.result_url(OUTCOME_SUCCESS, "Payment successful")
            if is_payment_failed(status.status):
                logger.info("payment failed order_id=%s status=%s", order_id, status.status)
                return self.result_url(OUTCOME_FAILED, "Payment was declined", order_id)
            logger.info("payment pending order_id=%s status=%s", order_id, status.status)
            return self.result_url(OUTCOME_PENDING, "Awaiting payment confirmation")
        except Exception as exc:
            logger.exception("payment callback error order_id=%s: %s", order_id, exc)
            return self.result_url(OUTCOME_ERROR, "Error verifying payment")

    async def handle_webhook(self, payload: WebhookPayload) -> PaymentStatus:
        """Re-verify a pushed status with the gateway and record the verified one."""

        payment_id_ctx.set(payload.payment_id)
        logger.info(
            "webhook received payment_id=%s status=%s merchant_reference=%s",
            payload.payment_id,
            payload.status,
            payload.merchant_reference,
        )
        verified = await self.gateway.get_payment_status(payload.payment_id)
        if payload.status and payload.status != verified.status:
            logger.warning(
                "webhook status differs from gateway payment_id=%s pushed=%s verified=%s",
                payload.payment_id,
                payload.status,
                verified.status,
            )

        payment_method_ctx.set(verified.payment_method or "")
        order_id = sanitize_merchant_reference(verified.merchant_reference or payload.merchant_reference or "")
        if order_id:
            order_id_ctx.set(order_id)
            self.store.record_status(order_id, verified)
        else:
            logger.warning("webhook without merchant reference payment_id=%s", payload.payment_id)

        payment_outcomes_total.labels(source="webhook", outcome=verified.internal_status).inc()
        logger.info(
            "webhook verified payment_id=%s status=%s internal_status=%s transaction_id=%s",
            verified.payment_id,
            verified.status,
            verified.internal_status,
            verified.transaction_id,
        )
        return verified
