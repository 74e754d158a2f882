"""Request/response schemas for the payment API endpoints."""

from pydantic import BaseModel

from tatrapay.services.gateway_client.models import CamelModel


class CustomerBody(CamelModel):
    email: str | None = None
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None


class CreatePaymentBody(CamelModel):
    """Payload accepted by `POST /api/payment/create`.

    Fields are optional here so that missing values produce the endpoint's
    own 400 message instead of a schema error.
    """

    order_id: str | None = None
    payment_method: str | None = None
    amount: int | None = None
    currency: str = "EUR"
    customer: CustomerBody | None = None
    description: str | None = None
    language: str | None = None


class WebhookPayload(CamelModel):
    """Status notification pushed by the gateway; never trusted verbatim."""

    payment_id: str
    status: str | None = None
    merchant_reference: str | None = None
    transaction_id: str | None = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
