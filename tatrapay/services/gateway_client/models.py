"""Value objects exchanged with the TatraPay+ gateway client."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from tatrapay.common.status import map_to_internal_status


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire and in API envelopes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaymentMethod(str, Enum):
    CARD_PAY = "CARD_PAY"
    BANK_TRANSFER = "BANK_TRANSFER"
    QR_PAY = "QR_PAY"
    PAY_LATER = "PAY_LATER"


CREATABLE_METHODS = frozenset({PaymentMethod.CARD_PAY, PaymentMethod.BANK_TRANSFER})


class CachedToken(BaseModel):
    """One OAuth bearer token plus its absolute expiry on the cache clock."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    scope: str = ""
    expires_at: float


class Money(CamelModel):
    """Amount in integer minor units (10000 = 100.00 EUR)."""

    amount: int = Field(gt=0)
    currency: str = Field(default="EUR", min_length=3, max_length=3)


class GatewayAmount(CamelModel):
    """Amount exactly as the status endpoint reports it."""

    amount: Decimal
    currency: str


class Address(CamelModel):
    street_name: str | None = None
    building_number: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str = Field(min_length=2, max_length=2)


class Customer(CamelModel):
    first_name: str = ""
    last_name: str = ""
    email: str
    phone: str | None = None
    address: Address | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class PaymentRequest(CamelModel):
    """Caller-side description of one payment to create."""

    payment_method: PaymentMethod
    amount: Money
    merchant_reference: str = Field(min_length=1)
    description: str | None = None
    customer: Customer | None = None
    return_url: str
    notification_url: str | None = None
    language: str = "sk"
    validity_minutes: int | None = None
    customer_ip_address: str = Field(min_length=1)


class BankTransferInfo(CamelModel):
    iban: str
    bic: str
    variable_symbol: str
    amount: Decimal
    amount_minor: int
    currency: str

    @field_serializer("amount")
    def _amount_as_number(self, value: Decimal) -> float:
        return float(value)


class PaymentResponse(CamelModel):
    payment_id: str
    status: str = "RCVD"
    redirect_url: str | None = None
    bank_transfer_info: BankTransferInfo | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PaymentStatus(CamelModel):
    payment_id: str
    status: str
    merchant_reference: str = ""
    amount: GatewayAmount | None = None
    paid_amount: GatewayAmount | None = None
    payment_method: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    transaction_id: str | None = None

    @property
    def internal_status(self) -> str:
        return map_to_internal_status(self.status)


class PaymentMethodAvailability(CamelModel):
    method: str
    available: bool
    min_amount: int | None = None
    max_amount: int | None = None
