"""Shared fixtures: a fake gateway client wired into the payment API app."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from tatrapay.common.errors import GatewayError
from tatrapay.services.gateway_client.models import (
    BankTransferInfo,
    GatewayAmount,
    PaymentMethod,
    PaymentResponse,
    PaymentStatus,
)
from tatrapay.services.payment_api.main import app
from tatrapay.services.payment_api.service import PaymentFlowService
from tatrapay.services.payment_api.store import InMemoryPaymentStore

PUBLIC_BASE_URL = "https://shop.example"


class FakeGatewayClient:
    """Stands in for GatewayClient; statuses and references are keyed by payment id."""

    def __init__(self) -> None:
        self.created: list = []
        self.status_calls: list[str] = []
        self.statuses: dict[str, str] = {}
        self.references: dict[str, str] = {}
        self.create_error: Exception | None = None
        self.closed = False

    async def create_payment(self, req):
        self.created.append(req)
        if self.create_error is not None:
            raise self.create_error
        payment_id = f"pay-{len(self.created)}"
        if req.payment_method == PaymentMethod.CARD_PAY:
            return PaymentResponse(payment_id=payment_id, redirect_url=f"https://pay.example/{payment_id}")
        return PaymentResponse(
            payment_id=payment_id,
            bank_transfer_info=BankTransferInfo(
                iban="SK3111000000002612345678",
                bic="TATRSKBX",
                variable_symbol="2026001",
                amount=Decimal(req.amount.amount) / 100,
                amount_minor=req.amount.amount,
                currency=req.amount.currency,
            ),
        )

    async def get_payment_status(self, payment_id: str) -> PaymentStatus:
        self.status_calls.append(payment_id)
        if payment_id not in self.statuses:
            raise GatewayError("TatraPay API error: 404", gateway_status=404)
        return PaymentStatus(
            payment_id=payment_id,
            status=self.statuses[payment_id],
            merchant_reference=self.references.get(payment_id, "ORDER-1"),
            amount=GatewayAmount(amount=Decimal("7900"), currency="EUR"),
            payment_method="CARD_PAY",
        )

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def gateway() -> FakeGatewayClient:
    return FakeGatewayClient()


@pytest.fixture
def store() -> InMemoryPaymentStore:
    return InMemoryPaymentStore()


@pytest.fixture
def client(gateway, store):
    app.state.service = PaymentFlowService(gateway, store, PUBLIC_BASE_URL)
    try:
        yield TestClient(app)
    finally:
        app.state.service = None
