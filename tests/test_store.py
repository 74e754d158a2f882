"""Payment store implementations."""

import json
from unittest.mock import MagicMock

from tatrapay.services.gateway_client.models import PaymentStatus
from tatrapay.services.payment_api.service import result_url
from tatrapay.services.payment_api.store import InMemoryPaymentStore, RedisPaymentStore


def make_status(status: str = "ACSC") -> PaymentStatus:
    return PaymentStatus(payment_id="pay-1", status=status, merchant_reference="ORDER-1", transaction_id="tx-1")


def test_in_memory_store_overwrites_status():
    """Recording a status replaces the previous one for the order."""

    store = InMemoryPaymentStore()
    store.record_payment_id("ORDER-1", "pay-1")
    store.record_status("ORDER-1", make_status("PDNG"))
    store.record_status("ORDER-1", make_status("ACSC"))

    assert store.lookup_payment_id("ORDER-1") == "pay-1"
    assert store.lookup_payment_id("ORDER-2") is None
    assert store.get_status("ORDER-1") == {
        "payment_id": "pay-1",
        "status": "ACSC",
        "internal_status": "completed",
        "transaction_id": "tx-1",
    }


def test_redis_store_uses_one_hash_per_order():
    """Payment id and status live in one expiring hash per order."""

    rdb = MagicMock()
    store = RedisPaymentStore(rdb, ttl_seconds=3600)

    store.record_payment_id("ORDER-1", "pay-1")
    store.record_status("ORDER-1", make_status("RJCT"))

    rdb.hset.assert_any_call("tatrapay:order:ORDER-1", mapping={"payment_id": "pay-1"})
    status_call = rdb.hset.call_args_list[-1]
    assert json.loads(status_call.kwargs["mapping"]["status"])["internal_status"] == "failed"
    rdb.expire.assert_called_with("tatrapay:order:ORDER-1", 3600)


def test_redis_store_reads():
    """Stored ids and statuses are read back from the order hash."""

    rdb = MagicMock()
    rdb.hget.side_effect = lambda key, field: {
        "payment_id": "pay-1",
        "status": json.dumps({"status": "ACSC"}),
    }[field]
    store = RedisPaymentStore(rdb, ttl_seconds=60)

    assert store.lookup_payment_id("ORDER-1") == "pay-1"
    assert store.get_status("ORDER-1") == {"status": "ACSC"}


def test_result_url_encoding():
    """Result page parameters are form-encoded."""

    url = result_url("https://shop.example/", "failed", "Payment was declined", "ORDER 1")

    assert url == "https://shop.example/payment/failed?message=Payment+was+declined&orderId=ORDER+1"
