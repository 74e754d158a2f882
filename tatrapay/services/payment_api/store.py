"""Order -> gateway payment lookups.

Order persistence belongs to the host application. The payment API only
needs a key-value capability: remember which gateway payment belongs to an
order, and remember the last verified status. Recording a status overwrites
the previous one, so replayed webhooks converge on the same state.
"""

import json
from typing import Any, Protocol

import redis

from tatrapay.services.gateway_client.models import PaymentStatus


class PaymentStore(Protocol):
    def record_payment_id(self, order_id: str, payment_id: str) -> None: ...

    def lookup_payment_id(self, order_id: str) -> str | None: ...

    def record_status(self, order_id: str, status: PaymentStatus) -> None: ...

    def get_status(self, order_id: str) -> dict[str, Any] | None: ...


def _status_record(status: PaymentStatus) -> dict[str, Any]:
    return {
        "payment_id": status.payment_id,
        "status": status.status,
        "internal_status": status.internal_status,
        "transaction_id": status.transaction_id,
    }


class InMemoryPaymentStore:
    """Process-local store; contents are lost on restart."""

    def __init__(self) -> None:
        self._payment_ids: dict[str, str] = {}
        self._statuses: dict[str, dict[str, Any]] = {}

    def record_payment_id(self, order_id: str, payment_id: str) -> None:
        self._payment_ids[order_id] = payment_id

    def lookup_payment_id(self, order_id: str) -> str | None:
        return self._payment_ids.get(order_id)

    def record_status(self, order_id: str, status: PaymentStatus) -> None:
        self._statuses[order_id] = _status_record(status)

    def get_status(self, order_id: str) -> dict[str, Any] | None:
        return self._statuses.get(order_id)


class RedisPaymentStore:
    """Redis-backed store, one hash per order."""

    def __init__(self, rdb: redis.Redis, ttl_seconds: int) -> None:
        self.rdb = rdb
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int) -> "RedisPaymentStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), ttl_seconds)

    @staticmethod
    def _key(order_id: str) -> str:
        return f"tatrapay:order:{order_id}"

    def record_payment_id(self, order_id: str, payment_id: str) -> None:
        key = self._key(order_id)
        self.rdb.hset(key, mapping={"payment_id": payment_id})
        self.rdb.expire(key, self.ttl_seconds)

    def lookup_payment_id(self, order_id: str) -> str | None:
        return self.rdb.hget(self._key(order_id), "payment_id")

    def record_status(self, order_id: str, status: PaymentStatus) -> None:
        key = self._key(order_id)
        self.rdb.hset(key, mapping={"status": json.dumps(_status_record(status))})
        self.rdb.expire(key, self.ttl_seconds)

    def get_status(self, order_id: str) -> dict[str, Any] | None:
        raw = self.rdb.hget(self._key(order_id), "status")
        return json.loads(raw) if raw else None
