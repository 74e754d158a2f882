"""Error kinds raised by the gateway client and the payment API."""

from typing import Any


class TatraPayError(Exception):
    """Base error carrying the HTTP status the payment API should answer with."""

    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(TatraPayError):
    """Credentials or other required settings are missing."""


class ValidationError(TatraPayError):
    """Caller input is missing or invalid."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class AuthenticationError(TatraPayError):
    """The OAuth token exchange did not produce a usable token."""

    def __init__(self, message: str, gateway_status: int | None = None, body: str = "") -> None:
        super().__init__(message, {"gateway_status": gateway_status})
        self.gateway_status = gateway_status
        self.body = body


class GatewayError(TatraPayError):
    """Non-2xx or malformed response from the payment gateway."""

    def __init__(self, message: str, gateway_status: int | None = None, body: Any = None) -> None:
        super().__init__(message, {"gateway_status": gateway_status})
        self.gateway_status = gateway_status
        self.body = body


class PaymentCreationError(GatewayError):
    """Payment creation was rejected or returned no usable payload."""


class MethodUnavailableError(PaymentCreationError):
    """The gateway accepted the request but reports the method as unavailable."""

    def __init__(self, message: str, method: str, reason_code: str | None = None) -> None:
        super().__init__(message)
        self.method = method
        self.reason_code = reason_code
        self.details.update({"method": method, "reason_code": reason_code})
