"""Query the TatraPay+ gateway directly with the configured credentials.

Useful for checking sandbox credentials, method availability, and the raw
status of a payment while debugging callbacks.
"""

import argparse
import asyncio
import json

from tatrapay.common.config import settings
from tatrapay.common.status import get_status_label
from tatrapay.services.gateway_client.service import GatewayClient


async def list_methods() -> list[dict]:
    async with GatewayClient(settings) as client:
        methods = await client.get_available_payment_methods()
    return [m.model_dump(by_alias=True) for m in methods]


async def payment_status(payment_id: str, language: str) -> dict:
    async with GatewayClient(settings) as client:
        status = await client.get_payment_status(payment_id)
    result = status.model_dump(by_alias=True, mode="json")
    result["internalStatus"] = status.internal_status
    result["label"] = get_status_label(status.status, language)
    return result


def main() -> None:
    """Parse CLI args and print one gateway response as JSON."""

    parser = argparse.ArgumentParser(description="Query the TatraPay+ payments API.")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("methods", help="List available payment methods")
    status_parser = sub.add_parser("status", help="Fetch the status of one payment")
    status_parser.add_argument("payment_id")
    status_parser.add_argument("--language", default="sk", choices=["sk", "en"])
    args = parser.parse_args()

    if args.command == "methods":
        result = asyncio.run(list_methods())
    else:
        result = asyncio.run(payment_status(args.payment_id, args.language))
    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
