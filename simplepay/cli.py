"""
SimplePay command line.

Usage:
    simplepay request --amount 1.5 --label "Order 42"
    simplepay check --payment-id <id> --address <integrated> --amount 1.5
    simplepay watch --payment-id <id> --address <integrated> --amount 1.5 --timeout 3600

Configuration comes from environment variables or .env (see SimplePaySettings).
Every command waits for the wallet to sync before doing anything.
"""

import argparse
import asyncio
import json
import sys

from loguru import logger

from simplepay.config.settings import get_settings
from simplepay.models.payment import PaymentRequest
from simplepay.services.simple_pay import SimplePay
from simplepay.utils.exceptions import SimplePayError
from simplepay.utils.logging import setup_logging
from simplepay.utils.units import xmr_to_atomic_units
from simplepay.utils.validation import validate_payment_id


def _request_from_args(args: argparse.Namespace, default_confirmations: int) -> PaymentRequest:
    if not validate_payment_id(args.payment_id):
        raise SimplePayError(f"Invalid payment id: {args.payment_id}")
    return PaymentRequest(
        payment_id=args.payment_id.lower(),
        integrated_address=args.address,
        amount_atomic=xmr_to_atomic_units(args.amount),
        requested_confirmations=(
            args.confirmations if args.confirmations is not None else default_confirmations
        ),
    )


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)

    async with SimplePay(settings) as pay:
        if not await pay.wait_until_ready(args.ready_timeout):
            logger.error(f"Wallet did not sync within {args.ready_timeout}s")
            return 1

        if args.command == "request":
            request = await pay.create_payment_request(
                args.amount, label=args.label, requested_confirmations=args.confirmations
            )
            print(json.dumps(request.to_dict(), indent=2))
            return 0

        request = _request_from_args(args, settings.default_confirmations)
        if args.command == "check":
            response = await pay.check_for_payment(request)
        else:
            response = await pay.wait_for_payment(
                request, poll_interval=args.interval, timeout=args.timeout
            )
        print(json.dumps(response.to_dict(), indent=2))
        return 0 if response.payment_complete else 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="simplepay",
        description="Create and track Monero payment requests with a view-only wallet",
    )
    parser.add_argument(
        "--ready-timeout",
        type=float,
        default=None,
        help="Seconds to wait for wallet sync (default: forever)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    request = sub.add_parser("request", help="Create a payment request")
    request.add_argument("--amount", required=True, help="Amount in XMR")
    request.add_argument("--label", default=None, help="Recipient name shown to the payer")
    request.add_argument("--confirmations", type=int, default=None)

    for name, help_text in (("check", "Check a payment once"), ("watch", "Wait for a payment")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--payment-id", required=True)
        cmd.add_argument("--address", required=True, help="Integrated address of the request")
        cmd.add_argument("--amount", required=True, help="Requested amount in XMR")
        cmd.add_argument("--confirmations", type=int, default=None)
        if name == "watch":
            cmd.add_argument("--interval", type=float, default=10.0, help="Seconds between checks")
            cmd.add_argument("--timeout", type=float, default=None, help="Give up after seconds")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except SimplePayError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
