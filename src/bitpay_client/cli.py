"""
Command-line interface for pairing a key with BitPay and checking access.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable, Sequence, Tuple

from .api import create_client
from .core.config import ClientConfig, ConfigError, load_client_config
from .core.errors import BitPayError


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def _env_override(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError("Overrides must look like KEY=VALUE")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Override key must not be empty")
    return key, val


def _collect_overrides(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    return {key: value for key, value in pairs}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bitpay-client",
        description="Pair an API key with BitPay and check facade access",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing BITPAY_* settings (default: .env)",
    )
    parser.add_argument(
        "--set",
        action="append",
        type=_env_override,
        metavar="KEY=VALUE",
        default=None,
        help="Override an environment variable without editing the .env file",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("sin", help="Print the SIN and public key of the configured key")

    pair = commands.add_parser("pair", help="Request a pairing code for a facade")
    pair.add_argument("--label", help="Token label (default: BITPAY_CLIENT_LABEL)")
    pair.add_argument("--facade", help="Facade to request (default: BITPAY_FACADE)")

    authorize = commands.add_parser("authorize", help="Complete a pairing with a code")
    authorize.add_argument("pairing_code")

    test_access = commands.add_parser("test-access", help="Check whether a facade is usable")
    test_access.add_argument("--facade", help="Facade to check (default: BITPAY_FACADE)")
    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)
    overrides = _collect_overrides(args.set or ())

    try:
        config = load_client_config(env_file=args.env_file, overrides=overrides)
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    if config.private_key is None:
        logging.error("Invalid configuration: BITPAY_PRIVATE_KEY must be provided")
        return 1

    client = create_client(config=config)
    try:
        return _dispatch(args, client, config)
    except BitPayError as exc:
        logging.error("BitPay request failed: %s", exc)
        return 1


def _dispatch(args: argparse.Namespace, client, config: ClientConfig) -> int:
    if args.command == "sin":
        print(client.identity.sin)
        print(client.identity.public_key)
        return 0

    if args.command == "pair":
        facade = args.facade or config.facade
        code = client.request_authorization(args.label or config.label, facade)
        logging.info("Pairing code %s issued for facade %s", code, facade)
        print(code)
        print(code.create_link(client.base_url))
        return 0

    if args.command == "authorize":
        grants = client.authorize_client(args.pairing_code)
        for grant in grants:
            logging.info("Received %s token", grant.facade)
        return 0

    facade = args.facade or config.facade
    if client.test_access(facade):
        logging.info("Facade %s is authorized for %s", facade, client.sin)
        return 0
    logging.error("Facade %s is not authorized for %s", facade, client.sin)
    return 1


def main() -> None:
    sys.exit(run_cli())
