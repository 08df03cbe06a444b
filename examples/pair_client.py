"""
Minimal script that pairs a key with BitPay and waits for it to be approved.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

from bitpay_client import BitPayError, ConfigError, create_client, load_client_config, pair_client


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pair a BitPay API key using the SDK API")
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing BITPAY_* settings",
    )
    parser.add_argument(
        "--private-key",
        help="Provide the private key without relying on environment data",
    )
    parser.add_argument(
        "--api-url",
        help="Override the API base URL (default: https://bitpay.com/)",
    )
    parser.add_argument(
        "--facade",
        default="merchant",
        help="Facade to request (default: merchant)",
    )
    parser.add_argument(
        "--poll-seconds",
        type=int,
        default=10,
        help="Seconds between access checks while waiting for approval",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        config = load_client_config(
            env_file=args.env_file,
            private_key=args.private_key,
            api_url=args.api_url,
        )
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    client = create_client(config=config)
    try:
        if client.test_access(args.facade):
            logging.info("Key %s already has %s access", client.sin, args.facade)
            return 0

        code, link = pair_client(client, label=config.label, facade=args.facade)
        logging.info("Approve pairing code %s at %s", code, link)

        while not client.test_access(args.facade):
            time.sleep(args.poll_seconds)
    except BitPayError as exc:
        logging.error("BitPay request failed: %s", exc)
        return 1

    logging.info("Key %s now has %s access", client.sin, args.facade)
    return 0


if __name__ == "__main__":
    sys.exit(main())
