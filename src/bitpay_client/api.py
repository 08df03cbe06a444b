"""
Public, high-level helpers for talking to the BitPay API.
"""

from __future__ import annotations

from typing import Mapping, Optional

import requests

from .core.client import BitPayClient
from .core.config import ClientConfig, ClientParameters, load_client_config
from .core.tokens import Facade, PairingCode
from .core.transport import RequestsTransport, Transport

__all__ = [
    "create_client",
    "pair_client",
]


def create_client(
    *,
    config: Optional[ClientConfig] = None,
    session: Optional[requests.Session] = None,
    transport: Optional[Transport] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ClientParameters] = None,
    api_url: Optional[str] = None,
    private_key: Optional[str] = None,
    timeout_seconds: Optional[int | str] = None,
) -> BitPayClient:
    """
    Construct a :class:`BitPayClient`.

    Callers can either supply a ready-made :class:`ClientConfig` or let the
    helper assemble one from environment data. ``session`` and ``transport``
    are mutually exclusive.
    """
    if session is not None and transport is not None:
        raise ValueError("Provide either a requests session or a transport, not both.")

    if config is not None:
        extras = (overrides, base, parameters, api_url, private_key, timeout_seconds)
        if any(item is not None and item != {} for item in extras):
            raise ValueError(
                "Provide either a pre-built ClientConfig or individual parameters, not both."
            )
        cfg = config
    else:
        cfg = load_client_config(
            env_file=env_file,
            overrides=overrides,
            base=base,
            parameters=parameters,
            api_url=api_url,
            private_key=private_key,
            timeout_seconds=timeout_seconds,
        )

    if transport is None:
        transport = RequestsTransport(session=session, timeout=cfg.timeout_seconds)
    return BitPayClient.from_config(cfg, transport=transport)


def pair_client(
    client: BitPayClient,
    *,
    label: Optional[str] = None,
    facade: Facade | str = Facade.MERCHANT,
) -> tuple[PairingCode, str]:
    """
    Request a pairing code and return it with the link a human must visit.
    """
    code = client.request_authorization(label, facade)
    return code, code.create_link(client.base_url)
