"""
Public facade for the BitPay client package.

The most useful pieces are re-exported here so integrators can
``from bitpay_client import ...`` without navigating the package.
"""

from .api import create_client, pair_client
from .core import (
    API_VERSION,
    DEFAULT_API_URL,
    TEST_API_URL,
    AccessToken,
    AuthorizationError,
    BitPayClient,
    BitPayError,
    ClientConfig,
    ClientIdentity,
    ClientParameters,
    ConfigError,
    Facade,
    IdentityError,
    PairingCode,
    ProtocolError,
    Rate,
    Rates,
    RemoteError,
    RequestsTransport,
    TokenGrant,
    TokenStore,
    TransportError,
    load_client_config,
    parse_response,
    sign_request,
    verify_signature,
)

__all__ = (
    "API_VERSION",
    "AccessToken",
    "AuthorizationError",
    "BitPayClient",
    "BitPayError",
    "ClientConfig",
    "ClientIdentity",
    "ClientParameters",
    "ConfigError",
    "DEFAULT_API_URL",
    "Facade",
    "IdentityError",
    "PairingCode",
    "ProtocolError",
    "Rate",
    "Rates",
    "RemoteError",
    "RequestsTransport",
    "TEST_API_URL",
    "TokenGrant",
    "TokenStore",
    "TransportError",
    "create_client",
    "load_client_config",
    "pair_client",
    "parse_response",
    "sign_request",
    "verify_signature",
)
