"""
Core primitives: identity, request signing, token cache, envelope parsing
and the client that ties them together.
"""

from .client import BitPayClient
from .config import (
    DEFAULT_API_URL,
    TEST_API_URL,
    ClientConfig,
    ClientParameters,
    ConfigError,
    load_client_config,
)
from .envelope import Envelope, EnvelopeKind, classify_response, parse_response
from .environment import ClientEnvironment, build_environment
from .errors import (
    AuthorizationError,
    BitPayError,
    IdentityError,
    ProtocolError,
    RemoteError,
    TransportError,
)
from .identity import ClientIdentity, derive_sin, verify_signature
from .models import Rate, Rates, TokenGrant
from .signing import sign_request
from .tokens import AccessToken, Facade, PairingCode, TokenStore, fallback_chain
from .transport import (
    API_VERSION,
    OutgoingRequest,
    RequestsTransport,
    Transport,
    TransportResponse,
)

__all__ = [
    "API_VERSION",
    "AccessToken",
    "AuthorizationError",
    "BitPayClient",
    "BitPayError",
    "ClientConfig",
    "ClientEnvironment",
    "ClientIdentity",
    "ClientParameters",
    "ConfigError",
    "DEFAULT_API_URL",
    "Envelope",
    "EnvelopeKind",
    "Facade",
    "IdentityError",
    "OutgoingRequest",
    "PairingCode",
    "ProtocolError",
    "Rate",
    "Rates",
    "RemoteError",
    "RequestsTransport",
    "TEST_API_URL",
    "TokenGrant",
    "TokenStore",
    "Transport",
    "TransportError",
    "TransportResponse",
    "build_environment",
    "classify_response",
    "derive_sin",
    "fallback_chain",
    "load_client_config",
    "parse_response",
    "sign_request",
    "verify_signature",
]
