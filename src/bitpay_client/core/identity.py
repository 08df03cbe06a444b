"""
Client identity derived from a secp256k1 private key.

BitPay identifies API clients by a BitID "SIN" (type-2, ephemeral): the
base58check encoding of ``0x0F 0x02 || RIPEMD160(SHA256(compressed pubkey))``.
Requests are authenticated by an ECDSA signature over the SHA-256 digest of
the request's absolute URL followed by its body.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Union

import base58
from Crypto.Hash import RIPEMD160
from ecdsa import SECP256k1
from ecdsa.der import UnexpectedDER
from ecdsa.util import sigdecode_der, sigencode_der
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from hexbytes import HexBytes

from .errors import IdentityError

__all__ = [
    "ClientIdentity",
    "derive_sin",
    "verify_signature",
]

SIN_PREFIX = b"\x0f\x02"


def _message_digest(message: str) -> bytes:
    return hashlib.sha256(message.encode("utf-8")).digest()


def derive_sin(compressed_public_key: bytes) -> str:
    """Return the BitID SIN for a 33-byte compressed public key."""
    if len(compressed_public_key) != 33:
        raise IdentityError("SIN derivation expects a 33-byte compressed public key")
    key_hash = RIPEMD160.new(hashlib.sha256(compressed_public_key).digest()).digest()
    return base58.b58encode_check(SIN_PREFIX + key_hash).decode("ascii")


def _load_private_key(private_key: Union[str, bytes]) -> keys.PrivateKey:
    try:
        raw = bytes(HexBytes(private_key))
    except (TypeError, ValueError) as exc:
        raise IdentityError("Private key must be hex text or raw bytes") from exc
    try:
        return keys.PrivateKey(raw)
    except ValidationError as exc:
        raise IdentityError(f"Invalid secp256k1 private key: {exc}") from exc


@dataclass(frozen=True)
class ClientIdentity:
    """
    The key material backing a client.

    ``public_key`` is the compressed SEC1 encoding in lower-case hex, which is
    what BitPay expects in the ``x-identity`` header.
    """

    sin: str
    public_key: str
    _private_key: keys.PrivateKey = field(repr=False, compare=False)

    @classmethod
    def from_private_key(cls, private_key: Union[str, bytes]) -> "ClientIdentity":
        key = _load_private_key(private_key)
        compressed = key.public_key.to_compressed_bytes()
        return cls(
            sin=derive_sin(compressed),
            public_key=compressed.hex(),
            _private_key=key,
        )

    def sign(self, message: str) -> str:
        """
        Sign ``message`` and return the DER-encoded signature as hex.
        """
        signature = self._private_key.sign_msg_hash_non_recoverable(
            _message_digest(message)
        )
        return sigencode_der(signature.r, signature.s, SECP256k1.order).hex()

    def verify(self, message: str, signature: str) -> bool:
        return verify_signature(self.public_key, message, signature)


def verify_signature(public_key: str, message: str, signature: str) -> bool:
    """
    Check a hex DER ``signature`` of ``message`` against a compressed public key.

    Malformed keys or signatures verify as ``False`` rather than raising.
    """
    try:
        key = keys.PublicKey.from_compressed_bytes(bytes.fromhex(public_key))
        r, s = sigdecode_der(bytes.fromhex(signature), SECP256k1.order)
        decoded = keys.NonRecoverableSignature(rs=(r, s))
    except (ValueError, UnexpectedDER, ValidationError, BadSignature):
        return False
    return key.verify_msg_hash(_message_digest(message), decoded)
