"""
Exception hierarchy raised by the BitPay client.

Every error keeps the server-provided message text verbatim in ``errors`` so
callers can surface it to an operator unchanged.
"""

from __future__ import annotations

from typing import List, Optional

__all__ = [
    "AuthorizationError",
    "BitPayError",
    "IdentityError",
    "ProtocolError",
    "RemoteError",
    "TransportError",
]


class BitPayError(Exception):
    """Base class for every failure surfaced by the client."""

    def __init__(self, *messages: str) -> None:
        super().__init__(*messages)
        self.errors: List[str] = [message for message in messages if message is not None]

    def __str__(self) -> str:
        if not self.errors:
            return self.__class__.__name__
        return "BitPay Errors: " + "\n".join(self.errors)


class IdentityError(BitPayError):
    """Raised when an operation needs a private key the client does not have."""


class ProtocolError(BitPayError):
    """Raised when the server answers with a shape the client cannot use."""


class AuthorizationError(BitPayError):
    """Raised when no access token is available for a facade."""

    def __init__(self, facade: object, message: Optional[str] = None) -> None:
        self.facade = facade
        super().__init__(message or f"You do not have access to facade: {facade}")


class RemoteError(BitPayError):
    """Raised for ``error`` and ``errors`` payloads returned by the server."""



class TransportError(BitPayError):
    """
    Raised when the HTTP exchange itself failed.

    Either the transport could not complete the request at all, or the server
    answered with a failing status and a body that is not a JSON object.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
