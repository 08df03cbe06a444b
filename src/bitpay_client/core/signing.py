"""
Request signing for endpoints that require proof of identity.
"""

from __future__ import annotations

from typing import Optional

from .errors import IdentityError
from .identity import ClientIdentity
from .transport import OutgoingRequest

__all__ = ["sign_request"]


def sign_request(
    request: OutgoingRequest,
    identity: Optional[ClientIdentity],
) -> OutgoingRequest:
    """
    Attach ``x-signature`` and ``x-identity`` headers to ``request``.

    The signature covers ``request.url + request.body``, so it must be the
    last thing done to a request before it is sent. Signing again replaces
    the previous headers.
    """
    if identity is None:
        raise IdentityError(
            "This client was created without a private key and cannot sign requests"
        )
    request.headers["x-signature"] = identity.sign(request.canonical)
    request.headers["x-identity"] = identity.public_key
    return request
