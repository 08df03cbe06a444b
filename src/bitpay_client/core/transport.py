"""
HTTP plumbing between the client and the BitPay API.

The client never talks to ``requests`` directly: it builds an
:class:`OutgoingRequest`, optionally signs it, and hands it to a transport.
Each client owns its transport, so tests can substitute an in-memory one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import requests

from .errors import TransportError

__all__ = [
    "API_VERSION",
    "OutgoingRequest",
    "RequestsTransport",
    "Transport",
    "TransportResponse",
]

API_VERSION = "2.0.0"


@dataclass
class OutgoingRequest:
    method: str
    url: str
    body: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def canonical(self) -> str:
        """The string a request signature covers: absolute URL then body."""
        return self.url + (self.body or "")


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class Transport(Protocol):
    def send(self, request: OutgoingRequest) -> TransportResponse:
        ...


class RequestsTransport:
    """
    Transport backed by a :class:`requests.Session`.
    """

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, request: OutgoingRequest) -> TransportResponse:
        data = request.body.encode("utf-8") if request.body is not None else None
        try:
            response = self.session.request(
                request.method,
                request.url,
                headers=request.headers,
                data=data,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logging.warning("%s %s failed: %s", request.method, request.url, exc)
            raise TransportError(f"Error: {exc}") from exc
        return TransportResponse(status_code=response.status_code, body=response.text)

    def close(self) -> None:
        self.session.close()
