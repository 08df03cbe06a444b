from __future__ import annotations

import json
from typing import Any, List

import pytest

from bitpay_client import BitPayClient
from bitpay_client.core.transport import OutgoingRequest, TransportResponse

PRIVATE_KEY = "0x" + "4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
BASE_URL = "https://test.bitpay.com/"


class FakeTransport:
    """Records outgoing requests and replays queued responses in order."""

    def __init__(self) -> None:
        self.requests: List[OutgoingRequest] = []
        self._responses: List[TransportResponse] = []

    def queue(self, body: Any, status_code: int = 200) -> None:
        text = body if isinstance(body, str) else json.dumps(body)
        self._responses.append(TransportResponse(status_code=status_code, body=text))

    def send(self, request: OutgoingRequest) -> TransportResponse:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError(f"Unexpected request {request.method} {request.url}")
        return self._responses.pop(0)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport):
    return BitPayClient(BASE_URL, private_key=PRIVATE_KEY, transport=transport)


@pytest.fixture
def keyless_client(transport):
    return BitPayClient(BASE_URL, transport=transport)
