"""
Typed views over the handful of response bodies the client interprets itself.

Invoices, ledgers and settlements are returned as plain mappings; only token
and rate resources get dedicated types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from .errors import ProtocolError
from .tokens import AccessToken

__all__ = [
    "Rate",
    "Rates",
    "TokenGrant",
    "grants_from_response",
    "tokens_from_listing",
]


@dataclass(frozen=True)
class TokenGrant:
    """One token resource returned by ``POST /tokens``."""

    facade: str
    token: str
    pairing_code: Optional[str] = None
    label: Optional[str] = None
    pairing_expiration: Optional[int] = None
    date_created: Optional[int] = None
    policies: List[Dict[str, Any]] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "TokenGrant":
        if not isinstance(payload, Mapping):
            raise ProtocolError(f"Error: token resource is not an object: {payload!r}")
        try:
            facade = payload["facade"]
            token = payload["token"]
        except KeyError as exc:
            raise ProtocolError(f"Error: token resource is missing {exc.args[0]!r}") from exc
        return cls(
            facade=facade,
            token=token,
            pairing_code=payload.get("pairingCode"),
            label=payload.get("label"),
            pairing_expiration=payload.get("pairingExpiration"),
            date_created=payload.get("dateCreated"),
            policies=list(payload.get("policies") or []),
            raw=dict(payload),
        )

    def to_access_token(self) -> AccessToken:
        return AccessToken(key=self.facade, value=self.token)


def grants_from_response(payload: Any) -> List[TokenGrant]:
    if not isinstance(payload, list):
        raise ProtocolError("Error: expected a list of token resources")
    return [TokenGrant.from_response(item) for item in payload]


def tokens_from_listing(payload: Any) -> List[AccessToken]:
    """
    Flatten a ``GET /tokens`` payload into access tokens.

    The listing is a list of single-entry objects such as
    ``[{"merchant": "..."}, {"pos": "..."}]``; every property becomes a token,
    in document order.
    """
    if not isinstance(payload, list):
        raise ProtocolError("Error: response to GET /tokens could not be parsed")
    tokens: List[AccessToken] = []
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        for key, value in entry.items():
            if not isinstance(value, str):
                raise ProtocolError(
                    f"Error: response to GET /tokens could not be parsed - "
                    f"token for {key!r} is not a string"
                )
            tokens.append(AccessToken(key=key, value=value))
    return tokens


@dataclass(frozen=True)
class Rate:
    code: str
    name: Optional[str]
    value: Decimal

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "Rate":
        if not isinstance(payload, Mapping) or "code" not in payload:
            raise ProtocolError(f"Error: rate resource could not be parsed: {payload!r}")
        return cls(
            code=payload["code"],
            name=payload.get("name"),
            value=Decimal(str(payload.get("rate", 0))),
        )


@dataclass(frozen=True)
class Rates:
    """The rate table returned by ``GET /rates``."""

    all_rates: List[Rate]

    @classmethod
    def from_response(cls, payload: Any) -> "Rates":
        if not isinstance(payload, list):
            raise ProtocolError("Error: expected a list of rates")
        return cls(all_rates=[Rate.from_response(item) for item in payload])

    def get_rate(self, currency_code: str) -> Decimal:
        for rate in self.all_rates:
            if rate.code == currency_code:
                return rate.value
        return Decimal(0)
