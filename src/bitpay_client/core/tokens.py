"""
Facades, access tokens and the per-client token cache.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import ClassVar, Dict, Iterable, List, Optional, Tuple, Union

__all__ = [
    "AccessToken",
    "Facade",
    "PairingCode",
    "TokenStore",
    "fallback_chain",
]


@dataclass(frozen=True)
class Facade:
    """
    A capability scope on the BitPay API.

    Equality compares the raw value; ``str()`` gives the lower-cased form used
    on the wire and as the token cache key.
    """

    value: str

    MERCHANT: ClassVar["Facade"]
    POINT_OF_SALE: ClassVar["Facade"]
    USER: ClassVar["Facade"]
    PAYROLL: ClassVar["Facade"]

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value:
            raise ValueError("Facade value must be a non-empty string")

    def __str__(self) -> str:
        return self.value.lower()

    @classmethod
    def coerce(cls, facade: Union["Facade", str]) -> "Facade":
        if isinstance(facade, cls):
            return facade
        return cls(facade)


Facade.MERCHANT = Facade("merchant")
Facade.POINT_OF_SALE = Facade("pos")
Facade.USER = Facade("user")
Facade.PAYROLL = Facade("payroll")


@dataclass(frozen=True)
class AccessToken:
    key: str
    value: str


@dataclass(frozen=True)
class PairingCode:
    """
    A code returned by the pairing handshake.

    It only becomes useful once a human approves it via :meth:`create_link`.
    """

    value: str

    def __str__(self) -> str:
        return self.value

    def create_link(self, base_url: str) -> str:
        link = base_url if base_url.endswith("/") else base_url + "/"
        return f"{link}api-access-request?pairingCode={self.value}"


def fallback_chain(facade: Facade) -> Tuple[str, ...]:
    """
    Cache keys to try, in order, when a token for ``facade`` is requested.

    A higher-trust token may stand in for a lower-trust facade: ``user`` falls
    back to ``pos`` then ``merchant``, and ``pos`` falls back to ``merchant``.
    """
    key = str(facade)
    if key == str(Facade.USER):
        return key, str(Facade.POINT_OF_SALE), str(Facade.MERCHANT)
    if key == str(Facade.POINT_OF_SALE):
        return key, str(Facade.MERCHANT)
    return (key,)


class TokenStore:
    """
    Thread-safe mapping from facade key to :class:`AccessToken`.

    Saves never overwrite: the first token stored for a key is kept until it
    is explicitly discarded.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens: Dict[str, AccessToken] = {}

    def save(self, key: str, value: str) -> bool:
        with self._lock:
            if key in self._tokens:
                return False
            self._tokens[key] = AccessToken(key=key, value=value)
            return True

    def save_all(self, tokens: Iterable[AccessToken]) -> None:
        for token in tokens:
            self.save(token.key, token.value)

    def lookup(self, facade: Union[Facade, str]) -> Optional[AccessToken]:
        chain = fallback_chain(Facade.coerce(facade))
        with self._lock:
            for key in chain:
                token = self._tokens.get(key)
                if token is not None:
                    return token
        return None

    def discard(self, facade: Union[Facade, str]) -> Optional[AccessToken]:
        key = str(Facade.coerce(facade))
        with self._lock:
            return self._tokens.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()

    def tokens(self) -> List[AccessToken]:
        with self._lock:
            return list(self._tokens.values())

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._tokens

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
