"""
HTTP client for the BitPay merchant API.

:class:`BitPayClient` owns the client identity, a :class:`TokenStore` and a
transport. Every call goes through the same steps: resolve a facade token
when the endpoint needs one, build the request, sign it when the endpoint
requires proof of identity, send it, and interpret the response envelope.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar, Union
from urllib.parse import quote

from requests.utils import requote_uri

from .config import ClientConfig
from .envelope import parse_response
from .errors import AuthorizationError, IdentityError, ProtocolError
from .identity import ClientIdentity
from .models import Rate, Rates, TokenGrant, grants_from_response, tokens_from_listing
from .payloads import (
    build_invoice_payload,
    build_pairing_completion,
    build_pairing_request,
    build_query,
    format_date,
)
from .signing import sign_request
from .tokens import AccessToken, Facade, PairingCode, TokenStore
from .transport import (
    API_VERSION,
    OutgoingRequest,
    RequestsTransport,
    Transport,
    TransportResponse,
)

__all__ = ["BitPayClient"]

T = TypeVar("T")
FacadeLike = Union[Facade, str]


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


class BitPayClient:
    """
    Client for one BitPay identity.

    A client built without a private key can only reach public endpoints
    such as rates; anything that has to be signed raises
    :class:`IdentityError`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        private_key: Optional[Union[str, bytes]] = None,
        identity: Optional[ClientIdentity] = None,
        transport: Optional[Transport] = None,
        tokens: Optional[TokenStore] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        if identity is not None and private_key is not None:
            raise ValueError("Provide either a private key or an identity, not both.")
        if identity is None and private_key is not None:
            identity = ClientIdentity.from_private_key(private_key)
        self.base_url = base_url
        self.identity = identity
        self.transport = transport if transport is not None else RequestsTransport()
        self.tokens = tokens if tokens is not None else TokenStore()

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        transport: Optional[Transport] = None,
    ) -> "BitPayClient":
        return cls(
            config.api_url,
            private_key=config.private_key,
            transport=transport or RequestsTransport(timeout=config.timeout_seconds),
        )

    @property
    def sin(self) -> str:
        return self._require_identity().sin

    def _require_identity(self) -> ClientIdentity:
        if self.identity is None:
            raise IdentityError(
                "This client was created without a private key and has no identity"
            )
        return self.identity

    # ------------------------------------------------------------------
    # Transport helpers

    def _full_url(self, relative_path: str) -> str:
        base = self.base_url if self.base_url.endswith("/") else self.base_url + "/"
        # Signed text must match the escaped URL requests puts on the wire.
        return requote_uri(base + relative_path)

    def _send(
        self,
        method: str,
        path: str,
        *,
        body: Optional[Mapping[str, Any]] = None,
        sign: bool = False,
    ) -> TransportResponse:
        request = OutgoingRequest(
            method=method,
            url=self._full_url(path),
            headers={"x-accept-version": API_VERSION},
        )
        if body is not None:
            request.body = json.dumps(body)
            request.headers["Content-Type"] = "application/json"
        if sign:
            sign_request(request, self.identity)
        logging.debug("%s %s", method, request.url)
        return self.transport.send(request)

    def _call(
        self,
        method: str,
        path: str,
        *,
        body: Optional[Mapping[str, Any]] = None,
        sign: bool = False,
        into: Optional[Callable[[Any], T]] = None,
    ) -> T:
        response = self._send(method, path, body=body, sign=sign)
        return parse_response(
            response.body,
            response.ok,
            into=into,
            status_code=response.status_code,
        )

    # ------------------------------------------------------------------
    # Authorization

    def request_authorization(
        self,
        label: Optional[str] = None,
        facade: FacadeLike = Facade.MERCHANT,
    ) -> PairingCode:
        """
        Ask the server for a token in ``facade`` and return its pairing code.

        The returned code still has to be approved by a human through
        :meth:`PairingCode.create_link` before the facade becomes usable.
        """
        facade = Facade.coerce(facade)
        payload = build_pairing_request(self.sin, facade, label=label)
        logging.info("Requesting %s authorization for %s", facade, self.sin)
        grants = self._call("POST", "tokens", body=payload, sign=True, into=grants_from_response)

        if len(grants) != 1:
            raise ProtocolError(
                f"Error - failed to get token resource; expected 1 token, got {len(grants)}"
            )
        grant = grants[0]
        if not grant.pairing_code:
            raise ProtocolError("Error - token resource did not include a pairing code")

        self.tokens.save(grant.facade, grant.token)
        return PairingCode(grant.pairing_code)

    def authorize_client(self, pairing_code: Union[PairingCode, str]) -> List[TokenGrant]:
        """
        Pair this client using a code obtained from the merchant dashboard.
        """
        payload = build_pairing_completion(self.sin, pairing_code)
        logging.info("Completing pairing for %s", self.sin)
        grants = self._call("POST", "tokens", body=payload, sign=True, into=grants_from_response)
        self.tokens.save_all(grant.to_access_token() for grant in grants)
        return grants

    def get_access_tokens(self) -> List[AccessToken]:
        """
        List every token the server currently holds for this identity.

        A failing status yields an empty list: the caller decides whether a
        missing token is an error.
        """
        # Signed when a key is present; the server scopes the listing by x-identity.
        response = self._send("GET", "tokens", sign=self.identity is not None)
        if not response.ok:
            logging.info("Token listing returned HTTP %s", response.status_code)
            return []
        return parse_response(
            response.body,
            response.ok,
            into=tokens_from_listing,
            status_code=response.status_code,
        )

    def _resolve_token(self, facade: Facade) -> Optional[AccessToken]:
        token = self.tokens.lookup(facade)
        if token is not None:
            return token
        self.tokens.save_all(self.get_access_tokens())
        return self.tokens.lookup(facade)

    def get_access_token(self, facade: FacadeLike) -> AccessToken:
        facade = Facade.coerce(facade)
        token = self._resolve_token(facade)
        if token is None:
            raise AuthorizationError(facade)
        return token

    def test_access(self, facade: FacadeLike) -> bool:
        return self._resolve_token(Facade.coerce(facade)) is not None

    # ------------------------------------------------------------------
    # Invoices

    def create_invoice(
        self,
        invoice: Mapping[str, Any],
        facade: FacadeLike = Facade.POINT_OF_SALE,
    ) -> Dict[str, Any]:
        token = self.get_access_token(facade)
        payload = build_invoice_payload(invoice, token.value)
        return self._call("POST", "invoices", body=payload, sign=True)

    def get_invoice(
        self,
        invoice_id: str,
        facade: FacadeLike = Facade.MERCHANT,
    ) -> Dict[str, Any]:
        facade = Facade.coerce(facade)
        # GET /invoices/{id} wants the merchant token itself, not the invoice token.
        if facade == Facade.MERCHANT:
            token = self.get_access_token(facade)
            path = f"invoices/{_segment(invoice_id)}" + build_query({"token": token.value})
        else:
            path = f"invoices/{_segment(invoice_id)}"
        return self._call("GET", path, sign=True)

    def get_invoices(
        self,
        date_start: Optional[date] = None,
        date_end: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        token = self.get_access_token(Facade.MERCHANT)
        query = build_query(
            {
                "token": token.value,
                "dateStart": format_date(date_start) if date_start else None,
                "dateEnd": format_date(date_end) if date_end else None,
            }
        )
        return self._call("GET", "invoices" + query, sign=True)

    # ------------------------------------------------------------------
    # Rates

    def get_rates(self, base_currency: Optional[str] = None) -> Rates:
        path = f"rates/{_segment(base_currency)}" if base_currency else "rates"
        return self._call("GET", path, into=Rates.from_response)

    def get_rate(self, base_currency: str, currency: str) -> Rate:
        path = f"rates/{_segment(base_currency)}/{_segment(currency)}"
        return self._call("GET", path, into=Rate.from_response)

    # ------------------------------------------------------------------
    # Ledgers

    def get_ledgers(self) -> List[Dict[str, Any]]:
        token = self.get_access_token(Facade.MERCHANT)
        return self._call("GET", "ledgers/" + build_query({"token": token.value}), sign=True)

    def get_ledger(
        self,
        currency: str,
        date_start: Optional[date] = None,
        date_end: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        token = self.get_access_token(Facade.MERCHANT)
        query = build_query(
            {
                "token": token.value,
                "startDate": format_date(date_start) if date_start else None,
                "endDate": format_date(date_end) if date_end else None,
            }
        )
        return self._call("GET", f"ledgers/{_segment(currency)}" + query, sign=True)

    # ------------------------------------------------------------------
    # Settlements

    def get_settlements(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        currency: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        token = self.get_access_token(Facade.MERCHANT)
        query = build_query(
            {
                "token": token.value,
                "startDate": format_date(start_date) if start_date else None,
                "endDate": format_date(end_date) if end_date else None,
                "currency": currency,
                "status": status,
                "limit": limit,
                "offset": offset,
            }
        )
        return self._call("GET", "settlements" + query, sign=True)

    def get_settlement_summary(self, settlement_id: str) -> Dict[str, Any]:
        token = self.get_access_token(Facade.MERCHANT)
        path = f"settlements/{_segment(settlement_id)}" + build_query({"token": token.value})
        return self._call("GET", path, sign=True)

    def get_settlement_reconciliation_report(
        self,
        settlement_id: str,
        settlement_token: str,
    ) -> Dict[str, Any]:
        path = f"settlements/{_segment(settlement_id)}/reconciliationReport" + build_query(
            {"token": settlement_token}
        )
        return self._call("GET", path, sign=True)
