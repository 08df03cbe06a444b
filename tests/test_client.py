import json
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest
import requests
from requests import Response

from bitpay_client import (
    API_VERSION,
    AuthorizationError,
    BitPayClient,
    ClientIdentity,
    Facade,
    IdentityError,
    PairingCode,
    ProtocolError,
    RemoteError,
    TransportError,
    verify_signature,
)
from bitpay_client.core.transport import RequestsTransport, TransportResponse

from conftest import BASE_URL, PRIVATE_KEY, FakeTransport


def grant(facade="merchant", token="tok-1", pairing_code="abcdefg"):
    return {
        "policies": [{"policy": "id", "method": "inactive", "params": ["Tf..."]}],
        "token": token,
        "facade": facade,
        "label": "test",
        "dateCreated": 1503140597709,
        "pairingExpiration": 1503226997709,
        "pairingCode": pairing_code,
    }


def assert_signed(request, client):
    assert request.headers["x-identity"] == client.identity.public_key
    assert verify_signature(
        client.identity.public_key, request.canonical, request.headers["x-signature"]
    )


def test_request_authorization_returns_pairing_code(client, transport):
    transport.queue({"data": [grant(facade="merchant", token="m-token")]})

    code = client.request_authorization("my label", Facade.MERCHANT)

    assert code == PairingCode("abcdefg")
    assert client.tokens.lookup(Facade.MERCHANT).value == "m-token"

    request = transport.requests[0]
    assert request.method == "POST"
    assert request.url == BASE_URL + "tokens"
    assert request.headers["x-accept-version"] == API_VERSION
    assert request.headers["Content-Type"] == "application/json"
    assert_signed(request, client)

    body = json.loads(request.body)
    assert body["id"] == client.sin
    assert body["facade"] == "merchant"
    assert body["count"] == 1
    assert body["label"] == "my label"
    assert body["guid"]


def test_request_authorization_defaults_label(client, transport):
    transport.queue({"data": [grant(facade="pos")]})
    client.request_authorization(None, "pos")
    assert json.loads(transport.requests[0].body)["label"] == "DEFAULT"


def test_request_authorization_uses_fresh_guid(client, transport):
    transport.queue({"data": [grant()]})
    transport.queue({"data": [grant()]})
    client.request_authorization()
    client.request_authorization()
    guids = {json.loads(request.body)["guid"] for request in transport.requests}
    assert len(guids) == 2


@pytest.mark.parametrize("count", [0, 2])
def test_request_authorization_rejects_unexpected_token_count(client, transport, count):
    transport.queue({"data": [grant(token=f"t{i}") for i in range(count)]})

    with pytest.raises(ProtocolError):
        client.request_authorization("label", Facade.MERCHANT)

    assert len(client.tokens) == 0


def test_request_authorization_requires_key(keyless_client, transport):
    with pytest.raises(IdentityError):
        keyless_client.request_authorization("label", Facade.MERCHANT)
    assert transport.requests == []


def test_request_authorization_surfaces_server_error(client, transport):
    transport.queue({"error": "This SIN is not valid"}, status_code=400)
    with pytest.raises(RemoteError) as excinfo:
        client.request_authorization()
    assert excinfo.value.errors == ["This SIN is not valid"]


def test_authorize_client_saves_every_token(client, transport):
    transport.queue(
        {"data": [grant(facade="merchant", token="m"), grant(facade="pos", token="p")]}
    )

    grants = client.authorize_client(PairingCode("abcdefg"))

    assert [g.facade for g in grants] == ["merchant", "pos"]
    assert client.tokens.lookup(Facade.MERCHANT).value == "m"
    assert client.tokens.lookup(Facade.POINT_OF_SALE).value == "p"

    request = transport.requests[0]
    body = json.loads(request.body)
    assert body["pairingCode"] == "abcdefg"
    assert body["id"] == client.sin
    assert body["label"] == "DEFAULT"
    assert "facade" not in body
    assert_signed(request, client)


def test_authorize_client_keeps_existing_token(client, transport):
    client.tokens.save("merchant", "in-use")
    transport.queue({"data": [grant(facade="merchant", token="duplicate")]})
    client.authorize_client("abcdefg")
    assert client.tokens.lookup(Facade.MERCHANT).value == "in-use"


def test_get_access_token_uses_cache(client, transport):
    client.tokens.save("merchant", "cached")
    assert client.get_access_token(Facade.MERCHANT).value == "cached"
    assert transport.requests == []


def test_get_access_token_refreshes_once(client, transport):
    transport.queue({"data": [{"pos": "p-token"}, {"merchant": "m-token"}]})

    token = client.get_access_token(Facade.MERCHANT)

    assert token.value == "m-token"
    assert client.tokens.lookup(Facade.POINT_OF_SALE).value == "p-token"
    assert len(transport.requests) == 1
    listing = transport.requests[0]
    assert listing.method == "GET"
    assert listing.url == BASE_URL + "tokens"
    assert listing.body is None
    assert_signed(listing, client)

    # The second call is served from the cache.
    assert client.get_access_token("merchant").value == "m-token"
    assert len(transport.requests) == 1


def test_get_access_token_falls_back_after_refresh(client, transport):
    transport.queue({"data": [{"merchant": "m-token"}]})
    assert client.get_access_token(Facade.USER).value == "m-token"


def test_get_access_token_fails_with_empty_listing(client, transport):
    transport.queue({"data": []})

    with pytest.raises(AuthorizationError) as excinfo:
        client.get_access_token(Facade.PAYROLL)

    assert excinfo.value.facade == Facade.PAYROLL
    assert "payroll" in str(excinfo.value)
    assert len(transport.requests) == 1


def test_listing_failure_status_counts_as_no_tokens(client, transport):
    transport.queue({"error": "Unauthorized sin"}, status_code=401)
    assert client.get_access_tokens() == []


def test_malformed_listing_is_protocol_error(client, transport):
    transport.queue({"data": {"merchant": "m"}})
    with pytest.raises(ProtocolError):
        client.get_access_tokens()


def test_keyless_listing_is_unsigned(keyless_client, transport):
    transport.queue({"data": []})
    assert keyless_client.get_access_tokens() == []
    assert "x-signature" not in transport.requests[0].headers
    assert transport.requests[0].headers["x-accept-version"] == API_VERSION


def test_test_access(client, transport):
    transport.queue({"data": []})
    assert client.test_access(Facade.MERCHANT) is False

    transport.queue({"data": [{"merchant": "m"}]})
    assert client.test_access("merchant") is True


def test_transport_failure_propagates(client):
    class Broken:
        def send(self, request):
            raise TransportError("Error: connection refused")

    client.transport = Broken()
    with pytest.raises(TransportError):
        client.get_access_token(Facade.MERCHANT)


def test_concurrent_resolution_shares_the_store(client):
    class Listing(FakeTransport):
        def send(self, request):
            self.requests.append(request)
            return TransportResponse(200, json.dumps({"data": [{"merchant": "m"}]}))

    client.transport = Listing()
    with ThreadPoolExecutor(max_workers=8) as pool:
        values = list(pool.map(lambda _: client.get_access_token(Facade.USER).value, range(32)))

    assert set(values) == {"m"}
    assert len(client.tokens) == 1


def test_create_invoice_attaches_token_and_signs(client, transport):
    client.tokens.save("pos", "p-token")
    transport.queue({"data": {"id": "inv-1", "status": "new"}})

    invoice = client.create_invoice({"price": 10, "currency": "USD"})

    assert invoice["id"] == "inv-1"
    request = transport.requests[0]
    body = json.loads(request.body)
    assert body["token"] == "p-token"
    assert body["price"] == 10
    assert body["guid"]
    assert_signed(request, client)


def test_get_invoice_with_merchant_token(client, transport):
    client.tokens.save("merchant", "m-token")
    transport.queue({"data": {"id": "inv-1"}})
    client.get_invoice("inv-1")
    assert transport.requests[0].url == BASE_URL + "invoices/inv-1?token=m-token"


def test_get_invoice_with_pos_facade_has_no_token(client, transport):
    transport.queue({"data": {"id": "inv-1"}})
    client.get_invoice("inv-1", Facade.POINT_OF_SALE)
    assert transport.requests[0].url == BASE_URL + "invoices/inv-1"


def test_get_invoices_formats_dates(client, transport):
    client.tokens.save("merchant", "m")
    transport.queue({"data": []})
    client.get_invoices(date(2018, 3, 7), date(2018, 4, 1))
    assert transport.requests[0].url == (
        BASE_URL + "invoices?token=m&dateStart=03/07/2018&dateEnd=04/01/2018"
    )


def test_get_rates_is_public(keyless_client, transport):
    transport.queue({"data": [{"code": "USD", "name": "US Dollar", "rate": 10537.46}]})

    rates = keyless_client.get_rates()

    assert rates.get_rate("USD") == Decimal("10537.46")
    assert rates.get_rate("EUR") == Decimal(0)
    request = transport.requests[0]
    assert request.url == BASE_URL + "rates"
    assert "x-signature" not in request.headers
    assert request.headers["x-accept-version"] == API_VERSION


def test_get_rates_for_base_currency(keyless_client, transport):
    transport.queue({"data": []})
    keyless_client.get_rates("BTC")
    assert transport.requests[0].url == BASE_URL + "rates/BTC"


def test_get_rate(keyless_client, transport):
    transport.queue({"data": {"code": "USD", "name": "US Dollar", "rate": 1}})
    rate = keyless_client.get_rate("BTC", "USD")
    assert rate.code == "USD"
    assert transport.requests[0].url == BASE_URL + "rates/BTC/USD"


def test_get_ledger_accepts_array_root(client, transport):
    client.tokens.save("merchant", "m")
    transport.queue('[{"code":1000,"amount":5,"data":"ignored"}]')
    entries = client.get_ledger("BTC", date(2018, 1, 1))
    assert entries == [{"code": 1000, "amount": 5, "data": "ignored"}]
    assert transport.requests[0].url == BASE_URL + "ledgers/BTC?token=m&startDate=01/01/2018"


def test_get_ledgers(client, transport):
    client.tokens.save("merchant", "m")
    transport.queue({"data": [{"currency": "BTC", "balance": 0}]})
    assert client.get_ledgers() == [{"currency": "BTC", "balance": 0}]
    assert transport.requests[0].url == BASE_URL + "ledgers/?token=m"


def test_get_settlements_query(client, transport):
    client.tokens.save("merchant", "m")
    transport.queue({"data": []})
    client.get_settlements(currency="USD", status="completed", limit=10)
    assert transport.requests[0].url == (
        BASE_URL + "settlements?token=m&currency=USD&status=completed&limit=10&offset=0"
    )


def test_settlement_summary_and_report(client, transport):
    client.tokens.save("merchant", "m")
    transport.queue({"data": {"id": "s1", "token": "s-token"}})
    transport.queue({"data": {"id": "s1", "ledgerEntries": []}})

    summary = client.get_settlement_summary("s1")
    report = client.get_settlement_reconciliation_report("s1", summary["token"])

    assert report["id"] == "s1"
    assert transport.requests[0].url == BASE_URL + "settlements/s1?token=m"
    assert transport.requests[1].url == (
        BASE_URL + "settlements/s1/reconciliationReport?token=s-token"
    )


def test_base_url_without_trailing_slash(transport):
    client = BitPayClient("https://test.bitpay.com", transport=transport)
    transport.queue({"data": []})
    client.get_rates()
    assert transport.requests[0].url == "https://test.bitpay.com/rates"


def test_rejects_key_and_identity_together():
    with pytest.raises(ValueError):
        BitPayClient(
            BASE_URL,
            private_key=PRIVATE_KEY,
            identity=ClientIdentity.from_private_key(PRIVATE_KEY),
        )


def test_signed_listing_carries_version_header(client, transport):
    transport.queue({"data": [{"merchant": "m"}]})
    client.get_access_tokens()
    request = transport.requests[0]
    assert request.method == "GET"
    assert request.headers["x-accept-version"] == API_VERSION
    assert request.headers["x-identity"] == client.identity.public_key


def test_path_segments_are_escaped(client, transport):
    client.tokens.save("merchant", "m")
    transport.queue({"data": {"id": "inv 1"}})
    client.get_invoice("inv 1/2")
    assert transport.requests[0].url == BASE_URL + "invoices/inv%201%2F2?token=m"


def test_signed_url_matches_url_on_the_wire(monkeypatch):
    session = requests.Session()
    sent = []

    def capture(prepared, **kwargs):
        sent.append(prepared)
        response = Response()
        response.status_code = 200
        response._content = b'{"data":{"id":"inv 1"}}'
        response.encoding = "utf-8"
        return response

    monkeypatch.setattr(session, "send", capture)
    client = BitPayClient(
        BASE_URL,
        private_key=PRIVATE_KEY,
        transport=RequestsTransport(session=session),
    )
    client.tokens.save("merchant", "m")

    client.get_invoice("inv 1")

    prepared = sent[0]
    assert prepared.url == BASE_URL + "invoices/inv%201?token=m"
    assert verify_signature(
        prepared.headers["x-identity"], prepared.url, prepared.headers["x-signature"]
    )
