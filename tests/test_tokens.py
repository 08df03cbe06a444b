import dataclasses
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from bitpay_client import AccessToken, Facade, PairingCode, TokenStore
from bitpay_client.core.tokens import fallback_chain


@pytest.fixture
def store():
    return TokenStore()


def test_direct_lookup(store):
    store.save("merchant", "m-token")
    assert store.lookup(Facade.MERCHANT) == AccessToken("merchant", "m-token")


def test_first_write_wins(store):
    assert store.save("pos", "first")
    assert not store.save("pos", "second")
    assert store.lookup(Facade.POINT_OF_SALE).value == "first"


def test_save_all_applies_in_order(store):
    store.save_all([AccessToken("pos", "a"), AccessToken("pos", "b"), AccessToken("merchant", "c")])
    assert store.lookup("pos").value == "a"
    assert store.lookup("merchant").value == "c"


def test_user_falls_back_to_merchant(store):
    store.save("merchant", "m")
    assert store.lookup(Facade.USER).value == "m"


def test_user_prefers_pos_over_merchant(store):
    store.save("merchant", "m")
    store.save("pos", "p")
    assert store.lookup(Facade.USER).value == "p"


def test_user_prefers_direct_token(store):
    store.save("merchant", "m")
    store.save("user", "u")
    assert store.lookup(Facade.USER).value == "u"


def test_pos_falls_back_to_merchant(store):
    store.save("merchant", "m")
    assert store.lookup(Facade.POINT_OF_SALE).value == "m"


@pytest.mark.parametrize("facade", [Facade.MERCHANT, Facade.PAYROLL, Facade("custom")])
def test_no_fallback_for_other_facades(store, facade):
    store.save("user", "u")
    store.save("pos", "p")
    if facade != Facade.MERCHANT:
        store.save("merchant", "m")
    assert store.lookup(facade) is None


def test_tokens_never_leak_across_unrelated_facades(store):
    facades = [Facade.MERCHANT, Facade.POINT_OF_SALE, Facade.USER, Facade.PAYROLL]
    for saved in facades:
        local = TokenStore()
        local.save(str(saved), "value")
        for requested in facades:
            token = local.lookup(requested)
            if token is not None:
                assert requested == saved or str(saved) in fallback_chain(requested)


def test_lookup_is_case_insensitive_on_facade_name(store):
    store.save("merchant", "m")
    assert store.lookup(Facade("Merchant")).value == "m"
    assert Facade("Merchant") != Facade.MERCHANT


def test_discard_allows_a_new_token(store):
    store.save("merchant", "old")
    assert store.discard(Facade.MERCHANT).value == "old"
    store.save("merchant", "new")
    assert store.lookup(Facade.MERCHANT).value == "new"


def test_clear_and_len(store):
    store.save("merchant", "m")
    store.save("pos", "p")
    assert len(store) == 2
    assert "pos" in store
    store.clear()
    assert len(store) == 0
    assert store.tokens() == []


def test_concurrent_saves_keep_a_single_winner(store):
    barrier = threading.Barrier(16)

    def save(index):
        barrier.wait()
        return store.save("merchant", f"token-{index}")

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(save, range(16)))

    assert results.count(True) == 1
    winner = results.index(True)
    assert store.lookup(Facade.MERCHANT).value == f"token-{winner}"


def test_facade_rejects_empty_value():
    with pytest.raises(ValueError):
        Facade("")


def test_pairing_link():
    code = PairingCode("abc123")
    assert code.create_link("https://test.bitpay.com") == (
        "https://test.bitpay.com/api-access-request?pairingCode=abc123"
    )
    assert code.create_link("https://test.bitpay.com/") == (
        "https://test.bitpay.com/api-access-request?pairingCode=abc123"
    )
    assert str(code) == "abc123"


def test_facade_constants_are_not_fields():
    assert [f.name for f in dataclasses.fields(Facade)] == ["value"]
    assert str(Facade.POINT_OF_SALE) == "pos"
    assert Facade.USER == Facade("user")
