from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from conftest import TOKEN_A, TOKEN_B
from tokensync.data.tokens import (
    Asset,
    AssetRef,
    Balance,
    StoreChange,
    Ticker,
    TokenAction,
    TokensDataStore,
)
from tokensync.data.tokens.constants import NATIVE_CONTRACT


def test_store_keeps_insertion_order_with_native_first(store):
    ids = [asset.id for asset in store.objects()]
    assert ids == [NATIVE_CONTRACT, TOKEN_A, TOKEN_B]
    assert store.native().is_native


def test_duplicate_identities_are_collapsed(native_asset, token_a):
    duplicate = Asset(id=TOKEN_A, name="dup", symbol="DUP", decimals=0)
    store = TokensDataStore(native=native_asset, assets=[token_a, duplicate])
    assert len(store) == 2
    assert store.get(TOKEN_A).name == "Token A"


def test_update_is_last_write_wins(store):
    for raw in (5, 17, 3):
        assert store.update(TOKEN_A, TokenAction.update_value(raw))
    assert store.balance(TOKEN_A).value == 3


def test_update_for_unknown_asset_is_ignored(store):
    assert store.update("0xdead", TokenAction.update_value(1)) is False
    assert store.balance("0xdead") is None


def test_disable_hides_asset_from_tokens_and_enabled_set(store):
    store.update(TOKEN_A, TokenAction.disable(True))
    assert TOKEN_A not in [item.asset.id for item in store.tokens()]
    assert TOKEN_A not in [asset.id for asset in store.enabled_objects()]
    assert store.get(TOKEN_A).is_disabled


def test_remove_only_allowed_for_custom_assets(store):
    with pytest.raises(ValueError):
        store.remove(TOKEN_A)
    store.remove(TOKEN_B)
    assert store.get(TOKEN_B) is None
    with pytest.raises(KeyError):
        store.remove(TOKEN_B)


def test_add_custom_marks_asset_custom(store):
    added = store.add_custom(Asset(id="0xABC", name="Mine", symbol="MN", decimals=2))
    assert added.id == "0xabc"
    assert added.is_custom
    assert store.objects()[-1] == added


def test_add_custom_cannot_replace_native(store):
    with pytest.raises(ValueError):
        store.add_custom(Asset(id=NATIVE_CONTRACT, name="Fake", symbol="F", decimals=18))


def test_upsert_discovered_never_overwrites_existing(store):
    store.add_custom(Asset(id=TOKEN_A, name="Renamed by user", symbol="TKA", decimals=0))
    added = store.upsert_discovered(
        [
            AssetRef(contract=TOKEN_A, name="Token A", symbol="TKA", decimals=0),
            AssetRef(contract="0x3333", name="Token C", symbol="TKC", decimals=6),
        ]
    )
    assert [asset.id for asset in added] == ["0x3333"]
    existing = store.get(TOKEN_A)
    assert existing.name == "Renamed by user"
    assert existing.is_custom
    assert store.get("0x3333").is_custom is False


def test_subscribers_receive_change_kinds(store):
    seen: list[StoreChange] = []
    subscription = store.subscribe(seen.append)
    store.update(TOKEN_A, TokenAction.update_value(1))
    store.tickers.replace_all([Ticker(asset_id=TOKEN_A, price="1", currency="USD")])
    store.upsert_discovered([AssetRef(contract="0x4444", symbol="D")])
    subscription.cancel()
    store.update(TOKEN_A, TokenAction.update_value(2))
    assert seen == [StoreChange.BALANCES, StoreChange.TICKERS, StoreChange.ASSETS]


def test_failing_listener_does_not_break_other_listeners(store):
    seen: list[StoreChange] = []

    def _boom(change: StoreChange) -> None:
        raise RuntimeError("listener bug")

    store.subscribe(_boom)
    store.subscribe(seen.append)
    store.update(TOKEN_A, TokenAction.update_value(1))
    assert seen == [StoreChange.BALANCES]


def test_save_and_load_restore_assets_balances_and_tickers(store, native_asset, tmp_path):
    store.update(TOKEN_A, TokenAction.update_value(10**30))
    store.tickers.replace_all([Ticker(asset_id=TOKEN_A, price="2.5", currency="USD")])
    path = store.save(tmp_path / "tokens.json")

    restored = TokensDataStore.load(path, native=native_asset)
    assert [a.id for a in restored.objects()] == [a.id for a in store.objects()]
    assert restored.balance(TOKEN_A).value == 10**30
    assert restored.coin_ticker(TOKEN_A).price == "2.5"
    assert restored.get(TOKEN_B).is_custom


def test_load_skips_malformed_entries(native_asset, tmp_path):
    path = tmp_path / "tokens.json"
    path.write_text(
        json.dumps(
            {
                "assets": [{"name": "no id"}, {"id": TOKEN_A, "name": "A", "symbol": "A", "decimals": 0}],
                "balances": {TOKEN_A: {"value": "nope"}, "0xmissing": {"value": "1"}},
                "tickers": [{"price": "1"}],
            }
        ),
        encoding="utf-8",
    )
    restored = TokensDataStore.load(path, native=native_asset)
    assert [a.id for a in restored.objects()] == [NATIVE_CONTRACT, TOKEN_A]
    assert restored.balance(TOKEN_A) is None
    assert len(restored.tickers) == 0


def test_load_missing_or_corrupt_file_returns_empty_store(native_asset, tmp_path):
    assert len(TokensDataStore.load(tmp_path / "absent.json", native=native_asset)) == 1
    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json", encoding="utf-8")
    assert len(TokensDataStore.load(corrupt, native=native_asset)) == 1


def test_constructor_normalizes_ids_and_keeps_a_single_native(native_asset):
    impostor = Asset(id=" 0xABCDEF ", name="Other chain", symbol="OTH", decimals=18, is_native=True)
    store = TokensDataStore(native=native_asset, assets=[impostor])
    restored = store.get("0xabcdef")
    assert restored.id == "0xabcdef"
    assert restored.is_native is False
    assert [asset.id for asset in store.objects() if asset.is_native] == [NATIVE_CONTRACT]
    assert store.native().id == NATIVE_CONTRACT
    assert store.update("0xABCDEF", TokenAction.update_value(4))
    assert store.balance("0xabcdef").asset_id == "0xabcdef"


def test_update_keeps_timestamp_of_fetched_balance(store):
    fetched_at = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    balance = Balance(asset_id=TOKEN_A, value=9, updated_at=fetched_at)
    assert store.update(TOKEN_A, TokenAction.update_value(balance))
    assert store.balance(TOKEN_A).value == 9
    assert store.balance(TOKEN_A).updated_at == fetched_at
