from __future__ import annotations

import json
import threading

from conftest import TOKEN_A
from tokensync.data.tokens import TokenAction
from tokensync.run import main as entry
from tokensync.view import TokensViewModel


def test_flush_saves_only_when_something_changed(store, tmp_path):
    target = tmp_path / "tokens.json"
    changed = threading.Event()
    view = TokensViewModel(store=store)

    assert entry._flush_changes(changed, view, store, target) is False
    assert not target.exists()

    changed.set()
    assert entry._flush_changes(changed, view, store, target) is True
    assert not changed.is_set()
    assert json.loads(target.read_text(encoding="utf-8"))["assets"]


def test_change_during_flush_is_kept_for_next_pass(store, tmp_path, monkeypatch):
    target = tmp_path / "tokens.json"
    changed = threading.Event()
    view = TokensViewModel(store=store)
    view.subscribe(lambda change: changed.set())

    def _log_with_concurrent_update(view_model):
        store.update(TOKEN_A, TokenAction.update_value(11))

    monkeypatch.setattr(entry, "_log_tokens", _log_with_concurrent_update)
    store.update(TOKEN_A, TokenAction.update_value(10))

    assert entry._flush_changes(changed, view, store, target) is True
    assert changed.is_set()
    assert entry._flush_changes(changed, view, store, target) is True
    saved = json.loads(target.read_text(encoding="utf-8"))
    assert saved["balances"][TOKEN_A]["value"] == "11"
