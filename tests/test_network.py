from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from conftest import TOKEN_A, WALLET
from tokensync.data.tokens import Asset
from tokensync.network import TransportError, TrustTokensNetwork
from tokensync.network.tokens_api import encode_balance_of

RPC_URL = "https://node.test/rpc"
API_URL = "https://api.test"


def _network(handler, **kwargs) -> TrustTokensNetwork:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("retry_backoff", 0.0)
    return TrustTokensNetwork(rpc_url=RPC_URL, api_url=API_URL, client=client, **kwargs)


def _rpc_result(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def test_native_balance_parses_hex_quantity():
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return _rpc_result(request, "0xde0b6b3a7640000")

    value = asyncio.run(_network(handler).fetch_native_balance(WALLET))
    assert value == 10**18
    assert seen[0]["method"] == "eth_getBalance"
    assert seen[0]["params"] == [WALLET, "latest"]


def test_native_balance_empty_result_is_none():
    network = _network(lambda request: _rpc_result(request, "0x"))
    assert asyncio.run(network.fetch_native_balance(WALLET)) is None


def test_asset_balance_calls_balance_of_and_pairs_asset():
    asset = Asset(id=TOKEN_A, name="A", symbol="A", decimals=0)
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return _rpc_result(request, "0x" + "0" * 62 + "2a")

    paired, value = asyncio.run(_network(handler).fetch_asset_balance(WALLET, asset))
    assert paired is asset
    assert value == 42
    call = seen[0]["params"][0]
    assert call["to"] == TOKEN_A
    assert call["data"] == encode_balance_of(WALLET)
    assert call["data"].startswith("0x70a08231")
    assert len(call["data"]) == 10 + 64


def test_rpc_error_raises_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "header not found"}}
        )

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(_network(handler).fetch_native_balance(WALLET))
    assert excinfo.value.status == -32000


def test_tickers_request_and_parse():
    assets = [Asset(id=TOKEN_A, name="A", symbol="TKA", decimals=0)]
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url == httpx.URL(f"{API_URL}/prices")
        seen.append(json.loads(request.content))
        return httpx.Response(
            200,
            json={
                "status": True,
                "currency": "EUR",
                "response": [
                    {"contract": TOKEN_A.upper().replace("0X", "0x"), "price": "1.25", "percent_change_24h": "-2.5"},
                    {"contract": "0xnoprice"},
                    "garbage",
                ],
            },
        )

    tickers = asyncio.run(_network(handler).fetch_tickers(assets, "EUR"))
    assert seen[0] == {"currency": "EUR", "tokens": [{"contract": TOKEN_A, "symbol": "TKA"}]}
    assert len(tickers) == 1
    assert tickers[0].asset_id == TOKEN_A
    assert tickers[0].price == "1.25"
    assert tickers[0].currency == "EUR"
    assert tickers[0].percent_change == "-2.5"


def test_tickers_empty_response_is_none():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"response": []})

    network = _network(handler)
    asset = Asset(id=TOKEN_A, name="A", symbol="A", decimals=0)
    assert asyncio.run(network.fetch_tickers([asset], "USD")) is None
    assert asyncio.run(network.fetch_tickers([], "USD")) is None
    assert len(calls) == 1


def test_discover_assets_parses_nested_contracts():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["address"] == WALLET
        return httpx.Response(
            200,
            json={
                "docs": [
                    {"contract": {"address": TOKEN_A, "name": "Token A", "symbol": "TKA", "decimals": 18}},
                    {"contract": "0x5555", "name": "Flat", "symbol": "FL", "decimals": "bad"},
                    {"contract": {"name": "no address"}},
                ]
            },
        )

    refs = asyncio.run(_network(handler).discover_assets(WALLET))
    assert [ref.contract for ref in refs] == [TOKEN_A, "0x5555"]
    assert refs[0].decimals == 18
    assert refs[1].decimals == 0


def test_retries_on_server_errors_then_succeeds():
    statuses = iter([503, 429, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses)
        if status != 200:
            return httpx.Response(status, text="busy")
        return _rpc_result(request, "0x1")

    assert asyncio.run(_network(handler, max_retries=2).fetch_native_balance(WALLET)) == 1


def test_client_error_is_not_retried():
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(404, text="missing")

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(_network(handler, max_retries=3).discover_assets(WALLET))
    assert excinfo.value.status == 404
    assert len(calls) == 1


def test_connection_errors_exhaust_retries():
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError):
        asyncio.run(_network(handler, max_retries=2).fetch_native_balance(WALLET))
    assert len(calls) == 3


def test_non_json_body_raises_transport_error():
    network = _network(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    with pytest.raises(TransportError):
        asyncio.run(network.discover_assets(WALLET))


def test_injected_client_is_left_open_for_its_owner():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: _rpc_result(request, "0x2")))
    network = TrustTokensNetwork(rpc_url=RPC_URL, api_url=API_URL, client=client, retry_backoff=0.0)
    assert asyncio.run(network.fetch_native_balance(WALLET)) == 2
    assert not hasattr(network, "aclose")
    assert client.is_closed is False
