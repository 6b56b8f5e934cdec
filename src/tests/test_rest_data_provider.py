import threading
import time

import pytest
import requests
from binance.exceptions import BinanceAPIException

from data import rest_data_provider
from data.rest_data_provider import BinanceRESTClient, _format_quantity
from exceptions.trading_exceptions import ConnectivityError, MarketDataError, OrderExecutionError


class FakeBinanceClient:
    ORDER_TYPE_MARKET = "MARKET"

    def __init__(self, api_key, api_secret, testnet=False, requests_params=None):
        self.testnet = testnet
        self.requests_params = requests_params
        self.symbol_info_calls = 0
        self.orders = []
        self.fail_with = None

    def get_server_time(self):
        return {"serverTime": 0}

    def ping(self):
        return {}

    def get_symbol_ticker(self, symbol):
        if self.fail_with:
            raise self.fail_with
        return {"symbol": symbol, "price": "43000.50"}

    def get_klines(self, symbol, interval, limit):
        return [
            [1700000000000, "100", "110", "95", "105", "12.5", 1700003599999],
            [1700003600000, "105", "112", "101", "111", "8.0", 1700007199999],
        ]

    def get_symbol_info(self, symbol):
        self.symbol_info_calls += 1
        if symbol == "NOPEUSDT":
            return None
        return {
            "symbol": symbol,
            "filters": [
                {"filterType": "PRICE_FILTER", "tickSize": "0.01"},
                {"filterType": "LOT_SIZE", "minQty": "0.00010", "stepSize": "0.00010"},
                {"filterType": "NOTIONAL", "minNotional": "5.0"},
            ],
        }

    def get_asset_balance(self, asset):
        return {"asset": asset, "free": "250.75", "locked": "0"}

    def create_order(self, **params):
        if self.fail_with:
            raise self.fail_with
        self.orders.append(params)
        return {
            "orderId": 991,
            "status": "FILLED",
            "executedQty": params["quantity"],
            "cummulativeQuoteQty": "100.0",
            "fills": [],
        }


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(rest_data_provider, "Client", FakeBinanceClient)
    monkeypatch.setenv("REST_MIN_INTERVAL_SECONDS", "0")
    return BinanceRESTClient("key", "secret", testnet=True, timeout=3)


def test_client_uses_timeout_and_testnet(client):
    assert client.client.testnet is True
    assert client.client.requests_params == {"timeout": 3}


def test_price_and_candles(client):
    assert client.get_price("BTC/USDT") == 43000.5
    candles = client.get_candles("BTC/USDT", "1h", 2)
    assert [c.close for c in candles] == [105.0, 111.0]
    assert candles[0].time == 1700000000000


def test_symbol_constraints_are_cached(client):
    first = client.get_symbol_constraints("BTC/USDT")
    second = client.get_symbol_constraints("btc/usdt")
    assert first is second
    assert client.client.symbol_info_calls == 1
    assert (first.min_qty, first.step_size, first.min_notional) == (0.0001, 0.0001, 5.0)


def test_unknown_symbol(client):
    with pytest.raises(OrderExecutionError):
        client.get_symbol_constraints("NOPE/USDT")


def test_asset_balance(client):
    assert client.get_asset_balance("usdt") == 250.75


def test_network_error_is_connectivity_error(client):
    client.client.fail_with = requests.exceptions.ConnectionError("down")
    with pytest.raises(ConnectivityError):
        client.get_price("BTC/USDT")


def test_api_rejection_is_market_data_error(client):
    client.client.fail_with = BinanceAPIException(None, 400, '{"code": -1121, "msg": "Invalid symbol."}')
    with pytest.raises(MarketDataError):
        client.get_price("NOPE/USDT")


def test_throttle_spaces_concurrent_calls(client):
    client._min_interval = 0.05
    client._last_request_time = 0.0
    workers = [threading.Thread(target=client._throttle) for _ in range(4)]

    started = time.monotonic()
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    # la primera pasa directo, las otras tres esperan su turno
    assert time.monotonic() - started >= 0.14


def test_market_order_returns_real_fill(client):
    fill = client.execute_market_order("BTC/USDT", "buy", 0.0025)
    assert client.client.orders[0] == {
        "symbol": "BTCUSDT", "side": "BUY", "type": "MARKET", "quantity": "0.0025",
    }
    assert fill.order_id == "991"
    assert fill.avg_price == pytest.approx(40000.0)


def test_market_order_network_failure(client):
    client.client.fail_with = requests.exceptions.Timeout("slow")
    with pytest.raises(OrderExecutionError):
        client.execute_market_order("BTC/USDT", "SELL", 1)


def test_format_quantity():
    assert _format_quantity(0.00001) == "0.00001"
    assert _format_quantity(1.0) == "1"
    assert _format_quantity(0) == "0"
