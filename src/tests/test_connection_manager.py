import pytest

from data.connection_manager import VenueConnectionManager
from data.demo_client import DemoVenueClient
from exceptions.trading_exceptions import ConnectivityError, OrderExecutionError
from fakes import FakeVenueClient


class PingableClient(FakeVenueClient):
    is_demo = False

    def __init__(self, api_key=None, api_secret=None, testnet=None):
        super().__init__()
        self.credentials = (api_key, api_secret, testnet)
        self.pinged = False

    def ping(self):
        self.pinged = True
        return True


def test_client_requires_connection():
    manager = VenueConnectionManager(demo_factory=FakeVenueClient)
    assert not manager.is_connected()
    with pytest.raises(ConnectivityError):
        manager.client


@pytest.mark.asyncio
async def test_connect_builds_client_and_notifies():
    notified = []

    async def on_connect():
        notified.append("async")

    manager = VenueConnectionManager(client_factory=PingableClient)
    manager.add_connect_listener(on_connect)
    manager.add_connect_listener(lambda: notified.append("sync"))

    client = await manager.connect("key", "secret", testnet=True)

    assert client.pinged
    assert client.credentials == ("key", "secret", True)
    assert manager.client is client
    assert manager.status() == {"connected": True, "demo_mode": False, "testnet": True}
    assert notified == ["async", "sync"]


@pytest.mark.asyncio
async def test_failing_listener_does_not_undo_connection():
    def broken():
        raise RuntimeError("boom")

    manager = VenueConnectionManager(client_factory=PingableClient)
    manager.add_connect_listener(broken)

    await manager.connect("key", "secret", testnet=False)

    assert manager.is_connected()


@pytest.mark.asyncio
async def test_connect_failure_leaves_manager_disconnected():
    def refuse(**kwargs):
        raise ConnectivityError("Binance no responde")

    manager = VenueConnectionManager(client_factory=refuse)
    with pytest.raises(ConnectivityError):
        await manager.connect("key", "secret")
    assert not manager.is_connected()


@pytest.mark.asyncio
async def test_demo_mode_toggle():
    calls = []
    manager = VenueConnectionManager(demo_factory=FakeVenueClient)
    manager.add_connect_listener(lambda: calls.append(1))

    first = await manager.enable_demo_mode()
    second = await manager.enable_demo_mode()

    assert first is second
    assert calls == [1]
    assert manager.is_demo_mode()

    manager.disable_demo_mode()
    assert not manager.is_connected()
    assert not manager.is_demo_mode()


@pytest.mark.asyncio
async def test_disconnect():
    manager = VenueConnectionManager(client_factory=PingableClient)
    await manager.connect("key", "secret")
    manager.disconnect()
    assert manager.status() == {"connected": False, "demo_mode": False, "testnet": None}


# ======================
# Cliente DEMO
# ======================

def test_demo_market_orders_move_balances():
    client = DemoVenueClient(seed=1, balances={"USDT": 1000.0}, prices={"BTC/USDT": 100.0}, volatility=0)

    buy = client.execute_market_order("BTC/USDT", "BUY", 2.0)
    assert buy.avg_price == 100.0
    assert buy.cumulative_quote_qty == 200.0
    assert buy.order_id.startswith("demo-")
    assert client.get_asset_balance("USDT") == 800.0
    assert client.get_asset_balance("btc") == 2.0

    client.execute_market_order("BTC/USDT", "SELL", 1.0)
    assert client.get_asset_balance("USDT") == 900.0


def test_demo_rejects_orders_without_funds():
    client = DemoVenueClient(seed=1, balances={"USDT": 10.0}, prices={"BTC/USDT": 100.0})
    with pytest.raises(OrderExecutionError):
        client.execute_market_order("BTC/USDT", "BUY", 1.0)
    with pytest.raises(OrderExecutionError):
        client.execute_market_order("BTC/USDT", "SELL", 1.0)


def test_demo_candles_end_at_current_price():
    client = DemoVenueClient(seed=7, prices={"ETH/USDT": 2000.0})
    candles = client.get_candles("ETH/USDT", "1h", 50)

    assert len(candles) == 50
    assert candles[-1].close == 2000.0
    assert candles[0].time < candles[-1].time
    assert all(c.low <= c.close <= c.high for c in candles)


@pytest.mark.asyncio
async def test_demo_async_surface():
    client = DemoVenueClient(seed=3)
    price = await client.async_get_price("BTC/USDT")
    constraints = await client.async_get_symbol_constraints("BTC/USDT")
    assert price > 0
    assert constraints.min_notional == 10.0
    assert await client.async_ping()
