# fakes.py
"""Dobles de prueba compartidos: venue, conexiones, motor de indicadores y FGI."""
from analysis.indicator_engine import IndicatorSignal, aggregate_signals
from contracts.market_contract import Candle, SymbolConstraints, OrderFill
from exceptions.trading_exceptions import ConnectivityError, OrderExecutionError


def make_candles(closes, start_time=1_700_000_000_000, step_ms=3_600_000):
    """Velas con OHLC derivado del cierre, de la más antigua a la más reciente."""
    candles = []
    previous = closes[0]
    for index, close in enumerate(closes):
        candles.append(Candle(
            time=start_time + index * step_ms,
            open=previous,
            high=max(previous, close) * 1.001,
            low=min(previous, close) * 0.999,
            close=close,
            volume=100.0,
        ))
        previous = close
    return candles


def make_analysis(buy=(), sell=(), neutral=(), fear_greed_value=None):
    """Análisis con los nombres indicados votando en cada dirección."""
    signals = (
        [IndicatorSignal(name, "buy", 0.0, f"{name} compra") for name in buy]
        + [IndicatorSignal(name, "sell", 0.0, f"{name} venta") for name in sell]
        + [IndicatorSignal(name, "neutral", 0.0, f"{name} neutral") for name in neutral]
    )
    return aggregate_signals(signals, fear_greed_value)


# Venue falso: precios, filtros y saldos configurables por test
class FakeVenueClient:
    is_demo = True

    def __init__(self, price=100.0, quote_balance=1000.0, min_notional=10.0, step_size=0.001,
                 min_qty=0.001, candles=None):
        self.price = float(price)
        self.balances = {"USDT": float(quote_balance)}
        self.constraints = SymbolConstraints(min_qty=min_qty, step_size=step_size, min_notional=min_notional)
        self.candles = candles if candles is not None else make_candles([100.0] * 40)
        self.fill_price = None
        self.fail_orders = False
        self.fail_price = None
        self.orders = []

    async def async_ping(self):
        return True

    async def async_get_price(self, symbol):
        if self.fail_price is not None:
            raise self.fail_price
        return self.price

    async def async_get_candles(self, symbol, interval="1h", limit=100):
        return list(self.candles)

    async def async_get_symbol_constraints(self, symbol):
        return self.constraints

    async def async_get_asset_balance(self, asset):
        return self.balances.get(asset, 0.0)

    async def async_execute_market_order(self, symbol, side, quantity):
        if self.fail_orders:
            raise OrderExecutionError("Orden rechazada por el exchange")
        price = self.fill_price if self.fill_price is not None else self.price
        self.orders.append((symbol, side, quantity))
        return OrderFill(
            order_id=f"fake-{len(self.orders)}",
            avg_price=price,
            executed_qty=quantity,
            cumulative_quote_qty=price * quantity,
        )


class FakeConnections:
    def __init__(self, client=None, connected=True):
        self._client = client or FakeVenueClient()
        self.connected = connected
        self.listeners = []

    def is_connected(self):
        return self.connected

    @property
    def client(self):
        if not self.connected:
            raise ConnectivityError("API del exchange no conectada")
        return self._client

    def add_connect_listener(self, callback):
        self.listeners.append(callback)


class FakeAnalyzer:
    """Motor de indicadores que devuelve un análisis preestablecido."""

    def __init__(self, analysis=None):
        self.analysis = analysis or make_analysis(neutral=["RSI", "MACD", "Bollinger Bands", "EMA"])
        self.calls = []

    async def evaluate(self, candles, settings, entry_sentiment=None):
        self.calls.append((len(candles), settings, entry_sentiment))
        return self.analysis


class FakeSentimentProvider:
    def __init__(self, reading=None, stale=False):
        self.reading = reading
        self.stale = stale
        self.api_key = None

    async def async_fetch_index(self):
        return self.reading

    def fetch_index(self):
        return self.reading

    def is_stale(self):
        return self.stale or self.reading is None

    def set_api_key(self, api_key):
        self.api_key = api_key

