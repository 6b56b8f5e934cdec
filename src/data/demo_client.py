# demo_client.py
"""
Venue simulado para el modo DEMO.

Misma interfaz que BinanceRESTClient: precios con paseo aleatorio, velas
sintéticas y balances en memoria. Las órdenes se llenan al precio actual.
"""
import random
import threading
import time
import uuid
from typing import Dict, List, Optional

from contracts.bot_config import base_asset, quote_asset, venue_symbol
from contracts.market_contract import Candle, SymbolConstraints, OrderFill
from exceptions.trading_exceptions import OrderExecutionError
from utils.logger import Logger

logger = Logger.get_logger(__name__)

_INTERVAL_SECONDS = {
    "1m": 60, "5m": 300, "15m": 900, "30m": 1800, "1h": 3600, "4h": 14400, "1d": 86400,
}

DEFAULT_PRICES = {
    "BTCUSDT": 43000.0,
    "ETHUSDT": 2300.0,
    "BNBUSDT": 310.0,
    "SOLUSDT": 95.0,
    "XRPUSDT": 0.6,
}


class DemoVenueClient:
    is_demo = True

    def __init__(self, seed: Optional[int] = None, balances: Optional[Dict[str, float]] = None,
                 prices: Optional[Dict[str, float]] = None, volatility: float = 0.005):
        self._rng = random.Random(seed)
        self._lock = threading.Lock()
        self._balances: Dict[str, float] = dict(balances or {"USDT": 10000.0})
        self._prices: Dict[str, float] = dict(DEFAULT_PRICES)
        if prices:
            self._prices.update({venue_symbol(k): float(v) for k, v in prices.items()})
        self.volatility = volatility
        logger.info("🧪 Cliente DEMO inicializado (sin órdenes reales)")

    def ping(self) -> bool:
        return True

    def _step(self, price: float) -> float:
        return max(price * (1 + self._rng.uniform(-self.volatility, self.volatility)), 1e-8)

    def get_price(self, symbol: str) -> float:
        key = venue_symbol(symbol)
        with self._lock:
            current = self._prices.get(key, 100.0)
            self._prices[key] = self._step(current)
            return self._prices[key]

    def get_candles(self, symbol: str, interval: str = "1h", limit: int = 100) -> List[Candle]:
        """Velas sintéticas que terminan en el precio actual del símbolo."""
        key = venue_symbol(symbol)
        step = _INTERVAL_SECONDS.get(interval, 3600) * 1000
        now_ms = int(time.time() * 1000)
        with self._lock:
            close = self._prices.get(key, 100.0)
            closes = [close]
            for _ in range(limit - 1):
                closes.append(self._step(closes[-1]))
            closes.reverse()

            candles = []
            previous = closes[0]
            for index, close in enumerate(closes):
                spread = abs(close - previous) + close * self.volatility * self._rng.random()
                candles.append(Candle(
                    time=now_ms - (limit - index) * step,
                    open=previous,
                    high=max(previous, close) + spread / 2,
                    low=max(min(previous, close) - spread / 2, 1e-8),
                    close=close,
                    volume=self._rng.uniform(10, 1000),
                ))
                previous = close
            return candles

    def get_symbol_constraints(self, symbol: str) -> SymbolConstraints:
        return SymbolConstraints(min_qty=0.00001, step_size=0.00001, min_notional=10.0)

    def get_asset_balance(self, asset: str) -> float:
        with self._lock:
            return self._balances.get(asset.upper(), 0.0)

    def set_balance(self, asset: str, amount: float):
        with self._lock:
            self._balances[asset.upper()] = float(amount)

    def execute_market_order(self, symbol: str, side: str, quantity: float) -> OrderFill:
        key = venue_symbol(symbol)
        base, quote = base_asset(symbol), quote_asset(symbol)
        side = side.upper()
        with self._lock:
            price = self._prices.get(key, 100.0)
            notional = price * quantity
            if side == "BUY":
                if self._balances.get(quote, 0.0) < notional:
                    raise OrderExecutionError(f"Saldo insuficiente de {quote} para comprar {quantity} {base}")
                self._balances[quote] = self._balances.get(quote, 0.0) - notional
                self._balances[base] = self._balances.get(base, 0.0) + quantity
            elif side == "SELL":
                if self._balances.get(base, 0.0) < quantity:
                    raise OrderExecutionError(f"Saldo insuficiente de {base} para vender {quantity}")
                self._balances[base] = self._balances.get(base, 0.0) - quantity
                self._balances[quote] = self._balances.get(quote, 0.0) + notional
            else:
                raise OrderExecutionError(f"Lado de orden inválido: {side}")

        logger.info(f"🧪 Orden DEMO {side} {symbol}: {quantity} @ {price:.8f}")
        return OrderFill(
            order_id=f"demo-{uuid.uuid4().hex[:12]}",
            avg_price=price,
            executed_qty=quantity,
            cumulative_quote_qty=notional,
        )

    # Misma superficie async que el cliente real
    async def async_ping(self) -> bool:
        return self.ping()

    async def async_get_price(self, symbol: str) -> float:
        return self.get_price(symbol)

    async def async_get_candles(self, symbol: str, interval: str = "1h", limit: int = 100) -> List[Candle]:
        return self.get_candles(symbol, interval, limit)

    async def async_get_symbol_constraints(self, symbol: str) -> SymbolConstraints:
        return self.get_symbol_constraints(symbol)

    async def async_get_asset_balance(self, asset: str) -> float:
        return self.get_asset_balance(asset)

    async def async_execute_market_order(self, symbol: str, side: str, quantity: float) -> OrderFill:
        return self.execute_market_order(symbol, side, quantity)
