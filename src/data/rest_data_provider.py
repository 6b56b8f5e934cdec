# rest_data_provider.py

import time
import os
import asyncio
import threading
from functools import partial
from typing import List, Dict

import requests
from binance import Client
from binance.exceptions import BinanceAPIException, BinanceOrderException, BinanceRequestException

from config.settings import settings
from contracts.bot_config import venue_symbol
from contracts.market_contract import Candle, SymbolConstraints, OrderFill
from exceptions.trading_exceptions import ConnectivityError, MarketDataError, OrderExecutionError
from utils.logger import Logger

logger = Logger.get_logger(__name__)

DEFAULT_MIN_NOTIONAL = 10.0
DEFAULT_STEP_SIZE = 0.00001


class BinanceRESTClient:
    """
    Cliente REST para Binance Spot utilizando python-binance.
    Los símbolos se reciben como BASE/QUOTE y se traducen a la forma del exchange.
    """

    is_demo = False

    def __init__(self, api_key: str | None = None, api_secret: str | None = None,
                 testnet: bool | None = None, timeout: float | None = None):
        logger.info("🔗 Conectando al cliente REST de Binance...")
        if api_key is None or api_secret is None:
            # Validar claves antes de instanciar el cliente (permite importar settings sin crash)
            settings.validate_api_keys()
            api_key, api_secret = settings.API_KEY, settings.API_SECRET
        if testnet is None:
            testnet = settings.is_testnet

        self.timeout = timeout or settings.REQUEST_TIMEOUT_SECONDS
        try:
            self.client = Client(
                api_key, api_secret, testnet=testnet,
                requests_params={"timeout": self.timeout},
            )
        except (BinanceAPIException, BinanceRequestException, requests.exceptions.RequestException) as e:
            raise ConnectivityError(f"No se pudo conectar con Binance: {e}") from e

        self._sync_time_with_server()

        # Rate limiting básico
        self._min_interval = float(os.getenv("REST_MIN_INTERVAL_SECONDS", "0.1"))
        self._last_request_time = 0.0
        self._throttle_lock = threading.Lock()
        self._constraints_cache: Dict[str, SymbolConstraints] = {}

        logger.info(f"✅ Cliente REST de Binance inicializado ({'TESTNET' if testnet else 'REAL'}).")

    def _sync_time_with_server(self):
        """Sincroniza el tiempo local con el del servidor Binance."""
        try:
            server_time = self.client.get_server_time()["serverTime"]
            local_time = int(round(time.time() * 1000))
            self.time_offset = server_time - local_time
            self.client.TIME_OFFSET = self.time_offset
            logger.info(f"🕒 Desfase detectado: {self.time_offset} ms")
        except (BinanceAPIException, requests.exceptions.RequestException) as e:
            logger.error(f"⚠️ Error al sincronizar hora con el servidor de Binance: {e}")

    def _throttle(self):
        """Rate limiting simple: espera si la última llamada fue reciente."""
        # Los ciclos de varios bots llaman desde hilos del executor
        with self._throttle_lock:
            elapsed = time.time() - self._last_request_time
            if elapsed < self._min_interval:
                time.sleep(self._min_interval - elapsed)
            self._last_request_time = time.time()

    def _call(self, func, **params):
        """Llamada de lectura: transporte a ConnectivityError, rechazo de la API a MarketDataError."""
        self._throttle()
        try:
            return func(**params)
        except (requests.exceptions.RequestException, BinanceRequestException) as e:
            raise ConnectivityError(f"Binance no responde: {e}") from e
        except BinanceAPIException as e:
            raise MarketDataError(f"Binance rechazó la consulta: {e}") from e

    # ======================
    # 🔹 ENDPOINTS PÚBLICOS
    # ======================

    def ping(self) -> bool:
        self._call(self.client.ping)
        return True

    def get_price(self, symbol: str) -> float:
        """Obtiene el precio actual de un símbolo."""
        data = self._call(self.client.get_symbol_ticker, symbol=venue_symbol(symbol))
        return float(data["price"])

    def get_candles(self, symbol: str, interval: str = "1h", limit: int = 100) -> List[Candle]:
        """Obtiene velas históricas ordenadas de la más antigua a la más reciente."""
        klines = self._call(
            self.client.get_klines, symbol=venue_symbol(symbol), interval=interval, limit=limit
        )
        return [
            Candle(
                time=int(k[0]),
                open=float(k[1]),
                high=float(k[2]),
                low=float(k[3]),
                close=float(k[4]),
                volume=float(k[5]),
            )
            for k in klines
        ]

    def get_symbol_constraints(self, symbol: str) -> SymbolConstraints:
        """Filtros LOT_SIZE y NOTIONAL/MIN_NOTIONAL (cacheados por símbolo)."""
        key = venue_symbol(symbol)
        if key in self._constraints_cache:
            return self._constraints_cache[key]

        info = self._call(self.client.get_symbol_info, symbol=key)
        if not info:
            raise OrderExecutionError(f"Símbolo no encontrado en Binance: {symbol}")

        filters = info.get("filters", [])
        lot_size = next((f for f in filters if f.get("filterType") == "LOT_SIZE"), {})
        notional = next(
            (f for f in filters if f.get("filterType") in ("NOTIONAL", "MIN_NOTIONAL")), {}
        )
        constraints = SymbolConstraints(
            min_qty=float(lot_size.get("minQty") or DEFAULT_STEP_SIZE),
            step_size=float(lot_size.get("stepSize") or DEFAULT_STEP_SIZE),
            min_notional=float(notional.get("minNotional") or DEFAULT_MIN_NOTIONAL),
        )
        self._constraints_cache[key] = constraints
        return constraints

    # ======================
    # 🔹 ENDPOINTS PRIVADOS
    # ======================

    def get_asset_balance(self, asset: str) -> float:
        """Balance libre de un activo."""
        balance_info = self._call(self.client.get_asset_balance, asset=asset.upper())
        if balance_info:
            return float(balance_info.get("free", 0.0))
        return 0.0

    def execute_market_order(self, symbol: str, side: str, quantity: float) -> OrderFill:
        """
        Orden de mercado sin reintentos: un reintento podría duplicar la orden.
        Devuelve el fill real reportado por el exchange.
        """
        params = {
            "symbol": venue_symbol(symbol),
            "side": side.upper(),
            "type": Client.ORDER_TYPE_MARKET,
            "quantity": _format_quantity(quantity),
        }
        self._throttle()
        try:
            response = self.client.create_order(**params)
        except (BinanceAPIException, BinanceOrderException) as e:
            logger.error(f"❌ Error de API al crear orden: {e}")
            logger.error(f"📋 Parámetros de la orden: {params}")
            raise OrderExecutionError(f"Binance rechazó la orden: {e}") from e
        except (requests.exceptions.RequestException, BinanceRequestException) as e:
            logger.error(f"❌ Error de red al crear orden: {e}")
            raise OrderExecutionError(f"Fallo de red al enviar la orden: {e}") from e

        fill = OrderFill.from_exchange_response(response)
        if fill.executed_qty <= 0:
            raise OrderExecutionError(f"Orden sin cantidad ejecutada: {response.get('status')}")
        logger.info(
            f"✅ Orden {side.upper()} {symbol} ejecutada: {fill.executed_qty} @ {fill.avg_price:.8f}"
        )
        return fill

    # =============
    # Async helpers
    # =============
    async def async_run_in_executor(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        # usar functools.partial para pasar correctamente args/kwargs
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def async_ping(self) -> bool:
        return await self.async_run_in_executor(self.ping)

    async def async_get_price(self, symbol: str) -> float:
        return await self.async_run_in_executor(self.get_price, symbol)

    async def async_get_candles(self, symbol: str, interval: str = "1h", limit: int = 100) -> List[Candle]:
        return await self.async_run_in_executor(self.get_candles, symbol, interval, limit)

    async def async_get_symbol_constraints(self, symbol: str) -> SymbolConstraints:
        return await self.async_run_in_executor(self.get_symbol_constraints, symbol)

    async def async_get_asset_balance(self, asset: str) -> float:
        return await self.async_run_in_executor(self.get_asset_balance, asset)

    async def async_execute_market_order(self, symbol: str, side: str, quantity: float) -> OrderFill:
        return await self.async_run_in_executor(self.execute_market_order, symbol, side, quantity)


def _format_quantity(quantity: float) -> str:
    # Binance rechaza notación científica
    text = f"{quantity:.8f}".rstrip("0").rstrip(".")
    return text or "0"

