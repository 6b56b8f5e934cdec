# connection_manager.py
"""
Servicio único de conexión con el venue.

Todos los ciclos de bot leen el cliente a través de este servicio; conectar,
desconectar o alternar el modo demo afecta a todos los bots a la vez.
"""
import asyncio
import inspect
import threading
from typing import Callable, List, Optional

from data.demo_client import DemoVenueClient
from data.rest_data_provider import BinanceRESTClient
from exceptions.trading_exceptions import ConnectivityError
from utils.logger import Logger

logger = Logger.get_logger(__name__)


class VenueConnectionManager:
    def __init__(self, client_factory: Optional[Callable] = None, demo_factory: Optional[Callable] = None):
        self._lock = threading.Lock()
        self._client = None
        self._demo_mode = False
        self._testnet: Optional[bool] = None
        self._client_factory = client_factory or BinanceRESTClient
        self._demo_factory = demo_factory or DemoVenueClient
        self._listeners: List[Callable] = []

    # ======================
    # 🔹 ESTADO
    # ======================

    def is_connected(self) -> bool:
        with self._lock:
            return self._client is not None

    def is_demo_mode(self) -> bool:
        with self._lock:
            return self._demo_mode

    @property
    def client(self):
        with self._lock:
            if self._client is None:
                raise ConnectivityError("API del exchange no conectada")
            return self._client

    def status(self) -> dict:
        with self._lock:
            return {
                "connected": self._client is not None,
                "demo_mode": self._demo_mode,
                "testnet": self._testnet,
            }

    def add_connect_listener(self, callback: Callable):
        """Callback (sync o async) invocado tras cada nueva conexión."""
        self._listeners.append(callback)

    # ======================
    # 🔹 TRANSICIONES
    # ======================

    async def connect(self, api_key: str | None = None, api_secret: str | None = None,
                      testnet: bool | None = None):
        """Crea el cliente real (en el executor: hace I/O) y notifica a los listeners."""
        loop = asyncio.get_running_loop()
        client = await loop.run_in_executor(
            None, lambda: self._client_factory(api_key=api_key, api_secret=api_secret, testnet=testnet)
        )
        await loop.run_in_executor(None, client.ping)
        with self._lock:
            self._client = client
            self._demo_mode = False
            self._testnet = testnet
        logger.info("🔌 Conexión con el exchange establecida")
        await self._notify_connected()
        return client

    async def enable_demo_mode(self):
        with self._lock:
            if self._demo_mode and self._client is not None:
                return self._client
            self._client = self._demo_factory()
            self._demo_mode = True
            self._testnet = None
            client = self._client
        logger.info("🧪 Modo demo activado")
        await self._notify_connected()
        return client

    def disable_demo_mode(self):
        with self._lock:
            if not self._demo_mode:
                return
            self._client = None
            self._demo_mode = False
        logger.info("🧪 Modo demo desactivado")

    def disconnect(self):
        with self._lock:
            self._client = None
            self._demo_mode = False
            self._testnet = None
        logger.info("🔌 Desconectado del exchange")

    async def _notify_connected(self):
        for callback in list(self._listeners):
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                # Un listener que falla no revierte la conexión ya establecida
                logger.error(f"❌ Error en listener de conexión {callback}: {e}")
