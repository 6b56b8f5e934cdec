# fear_greed_provider.py
"""
Índice de Miedo y Codicia (CoinMarketCap v3) con caché de 24h.

Ante cualquier fallo se devuelve la última lectura cacheada (posiblemente
vieja) o None; nunca se propaga el error al ciclo del bot.
"""
import asyncio
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import requests

from analysis.fear_greed import classify
from config.settings import settings
from utils.logger import Logger

logger = Logger.get_logger(__name__)

CMC_FEAR_GREED_URL = "https://pro-api.coinmarketcap.com/v3/fear-and-greed/historical"
CACHE_DURATION_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class SentimentReading:
    value: float
    classification: str
    as_of: str  # timestamp reportado por la fuente
    updated_at: float  # epoch local de la última descarga


class FearGreedIndexProvider:
    def __init__(self, api_key: Optional[str] = None, storage=None,
                 timeout: Optional[float] = None, clock: Callable[[], float] = time.time,
                 session: Optional[requests.Session] = None):
        self._api_key = api_key
        self._storage = storage
        self._timeout = timeout or settings.REQUEST_TIMEOUT_SECONDS
        self._clock = clock
        self._http = session or requests.Session()
        self._lock = threading.Lock()
        self._cached: Optional[SentimentReading] = None

    def set_api_key(self, api_key: Optional[str]):
        with self._lock:
            self._api_key = api_key or None
            self._cached = None
        logger.info("🔑 Clave de CoinMarketCap actualizada, caché del FGI reiniciada")

    def has_api_key(self) -> bool:
        return self._resolve_api_key() is not None

    def _resolve_api_key(self) -> Optional[str]:
        if self._api_key:
            return self._api_key
        if settings.COINMARKETCAP_API_KEY:
            return settings.COINMARKETCAP_API_KEY
        if self._storage is not None:
            app_settings = self._storage.get_app_settings()
            if app_settings and app_settings.coinmarketcap_api_key:
                return app_settings.coinmarketcap_api_key
        return None

    @property
    def cached(self) -> Optional[SentimentReading]:
        return self._cached

    def is_stale(self) -> bool:
        cached = self._cached
        if cached is None:
            return True
        return (self._clock() - cached.updated_at) > CACHE_DURATION_SECONDS

    def fetch_index(self) -> Optional[SentimentReading]:
        if self._cached is not None and not self.is_stale():
            logger.debug(f"📦 FGI desde caché: {self._cached.value}")
            return self._cached

        api_key = self._resolve_api_key()
        if not api_key:
            logger.error("❌ COINMARKETCAP_API_KEY no configurada")
            return None

        try:
            logger.info("🌡️ Consultando índice de Miedo y Codicia en CoinMarketCap...")
            response = self._http.get(
                CMC_FEAR_GREED_URL,
                params={"limit": 1},
                headers={"X-CMC_PRO_API_KEY": api_key, "Accept": "application/json"},
                timeout=self._timeout,
            )
            if not response.ok:
                logger.error(f"❌ Error HTTP de CoinMarketCap: {response.status_code} - {response.text}")
                return self._cached

            payload = response.json()
            status = payload.get("status") or {}
            error_code = str(status.get("error_code", "0"))
            if error_code != "0":
                logger.error(f"❌ Error de CoinMarketCap (código {error_code}): {status.get('error_message')}")
                return self._cached

            data = payload.get("data") or []
            if not data:
                logger.error("❌ CoinMarketCap no devolvió datos del FGI")
                return self._cached

            latest = data[0]
            value = float(latest["value"])
            reading = SentimentReading(
                value=value,
                classification=latest.get("value_classification") or classify(value),
                as_of=str(latest.get("timestamp") or datetime.utcnow().isoformat()),
                updated_at=self._clock(),
            )
        except (requests.exceptions.RequestException, ValueError, KeyError, TypeError) as e:
            logger.error(f"❌ Error consultando el FGI: {e}")
            return self._cached

        with self._lock:
            self._cached = reading
        logger.info(f"✅ FGI actualizado: {reading.value} ({reading.classification})")
        return reading

    async def async_fetch_index(self) -> Optional[SentimentReading]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.fetch_index)
