# position/base_evaluator.py
from datetime import datetime

from config.settings import settings
from contracts.indicator_settings import ValidatedIndicatorSettings
from utils.logger import Logger

logger = Logger.get_logger(__name__)

# Velas mínimas para cualquier decisión basada en indicadores
MIN_CANDLES = 30


class BaseEvaluator:
    """Colaboradores comunes de los evaluadores: storage, venue y motor de indicadores."""

    def __init__(self, storage, connections, engine, candle_limit: int | None = None):
        self.storage = storage
        self.connections = connections
        self.engine = engine
        self.candle_limit = candle_limit or settings.CANDLE_LIMIT

    @property
    def client(self):
        # ConnectivityError si el venue no está conectado
        return self.connections.client

    async def fetch_candles(self, bot):
        return await self.client.async_get_candles(bot.symbol, bot.interval, self.candle_limit)

    async def analyze(self, bot, candles):
        indicator_settings = ValidatedIndicatorSettings.validate(bot.indicator_settings)
        return await self.engine.evaluate(candles, indicator_settings, bot.entry_sentiment)

    def save_signal_snapshot(self, bot, analysis=None, signal: str = "hold", values: str | None = None):
        """Sin análisis se guarda la señal y el texto recibidos."""
        if analysis is not None:
            signal, values = analysis.overall_signal, analysis.summary()
        self.storage.update_bot(
            bot.id,
            last_signal=signal,
            last_signal_time=datetime.utcnow(),
            last_indicator_values=values,
        )
