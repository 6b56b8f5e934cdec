# engine/bot_manager.py
"""
Fachada de servicio para la capa que expone los bots (API, CLI).
Valida en el borde, delega el ciclo de vida al scheduler y agrega estadísticas.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config.settings import settings
from contracts.bot_config import ValidatedBotConfig, INTERVAL_MS
from contracts.indicator_settings import ValidatedIndicatorSettings
from exceptions.trading_exceptions import BotNotFoundError, TradingError, ValidationError
from position.activity import record_activity
from position.base_evaluator import MIN_CANDLES
from position.sizing import pnl_percent
from utils.logger import Logger

logger = Logger.get_logger(__name__)

# Cambios que exigen reiniciar el timer de un bot activo
RESTART_FIELDS = {"interval", "indicator_settings", "min_signals"}


@dataclass
class BotWithStats:
    bot: Any
    pnl_percent: float
    win_rate: float
    avg_profit: float
    active_indicators: List[str] = field(default_factory=list)
    current_price: Optional[float] = None
    unrealized_pnl: Optional[float] = None
    unrealized_pnl_percent: Optional[float] = None


class BotManager:
    def __init__(self, storage, connections, scheduler, engine, sentiment_provider=None):
        self.storage = storage
        self.connections = connections
        self.scheduler = scheduler
        self.engine = engine
        self.sentiment_provider = sentiment_provider
        # Cada nueva conexión (manual o modo demo) reanuda los bots activos
        self.connections.add_connect_listener(self.resume_active_bots)

    # ======================
    # 🔹 CRUD
    # ======================

    def create_bot(self, config: Dict[str, Any]):
        bot_config = ValidatedBotConfig.validate(config)
        bot = self.storage.create_bot(status="stopped", **bot_config.to_record())
        record_activity(self.storage, bot, "stop", f"Bot creado para {bot.symbol}")
        return bot

    async def update_bot(self, bot_id: int, changes: Dict[str, Any]):
        old_bot = self._require(bot_id)
        values = ValidatedBotConfig.validate_update(changes)

        if "symbol" in values and values["symbol"] != old_bot.symbol and (old_bot.current_balance or 0) > 0:
            raise ValidationError("❌ No se puede cambiar el símbolo con una posición abierta")
        if "indicator_settings" in values:
            values["indicator_settings"] = values["indicator_settings"].to_dict()
        if "trailing_stop_percent" in values and values["trailing_stop_percent"] <= 0:
            # Sin trailing no se sigue el máximo
            values["highest_price"] = None
            values["trailing_stop_price"] = None

        bot = self.storage.update_bot(bot_id, **values) if values else old_bot

        if old_bot.status == "active" and RESTART_FIELDS & set(values):
            logger.info(f"🔁 [{bot.name}] Reiniciando por cambio de configuración")
            bot = await self.scheduler.start_bot(bot_id, "Bot reiniciado tras cambio de configuración")
        return bot

    async def delete_bot(self, bot_id: int) -> bool:
        self._require(bot_id)
        self.scheduler.cancel(bot_id)
        return self.storage.delete_bot(bot_id)

    # ======================
    # 🔹 CICLO DE VIDA
    # ======================

    async def start_bot(self, bot_id: int):
        return await self.scheduler.start_bot(bot_id)

    async def pause_bot(self, bot_id: int):
        return await self.scheduler.pause_bot(bot_id)

    async def stop_bot(self, bot_id: int):
        return await self.scheduler.stop_bot(bot_id)

    async def resume_active_bots(self) -> int:
        return await self.scheduler.resume_active_bots()

    # ======================
    # 🔹 ESTADÍSTICAS
    # ======================

    async def get_bot_with_stats(self, bot_id: int) -> BotWithStats:
        bot = self._require(bot_id)
        return await self._with_stats(bot)

    async def get_all_bots_with_stats(self) -> List[BotWithStats]:
        return [await self._with_stats(bot) for bot in self.storage.get_all_bots()]

    async def _with_stats(self, bot) -> BotWithStats:
        total_trades = bot.total_trades or 0
        total_pnl = bot.total_pnl or 0.0
        indicator_settings = ValidatedIndicatorSettings.validate(bot.indicator_settings)
        stats = BotWithStats(
            bot=bot,
            pnl_percent=(total_pnl / bot.investment * 100) if bot.investment else 0.0,
            win_rate=((bot.winning_trades or 0) / total_trades * 100) if total_trades else 0.0,
            avg_profit=(total_pnl / total_trades) if total_trades else 0.0,
            active_indicators=indicator_settings.active_indicator_names(),
        )

        if (bot.current_balance or 0) > 0 and self.connections.is_connected():
            try:
                price = await self.connections.client.async_get_price(bot.symbol)
            except TradingError as e:
                logger.warning(f"⚠️ [{bot.name}] Sin precio para P&L no realizado: {e}")
            else:
                stats.current_price = price
                stats.unrealized_pnl = (price - bot.avg_entry_price) * bot.current_balance
                stats.unrealized_pnl_percent = pnl_percent(price, bot.avg_entry_price)
        return stats

    async def get_dashboard_stats(self) -> Dict[str, Any]:
        bots = self.storage.get_all_bots()
        total_pnl = sum(b.total_pnl or 0.0 for b in bots)
        total_trades = sum(b.total_trades or 0 for b in bots)
        total_wins = sum(b.winning_trades or 0 for b in bots)
        total_investment = sum(b.investment or 0.0 for b in bots)
        return {
            "total_pnl": total_pnl,
            "pnl_percent": (total_pnl / total_investment * 100) if total_investment else 0.0,
            "active_bots": sum(1 for b in bots if b.status == "active"),
            "total_bots": len(bots),
            "total_trades": total_trades,
            "avg_win_rate": (total_wins / total_trades * 100) if total_trades else 0.0,
            "recent_trades": self.storage.get_all_trades()[:10],
        }

    # ======================
    # 🔹 ANÁLISIS E HISTORIAL
    # ======================

    async def analyze_symbol(self, symbol: str, indicator_settings: Dict[str, Any], interval: str = "1h"):
        """Análisis puntual sin efectos sobre ningún bot."""
        symbol = ValidatedBotConfig.validate_update({"symbol": symbol})["symbol"]
        if interval not in INTERVAL_MS:
            raise ValidationError(f"❌ Intervalo inválido: {interval}")
        parsed = ValidatedIndicatorSettings.validate(indicator_settings)

        candles = await self.connections.client.async_get_candles(symbol, interval, settings.CANDLE_LIMIT)
        if len(candles) < MIN_CANDLES:
            logger.warning(f"⚠️ {symbol}: solo {len(candles)} velas para el análisis")
        return await self.engine.evaluate(candles, parsed)

    def get_activities(self, limit: int = 50, bot_id: Optional[int] = None):
        return self.storage.get_activities(limit, bot_id)

    def get_trades(self, bot_id: Optional[int] = None):
        return self.storage.get_all_trades(bot_id)

    def clear_history(self, bot_id: Optional[int] = None) -> dict:
        if bot_id is not None:
            self._require(bot_id)
        return self.storage.clear_history(bot_id)

    def set_sentiment_api_key(self, api_key: Optional[str]):
        self.storage.save_app_settings(coinmarketcap_api_key=api_key or None)
        if self.sentiment_provider is not None:
            self.sentiment_provider.set_api_key(api_key)

    def _require(self, bot_id: int):
        bot = self.storage.get_bot(bot_id)
        if bot is None:
            raise BotNotFoundError(f"Bot {bot_id} no encontrado")
        return bot
