# persistence/storage.py
"""
Fachada de persistencia usada por el motor de ciclos y el BotManager.

Cada llamada abre y cierra su propia sesión; los objetos devueltos quedan
desacoplados (expire_on_commit=False) y pueden leerse tras un `await`.
Ningún estado de bot se cachea entre llamadas: la base es la fuente de verdad.
"""
from config.settings import settings
from persistence.db_connection import Database
from persistence.models.bot import Bot
from persistence.models.trade import Trade
from persistence.models.activity import Activity
from persistence.models.app_settings import AppSettings
from persistence.repositories.bot_repository import BotRepository
from persistence.repositories.trade_repository import TradeRepository
from persistence.repositories.activity_repository import ActivityRepository
from persistence.repositories.app_settings_repository import AppSettingsRepository
from utils.logger import Logger

logger = Logger.get_logger(__name__)


class Storage:
    def __init__(self, database: Database, activity_retention: int | None = None):
        self.db = database
        self.activity_retention = activity_retention or settings.ACTIVITY_RETENTION

    # ======================
    # 🔹 BOTS
    # ======================

    def get_bot(self, bot_id: int) -> Bot | None:
        with self.db.session_scope() as session:
            return BotRepository(session).get(bot_id)

    def get_all_bots(self):
        with self.db.session_scope() as session:
            return BotRepository(session).get_all()

    def get_active_bots(self):
        with self.db.session_scope() as session:
            return BotRepository(session).get_by_status("active")

    def create_bot(self, **fields) -> Bot:
        with self.db.session_scope() as session:
            bot = BotRepository(session).create(**fields)
            logger.info(f"🤖 Bot creado: #{bot.id} {bot.name} ({bot.symbol})")
            return bot

    def update_bot(self, bot_id: int, **changes) -> Bot | None:
        with self.db.session_scope() as session:
            return BotRepository(session).update(bot_id, **changes)

    def delete_bot(self, bot_id: int) -> bool:
        """Elimina el bot junto con sus trades y actividades."""
        with self.db.session_scope() as session:
            TradeRepository(session).delete_by_bot(bot_id)
            ActivityRepository(session).delete_by_bot(bot_id)
            deleted = BotRepository(session).delete(bot_id)
            if deleted:
                logger.info(f"🗑️ Bot #{bot_id} eliminado con su historial")
            return deleted

    # ======================
    # 🔹 TRADES
    # ======================

    def create_trade(self, **fields) -> Trade:
        with self.db.session_scope() as session:
            return TradeRepository(session).create(**fields)

    def get_trade(self, trade_id: int) -> Trade | None:
        with self.db.session_scope() as session:
            return TradeRepository(session).get(trade_id)

    def get_all_trades(self, bot_id: int | None = None):
        with self.db.session_scope() as session:
            return TradeRepository(session).get_all(bot_id)

    def get_open_position(self, bot_id: int) -> Trade | None:
        """Último trade del bot si es una compra completada; None en otro caso."""
        with self.db.session_scope() as session:
            latest = TradeRepository(session).get_latest(bot_id)
            if latest and latest.side == "buy" and latest.status == "completed":
                return latest
            return None

    # ======================
    # 🔹 ACTIVIDAD
    # ======================

    def add_activity(self, **fields) -> Activity:
        with self.db.session_scope() as session:
            repo = ActivityRepository(session)
            activity = repo.add(**fields)
            pruned = repo.prune(self.activity_retention)
            if pruned:
                logger.debug(f"🧹 {pruned} actividades antiguas eliminadas")
            return activity

    def get_activities(self, limit: int = 50, bot_id: int | None = None):
        with self.db.session_scope() as session:
            return ActivityRepository(session).get_recent(limit, bot_id)

    def clear_history(self, bot_id: int | None = None) -> dict:
        """Borra trades y actividades (de un bot o de todos) y reinicia contadores."""
        with self.db.session_scope() as session:
            trades = TradeRepository(session).delete_by_bot(bot_id)
            activities = ActivityRepository(session).delete_by_bot(bot_id)
            BotRepository(session).reset_counters(bot_id)
            logger.info(f"🧹 Historial limpiado: {trades} trades, {activities} actividades")
            return {"trades": trades, "activities": activities}

    # ======================
    # 🔹 CONFIGURACIÓN DE LA APP
    # ======================

    def get_app_settings(self) -> AppSettings | None:
        with self.db.session_scope() as session:
            return AppSettingsRepository(session).get()

    def save_app_settings(self, **fields) -> AppSettings:
        with self.db.session_scope() as session:
            return AppSettingsRepository(session).save(**fields)
