# bootstrap.py
"""
Composición de servicios del proceso.
No hace I/O de red: la conexión con el venue se establece después.
"""
from dataclasses import dataclass

from analysis.indicator_engine import IndicatorEngine
from data.connection_manager import VenueConnectionManager
from data.fear_greed_provider import FearGreedIndexProvider
from engine.bot_manager import BotManager
from engine.bot_scheduler import BotScheduler
from engine.cycle_orchestrator import CycleOrchestrator
from persistence.db_connection import Database
from persistence.storage import Storage
from utils.logger import Logger

logger = Logger.get_logger(__name__)


@dataclass
class Services:
    database: Database
    storage: Storage
    connections: VenueConnectionManager
    sentiment: FearGreedIndexProvider
    engine: IndicatorEngine
    scheduler: BotScheduler
    manager: BotManager


def build_services(database: Database | None = None,
                   connections: VenueConnectionManager | None = None) -> Services:
    database = database or Database()
    database.create_tables()

    storage = Storage(database)
    connections = connections or VenueConnectionManager()
    sentiment = FearGreedIndexProvider(storage=storage)
    engine = IndicatorEngine(sentiment_provider=sentiment)
    orchestrator = CycleOrchestrator(storage, connections, engine)
    scheduler = BotScheduler(storage, connections, orchestrator)
    manager = BotManager(storage, connections, scheduler, engine, sentiment_provider=sentiment)

    logger.info("🧩 Servicios inicializados")
    return Services(database, storage, connections, sentiment, engine, scheduler, manager)
