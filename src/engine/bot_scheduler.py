# engine/bot_scheduler.py
"""
Registro de timers por bot.

Cada bot activo tiene exactamente una tarea de timer. Cada tick lanza el ciclo
en su propia tarea; si el ciclo anterior del mismo bot sigue en curso, el tick
se omite. Los ciclos de bots distintos corren en paralelo.

El estado `active` persistido es la fuente de verdad: al arrancar el proceso
(y en cada nueva conexión con el venue) se reanudan todos los bots activos.
"""
import asyncio
from typing import Dict, Set

from contracts.bot_config import interval_to_seconds
from exceptions.trading_exceptions import BotNotFoundError, ConnectivityError, TradingError
from position.activity import record_activity
from utils.logger import Logger

logger = Logger.get_logger(__name__)


class BotScheduler:
    def __init__(self, storage, connections, orchestrator):
        self.storage = storage
        self.connections = connections
        self.orchestrator = orchestrator
        self._timers: Dict[int, asyncio.Task] = {}
        self._locks: Dict[int, asyncio.Lock] = {}
        self._cycle_tasks: Set[asyncio.Task] = set()

    # ======================
    # 🔹 TIMERS
    # ======================

    def schedule(self, bot_id: int, interval_seconds: float) -> asyncio.Task:
        """Reemplaza cualquier timer previo del bot y dispara un ciclo inmediato."""
        self.cancel(bot_id)
        task = asyncio.create_task(self._timer_loop(bot_id, interval_seconds), name=f"bot-timer-{bot_id}")
        self._timers[bot_id] = task
        return task

    def cancel(self, bot_id: int) -> bool:
        task = self._timers.pop(bot_id, None)
        if task is None:
            return False
        task.cancel()
        return True

    def is_scheduled(self, bot_id: int) -> bool:
        task = self._timers.get(bot_id)
        return task is not None and not task.done()

    def scheduled_bot_ids(self):
        return sorted(bot_id for bot_id, task in self._timers.items() if not task.done())

    def is_cycle_running(self, bot_id: int) -> bool:
        lock = self._locks.get(bot_id)
        return lock is not None and lock.locked()

    async def _timer_loop(self, bot_id: int, interval_seconds: float):
        self._spawn_cycle(bot_id)
        while True:
            await asyncio.sleep(interval_seconds)
            self._spawn_cycle(bot_id)

    def _spawn_cycle(self, bot_id: int):
        task = asyncio.create_task(self.run_cycle(bot_id), name=f"bot-cycle-{bot_id}")
        self._cycle_tasks.add(task)
        task.add_done_callback(self._on_cycle_done)

    def _on_cycle_done(self, task: asyncio.Task):
        self._cycle_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"❌ {task.get_name()} terminó con error: {error!r}")

    async def run_cycle(self, bot_id: int) -> bool:
        """Ejecuta un ciclo serializado por bot. Devuelve False si se omitió."""
        lock = self._locks.setdefault(bot_id, asyncio.Lock())
        if lock.locked():
            logger.warning(f"⏭️ Bot #{bot_id}: ciclo anterior en curso, tick omitido")
            return False
        async with lock:
            await self.orchestrator.run_cycle(bot_id)
        return True

    # ======================
    # 🔹 CICLO DE VIDA
    # ======================

    async def start_bot(self, bot_id: int, message: str | None = None):
        if not self.connections.is_connected():
            raise ConnectivityError("API del exchange no conectada")
        bot = self.storage.get_bot(bot_id)
        if bot is None:
            raise BotNotFoundError(f"Bot {bot_id} no encontrado")

        interval_seconds = interval_to_seconds(bot.interval)
        bot = self.storage.update_bot(bot_id, status="active")
        self.schedule(bot_id, interval_seconds)
        record_activity(
            self.storage, bot, "start", message or f"Bot iniciado ({bot.symbol}, intervalo {bot.interval})"
        )
        return bot

    async def pause_bot(self, bot_id: int):
        bot = self._require(bot_id)
        self.cancel(bot_id)
        bot = self.storage.update_bot(bot_id, status="paused")
        record_activity(self.storage, bot, "stop", "Bot pausado")
        return bot

    async def stop_bot(self, bot_id: int):
        bot = self._require(bot_id)
        self.cancel(bot_id)
        bot = self.storage.update_bot(bot_id, status="stopped", last_signal=None, last_signal_time=None)
        record_activity(self.storage, bot, "stop", "Bot detenido")
        return bot

    async def resume_active_bots(self) -> int:
        """Reinicia los bots persistidos como activos. Sin conexión no hace nada."""
        if not self.connections.is_connected():
            logger.info("⏸️ Sin conexión con el venue, no se reanudan bots")
            return 0
        resumed = 0
        for bot in self.storage.get_active_bots():
            try:
                await self.start_bot(bot.id)
                resumed += 1
            except TradingError as e:
                logger.error(f"❌ No se pudo reanudar el bot {bot.name}: {e}")
        if resumed:
            logger.info(f"▶️ {resumed} bot(s) reanudados")
        return resumed

    async def shutdown(self):
        """Cancela timers y ciclos en curso sin cambiar el estado persistido."""
        tasks = list(self._timers.values()) + list(self._cycle_tasks)
        self._timers.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"🛑 Scheduler detenido ({len(tasks)} tareas canceladas)")

    def _require(self, bot_id: int):
        bot = self.storage.get_bot(bot_id)
        if bot is None:
            raise BotNotFoundError(f"Bot {bot_id} no encontrado")
        return bot
