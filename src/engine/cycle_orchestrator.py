# engine/cycle_orchestrator.py
"""
Un ciclo completo de un bot: precio y filtros del símbolo, salida o DCA si
hay posición, enfriamiento y entrada si está plano.
"""
import traceback
from datetime import datetime

from exceptions.db_exceptions import DatabaseError
from exceptions.trading_exceptions import (
    InsufficientBalanceError,
    InsufficientDataError,
    OrderExecutionError,
)
from position.activity import record_activity
from position.dca_evaluator import DcaEvaluator
from position.entry_evaluator import EntryEvaluator, cooldown_remaining_minutes
from position.risk_evaluator import PositionRiskEvaluator, INDICATOR_OVERBOUGHT
from position.sizing import floor_to_step, pnl_percent
from utils.logger import Logger

logger = Logger.get_logger(__name__)

# Condiciones operativas: se registran y el bot sigue activo
RECOVERABLE_ERRORS = (InsufficientDataError, InsufficientBalanceError, OrderExecutionError)


class CycleOrchestrator:
    def __init__(self, storage, connections, engine, candle_limit: int | None = None,
                 risk_evaluator=None, dca_evaluator=None, entry_evaluator=None):
        self.storage = storage
        self.connections = connections
        self.risk = risk_evaluator or PositionRiskEvaluator(storage, connections, engine, candle_limit)
        self.dca = dca_evaluator or DcaEvaluator(storage, connections, engine, candle_limit)
        self.entry = entry_evaluator or EntryEvaluator(storage, connections, engine, candle_limit)

    async def run_cycle(self, bot_id: int) -> None:
        bot = self.storage.get_bot(bot_id)
        if bot is None or bot.status != "active":
            # Timer viejo de un bot pausado, detenido o eliminado
            return

        logger.info(f"🔄 [{bot.name}] Ejecutando ciclo para {bot.symbol}")
        try:
            await self._run(bot)
        except RECOVERABLE_ERRORS as e:
            record_activity(self.storage, bot, "error", str(e))
        except Exception as e:
            logger.error(f"❌ [{bot.name}] Error en el ciclo: {e}\n{traceback.format_exc()}")
            self.storage.update_bot(bot.id, status="error")
            try:
                record_activity(self.storage, bot, "error", f"Error en el ciclo: {e}")
            except DatabaseError as db_error:
                logger.error(f"❌ [{bot.name}] No se pudo registrar el error del ciclo: {db_error}")

    async def _run(self, bot) -> None:
        client = self.connections.client
        current_price = await client.async_get_price(bot.symbol)
        constraints = await client.async_get_symbol_constraints(bot.symbol)

        if (bot.current_balance or 0) > 0:
            decision = await self.risk.check_exit(bot, current_price)
            if decision.should_sell:
                await self.execute_sell(bot, decision, constraints)
                return
            if decision.blocks_cycle:
                return
            await self.dca.check_dca(bot, current_price, constraints)
            return

        remaining = cooldown_remaining_minutes(bot.last_sell_time, bot.cooldown_minutes)
        if remaining > 0:
            record_activity(
                self.storage, bot, "analysis",
                f"Enfriamiento activo tras la venta ({bot.last_sell_reason or 'venta'}): {remaining} min restantes",
            )
            return

        await self.entry.check_entry(bot, current_price, constraints)

    async def execute_sell(self, bot, decision, constraints) -> None:
        quantity = floor_to_step(bot.current_balance, constraints.step_size)
        if quantity <= 0:
            raise OrderExecutionError(
                f"Cantidad a vender inválida: {bot.current_balance} (step {constraints.step_size:g})"
            )

        fill = await self.connections.client.async_execute_market_order(bot.symbol, "SELL", quantity)

        avg_price = decision.avg_entry_price or bot.avg_entry_price
        pnl = (fill.avg_price - avg_price) * fill.executed_qty
        pnl_pct = pnl_percent(fill.avg_price, avg_price)
        indicators = decision.indicator_names if decision.reason == INDICATOR_OVERBOUGHT else [decision.reason]

        self.storage.create_trade(
            bot_id=bot.id,
            symbol=bot.symbol,
            side="sell",
            price=fill.avg_price,
            quantity=fill.executed_qty,
            total=fill.cumulative_quote_qty,
            pnl=pnl,
            pnl_percent=pnl_pct,
            indicators=indicators,
            order_id=fill.order_id,
        )
        self.storage.update_bot(
            bot.id,
            current_balance=0.0,
            invested_amount=0.0,
            avg_entry_price=0.0,
            highest_price=None,
            trailing_stop_price=None,
            entry_sentiment=None,
            last_sell_time=datetime.utcnow(),
            last_sell_reason=decision.reason,
            total_trades=(bot.total_trades or 0) + 1,
            winning_trades=(bot.winning_trades or 0) + (1 if pnl > 0 else 0),
            total_pnl=(bot.total_pnl or 0) + pnl,
        )
        record_activity(
            self.storage, bot, "sell",
            f"VENTA ejecutada ({decision.reason}): {fill.executed_qty:g} @ {fill.avg_price:.8f} | "
            f"P&L: {pnl:+.2f} ({pnl_pct:+.2f}%)",
            indicators=[{"name": name} for name in indicators],
        )
