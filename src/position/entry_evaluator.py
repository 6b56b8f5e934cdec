# position/entry_evaluator.py
"""Apertura de posición desde estado plano."""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from contracts.bot_config import quote_asset
from exceptions.trading_exceptions import InsufficientBalanceError, InsufficientDataError
from position.activity import record_activity
from position.base_evaluator import BaseEvaluator, MIN_CANDLES
from position.sizing import effective_min_signals, floor_to_step
from utils.logger import Logger

logger = Logger.get_logger(__name__)


@dataclass(frozen=True)
class EntryResult:
    executed: bool
    reason: Optional[str] = None
    quantity: float = 0.0
    price: float = 0.0


def cooldown_remaining_minutes(last_sell_time: Optional[datetime], cooldown_minutes: int,
                               now: Optional[datetime] = None) -> int:
    """Minutos restantes de enfriamiento (0 si no aplica). Se redondea hacia arriba."""
    if not last_sell_time or not cooldown_minutes or cooldown_minutes <= 0:
        return 0
    now = now or datetime.utcnow()
    elapsed = (now - last_sell_time).total_seconds() / 60
    if elapsed >= cooldown_minutes:
        return 0
    return max(1, math.ceil(cooldown_minutes - elapsed))


class EntryEvaluator(BaseEvaluator):

    async def check_entry(self, bot, current_price: float, constraints=None) -> EntryResult:
        candles = await self.fetch_candles(bot)
        if len(candles) < MIN_CANDLES:
            raise InsufficientDataError(
                f"Datos insuficientes para análisis ({len(candles)}/{MIN_CANDLES} velas)"
            )

        analysis = await self.analyze(bot, candles)
        required = effective_min_signals(bot.min_signals, analysis.enabled_count)
        self.save_signal_snapshot(bot, analysis)

        if analysis.overall_signal != "buy" or analysis.buy_count < required:
            adjusted = (
                f"{required} necesarias (ajustado de {bot.min_signals} a {analysis.enabled_count} indicadores activos)"
                if required != bot.min_signals else f"{required} necesarias"
            )
            active = "; ".join(f"{s.name}: {s.description}" for s in analysis.signals if s.signal != "neutral")
            record_activity(
                self.storage, bot, "analysis",
                f"Esperando señales ({adjusted}). {active or 'Ninguna señal activa'}",
                analysis,
            )
            return EntryResult(False, reason="no_signal")

        if constraints is None:
            constraints = await self.client.async_get_symbol_constraints(bot.symbol)

        investment = bot.investment
        if investment < constraints.min_notional:
            logger.info(f"[{bot.name}] Orden demasiado pequeña (mínimo {constraints.min_notional:g})")
            return EntryResult(False, reason="below_min_notional")

        available = await self.client.async_get_asset_balance(quote_asset(bot.symbol))
        if available < constraints.min_notional:
            raise InsufficientBalanceError(
                f"Saldo insuficiente: {available:.2f} {quote_asset(bot.symbol)} "
                f"(mínimo {constraints.min_notional:g})"
            )
        if available < investment:
            logger.info(f"[{bot.name}] Entrada parcial: saldo {available:.2f} < inversión {investment:.2f}")
            investment = available

        quantity = floor_to_step(investment / current_price, constraints.step_size)
        if quantity <= 0 or quantity < constraints.min_qty or quantity * current_price < constraints.min_notional:
            logger.info(f"[{bot.name}] Cantidad {quantity} por debajo de los mínimos del símbolo")
            return EntryResult(False, reason="below_min_notional")

        # OrderExecutionError se propaga al orquestador; el estado no se toca
        fill = await self.client.async_execute_market_order(bot.symbol, "BUY", quantity)

        trailing = bot.trailing_stop_percent or 0
        names = analysis.names_voting("buy")
        self.storage.create_trade(
            bot_id=bot.id,
            symbol=bot.symbol,
            side="buy",
            price=fill.avg_price,
            quantity=fill.executed_qty,
            total=fill.cumulative_quote_qty,
            indicators=names,
            order_id=fill.order_id,
        )
        self.storage.update_bot(
            bot.id,
            current_balance=fill.executed_qty,
            invested_amount=fill.cumulative_quote_qty,
            avg_entry_price=fill.avg_price,
            highest_price=fill.avg_price if trailing > 0 else None,
            trailing_stop_price=fill.avg_price * (1 - trailing / 100) if trailing > 0 else None,
            entry_sentiment=analysis.fear_greed_value,
            total_trades=(bot.total_trades or 0) + 1,
        )
        record_activity(
            self.storage, bot, "buy",
            f"Compra ejecutada: {fill.executed_qty:g} @ {fill.avg_price:.8f} "
            f"({fill.cumulative_quote_qty:.2f}) por {', '.join(names)}",
            analysis,
        )
        return EntryResult(True, quantity=fill.executed_qty, price=fill.avg_price)
