# position/dca_evaluator.py
"""
DCA: añade a una posición abierta mientras la inversión objetivo no esté
completa y los indicadores vuelvan a dar señal de compra.
"""
from dataclasses import dataclass
from typing import Optional

from contracts.bot_config import quote_asset
from exceptions.trading_exceptions import OrderExecutionError
from position.activity import record_activity
from position.base_evaluator import BaseEvaluator, MIN_CANDLES
from position.sizing import effective_min_signals, floor_to_step, weighted_average
from utils.logger import Logger

logger = Logger.get_logger(__name__)


@dataclass(frozen=True)
class DcaResult:
    executed: bool
    invest_amount: float = 0.0
    reason: Optional[str] = None


def dca_amount(investment: float, invested_amount: float, available_quote: float) -> float:
    """Monto a invertir: min(restante, saldo disponible)."""
    remaining = max(investment - invested_amount, 0.0)
    return max(min(remaining, available_quote), 0.0)


class DcaEvaluator(BaseEvaluator):

    async def check_dca(self, bot, current_price: float, constraints=None) -> DcaResult:
        remaining = (bot.investment or 0) - (bot.invested_amount or 0)
        if remaining <= 0:
            return DcaResult(False, reason="fully_invested")

        if constraints is None:
            constraints = await self.client.async_get_symbol_constraints(bot.symbol)
        if remaining < constraints.min_notional:
            return DcaResult(False, reason="below_min_notional")

        candles = await self.fetch_candles(bot)
        if len(candles) < MIN_CANDLES:
            return DcaResult(False, reason="insufficient_data")

        analysis = await self.analyze(bot, candles)
        required = effective_min_signals(bot.min_signals, analysis.enabled_count)
        if analysis.overall_signal != "buy" or analysis.buy_count < required:
            return DcaResult(False, reason="no_signal")

        available = await self.client.async_get_asset_balance(quote_asset(bot.symbol))
        invest_amount = dca_amount(bot.investment, bot.invested_amount or 0, available)
        if invest_amount < constraints.min_notional:
            logger.info(
                f"[{bot.name}] DCA omitido: {invest_amount:.2f} < mínimo {constraints.min_notional:g}"
            )
            return DcaResult(False, invest_amount, reason="below_min_notional")

        quantity = floor_to_step(invest_amount / current_price, constraints.step_size)
        if quantity <= 0 or quantity < constraints.min_qty:
            return DcaResult(False, invest_amount, reason="below_min_qty")

        try:
            fill = await self.client.async_execute_market_order(bot.symbol, "BUY", quantity)
        except OrderExecutionError as e:
            record_activity(self.storage, bot, "error", f"Error en DCA: {e}", analysis)
            return DcaResult(False, invest_amount, reason="order_failed")

        old_balance = bot.current_balance or 0
        new_balance = old_balance + fill.executed_qty
        new_avg = weighted_average(bot.avg_entry_price or 0, old_balance, fill.avg_price, fill.executed_qty)
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
            current_balance=new_balance,
            invested_amount=(bot.invested_amount or 0) + fill.cumulative_quote_qty,
            avg_entry_price=new_avg,
            total_trades=(bot.total_trades or 0) + 1,
        )
        record_activity(
            self.storage, bot, "buy",
            f"DCA: compra de {fill.executed_qty:g} @ {fill.avg_price:.8f} "
            f"({fill.cumulative_quote_qty:.2f}). Nuevo precio medio {new_avg:.8f}",
            analysis,
        )
        return DcaResult(True, fill.cumulative_quote_qty)
