# position/risk_evaluator.py
"""
Evaluador de salida de una posición abierta.

Orden de chequeo (gana el primero): STOP_LOSS, TAKE_PROFIT, TRAILING_STOP,
INDICATOR_OVERBOUGHT. Antes de evaluar se reconcilia el precio medio de
entrada contra el historial de trades.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from position.activity import record_activity
from position.base_evaluator import BaseEvaluator, MIN_CANDLES
from position.sizing import effective_min_signals, pnl_percent
from utils.logger import Logger

logger = Logger.get_logger(__name__)

# Desviación relativa máxima tolerada entre el precio medio guardado y el recalculado
DRIFT_TOLERANCE = 0.005

STOP_LOSS = "STOP_LOSS"
TAKE_PROFIT = "TAKE_PROFIT"
TRAILING_STOP = "TRAILING_STOP"
INDICATOR_OVERBOUGHT = "INDICATOR_OVERBOUGHT"
THRESHOLD_MISMATCH = "THRESHOLD_MISMATCH"


@dataclass(frozen=True)
class ExitDecision:
    should_sell: bool
    reason: Optional[str] = None
    indicator_names: List[str] = field(default_factory=list)
    avg_entry_price: float = 0.0

    @property
    def blocks_cycle(self) -> bool:
        # Discrepancia entre chequeos: no se actúa en este ciclo
        return self.reason == THRESHOLD_MISMATCH


def ledger_entry_price(trades) -> Optional[float]:
    """
    VWAP de las compras completadas posteriores a la última venta completada.
    `trades` viene ordenado del más reciente al más antiguo.
    """
    total_qty = 0.0
    total_cost = 0.0
    for trade in trades:
        if trade.status != "completed":
            continue
        if trade.side == "sell":
            break
        if trade.side == "buy":
            total_qty += trade.quantity
            total_cost += trade.price * trade.quantity
    if total_qty <= 0:
        return None
    return total_cost / total_qty


def stop_loss_checks(avg_price: float, current_price: float, percent: float):
    """(chequeo por porcentaje, chequeo por precio absoluto)"""
    by_percent = pnl_percent(current_price, avg_price) <= -percent
    by_price = current_price <= avg_price * (1 - percent / 100)
    return by_percent, by_price


def take_profit_checks(avg_price: float, current_price: float, percent: float):
    by_percent = pnl_percent(current_price, avg_price) >= percent
    by_price = current_price >= avg_price * (1 + percent / 100)
    return by_percent, by_price


class PositionRiskEvaluator(BaseEvaluator):

    def reconcile_entry_price(self, bot) -> float:
        """Corrige avg_entry_price si difiere más de 0.5% del VWAP del historial."""
        stored = bot.avg_entry_price or 0.0
        recomputed = ledger_entry_price(self.storage.get_all_trades(bot.id))
        if recomputed is None:
            return stored

        drift = abs(stored - recomputed) / recomputed
        if drift > DRIFT_TOLERANCE:
            logger.warning(
                f"⚠️ [{bot.name}] Precio medio corregido: {stored:.8f} → {recomputed:.8f} "
                f"(desvío {drift * 100:.2f}%)"
            )
            self.storage.update_bot(bot.id, avg_entry_price=recomputed)
            bot.avg_entry_price = recomputed
            return recomputed
        return stored

    async def check_exit(self, bot, current_price: float) -> ExitDecision:
        avg_price = self.reconcile_entry_price(bot)
        pnl = pnl_percent(current_price, avg_price)
        decision = self._check_thresholds(bot, current_price, avg_price, pnl)

        analysis = None
        if decision is None:
            decision, analysis = await self._check_indicators(bot, avg_price)

        thresholds = (
            f"SL -{bot.stop_loss_percent:g}% / TP +{bot.take_profit_percent:g}%"
            + (f" / TS {bot.trailing_stop_percent:g}%" if bot.trailing_stop_percent else "")
        )
        message = f"Posición abierta: P&L {pnl:+.2f}% ({thresholds})"
        if decision.should_sell:
            message += f". Salida: {decision.reason}"
        elif analysis is not None:
            message += f". Señal {analysis.overall_signal.upper()}"
        record_activity(self.storage, bot, "analysis", message, analysis)
        if analysis is not None:
            self.save_signal_snapshot(bot, analysis)
        else:
            self.save_signal_snapshot(bot, signal="sell" if decision.should_sell else "hold", values=message)

        return decision

    def _check_thresholds(self, bot, current_price: float, avg_price: float, pnl: float) -> Optional[ExitDecision]:
        stop_loss = bot.stop_loss_percent or 0
        if stop_loss > 0:
            by_percent, by_price = stop_loss_checks(avg_price, current_price, stop_loss)
            if by_percent and by_price:
                return ExitDecision(True, STOP_LOSS, avg_entry_price=avg_price)
            if by_percent != by_price:
                return self._mismatch(bot, STOP_LOSS, current_price, avg_price, pnl)

        take_profit = bot.take_profit_percent or 0
        if take_profit > 0:
            by_percent, by_price = take_profit_checks(avg_price, current_price, take_profit)
            if by_percent and by_price:
                return ExitDecision(True, TAKE_PROFIT, avg_entry_price=avg_price)
            if by_percent != by_price:
                return self._mismatch(bot, TAKE_PROFIT, current_price, avg_price, pnl)

        trailing = bot.trailing_stop_percent or 0
        if trailing > 0 and pnl > 0:
            highest = bot.highest_price or avg_price
            if current_price > highest:
                new_stop = current_price * (1 - trailing / 100)
                self.storage.update_bot(bot.id, highest_price=current_price, trailing_stop_price=new_stop)
                bot.highest_price, bot.trailing_stop_price = current_price, new_stop
                logger.info(f"📈 [{bot.name}] Nuevo máximo {current_price:.8f}, trailing stop {new_stop:.8f}")
            elif bot.trailing_stop_price and current_price <= bot.trailing_stop_price:
                return ExitDecision(True, TRAILING_STOP, avg_entry_price=avg_price)

        return None

    def _mismatch(self, bot, check: str, current_price: float, avg_price: float, pnl: float) -> ExitDecision:
        logger.warning(
            f"⚠️ [{bot.name}] Discrepancia en {check}: P&L {pnl:.4f}% y precio {current_price:.8f} "
            f"no coinciden (precio medio {avg_price:.8f}). Sin acción este ciclo"
        )
        return ExitDecision(False, THRESHOLD_MISMATCH, avg_entry_price=avg_price)

    async def _check_indicators(self, bot, avg_price: float):
        candles = await self.fetch_candles(bot)
        if len(candles) < MIN_CANDLES:
            logger.info(f"[{bot.name}] {len(candles)} velas, se omite la salida por indicadores")
            return ExitDecision(False, avg_entry_price=avg_price), None

        analysis = await self.analyze(bot, candles)
        required = effective_min_signals(bot.min_signals, analysis.enabled_count)
        if analysis.overall_signal == "sell" and analysis.sell_count >= required:
            return ExitDecision(
                True, INDICATOR_OVERBOUGHT, analysis.names_voting("sell"), avg_entry_price=avg_price
            ), analysis
        return ExitDecision(False, avg_entry_price=avg_price), analysis
