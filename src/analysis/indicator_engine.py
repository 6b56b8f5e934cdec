# analysis/indicator_engine.py
"""
Motor de indicadores: clasifica cada indicador habilitado y agrega los votos.

Un indicador sin historia suficiente no vota ni cuenta como habilitado.
Lo mismo ocurre con el FGI cuando la lectura está vieja o no disponible.
"""
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Sequence

from analysis import signal_rules
from analysis.fear_greed import fear_greed_signal
from analysis.indicator_calculator import IndicatorCalculator, candles_to_frame, last_values
from contracts.indicator_settings import IndicatorSettings
from contracts.market_contract import Candle
from utils.logger import Logger

logger = Logger.get_logger(__name__)


@dataclass(frozen=True)
class IndicatorSignal:
    """Registro de decisión de un indicador: valor, umbrales y señal resultante."""
    name: str
    signal: str  # buy / sell / neutral
    value: float
    description: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class IndicatorAnalysis:
    signals: List[IndicatorSignal]
    overall_signal: str  # buy / sell / hold
    buy_count: int
    sell_count: int
    buy_strength: float
    sell_strength: float
    enabled_count: int
    fear_greed_value: Optional[float] = None

    def names_voting(self, side: str) -> List[str]:
        return [s.name for s in self.signals if s.signal == side]

    def snapshot(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self.signals]

    def summary(self) -> str:
        """Resumen legible para last_indicator_values."""
        if not self.signals:
            return "Sin indicadores con datos suficientes"
        return " | ".join(f"{s.name}: {s.description}" for s in self.signals)


def aggregate_signals(signals: Sequence[IndicatorSignal],
                      fear_greed_value: Optional[float] = None) -> IndicatorAnalysis:
    """
    buy si buy_count > 0 y buy_count > sell_count; sell simétrico; si no, hold.
    La fuerza es votos / indicadores habilitados * 100 (0 sin indicadores).
    """
    signals = list(signals)
    enabled_count = len(signals)
    buy_count = sum(1 for s in signals if s.signal == signal_rules.BUY)
    sell_count = sum(1 for s in signals if s.signal == signal_rules.SELL)

    if buy_count > 0 and buy_count > sell_count:
        overall = "buy"
    elif sell_count > 0 and sell_count > buy_count:
        overall = "sell"
    else:
        overall = "hold"

    return IndicatorAnalysis(
        signals=signals,
        overall_signal=overall,
        buy_count=buy_count,
        sell_count=sell_count,
        buy_strength=(buy_count / enabled_count * 100) if enabled_count else 0.0,
        sell_strength=(sell_count / enabled_count * 100) if enabled_count else 0.0,
        enabled_count=enabled_count,
        fear_greed_value=fear_greed_value,
    )


def technical_signals(candles: Sequence[Candle], settings: IndicatorSettings) -> List[IndicatorSignal]:
    """Señales de RSI, MACD, Bollinger y EMA. Sin I/O."""
    count = len(candles)
    if count == 0:
        return []

    df = IndicatorCalculator.from_settings(settings).compute(candles_to_frame(candles))
    close = float(df["close"].iloc[-1])
    signals: List[IndicatorSignal] = []

    rsi = settings.rsi
    if rsi.enabled and count >= rsi.period:
        values = last_values(df["RSI"])
        if values:
            value = values[-1]
            side, description = signal_rules.rsi_signal(value, rsi.overbought, rsi.oversold)
            signals.append(IndicatorSignal(
                "RSI", side, value, description,
                {"period": rsi.period, "overbought": rsi.overbought, "oversold": rsi.oversold},
            ))

    macd = settings.macd
    if macd.enabled and count >= macd.slow_period + macd.signal_period:
        line = last_values(df["MACD"], 2)
        sig = last_values(df["MACD_signal"], 2)
        hist = last_values(df["MACD_hist"], 1)
        if line and sig and hist:
            side, description = signal_rules.macd_signal(line[0], sig[0], line[1], sig[1], hist[0])
            signals.append(IndicatorSignal(
                "MACD", side, line[1], description,
                {"signal_line": sig[1], "histogram": hist[0],
                 "fast_period": macd.fast_period, "slow_period": macd.slow_period,
                 "signal_period": macd.signal_period},
            ))

    bb = settings.bollinger_bands
    if bb.enabled and count >= bb.period:
        lower = last_values(df["BBL"])
        middle = last_values(df["BBM"])
        upper = last_values(df["BBU"])
        if lower and middle and upper:
            side, description = signal_rules.bollinger_signal(close, lower[0], upper[0])
            signals.append(IndicatorSignal(
                "Bollinger Bands", side, close, description,
                {"lower": lower[0], "middle": middle[0], "upper": upper[0],
                 "percent_b": signal_rules.percent_b(close, lower[0], upper[0])},
            ))

    ema = settings.ema
    if ema.enabled and count >= ema.long_period:
        short = last_values(df["EMA_SHORT"], 2)
        long = last_values(df["EMA_LONG"], 2)
        if short and long:
            side, description = signal_rules.ema_signal(
                short[0], long[0], short[1], long[1], close, ema.short_period, ema.long_period
            )
            signals.append(IndicatorSignal(
                "EMA", side, short[1], description,
                {"short_ema": short[1], "long_ema": long[1],
                 "short_period": ema.short_period, "long_period": ema.long_period},
            ))

    return signals


class IndicatorEngine:
    def __init__(self, sentiment_provider=None):
        self.sentiment_provider = sentiment_provider

    async def evaluate(self, candles: Sequence[Candle], settings: IndicatorSettings,
                       entry_sentiment: Optional[float] = None) -> IndicatorAnalysis:
        signals = technical_signals(candles, settings)
        fear_greed_value = None

        if settings.fear_greed.enabled:
            fgi = await self._sentiment_signal(settings, entry_sentiment)
            if fgi is not None:
                signals.append(fgi)
                fear_greed_value = fgi.value

        analysis = aggregate_signals(signals, fear_greed_value)
        logger.debug(
            f"📊 Análisis: {analysis.overall_signal} "
            f"(compra {analysis.buy_count}/{analysis.enabled_count}, venta {analysis.sell_count}/{analysis.enabled_count})"
        )
        return analysis

    async def _sentiment_signal(self, settings: IndicatorSettings,
                                entry_sentiment: Optional[float]) -> Optional[IndicatorSignal]:
        if self.sentiment_provider is None:
            return None
        reading = await self.sentiment_provider.async_fetch_index()
        if reading is None or self.sentiment_provider.is_stale():
            logger.warning("⚠️ FGI no disponible o desactualizado, se excluye del análisis")
            return None

        fg = settings.fear_greed
        side, description = fear_greed_signal(reading.value, fg, entry_sentiment)
        return IndicatorSignal(
            "FGI", side, reading.value, description,
            {"buy_threshold": fg.buy_threshold, "entry_value": entry_sentiment,
             "classification": reading.classification, "as_of": reading.as_of},
        )
