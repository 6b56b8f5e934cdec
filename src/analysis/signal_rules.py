# analysis/signal_rules.py
"""
Clasificación buy / sell / neutral de cada indicador sobre el último punto.
Funciones puras: reciben valores ya calculados y devuelven (señal, descripción).
"""
from typing import Tuple

BUY = "buy"
SELL = "sell"
NEUTRAL = "neutral"

# %B de Bollinger
BB_EDGE = 0.05
BB_NEAR = 0.2


def rsi_signal(value: float, overbought: float, oversold: float) -> Tuple[str, str]:
    if value < oversold:
        return BUY, f"RSI {value:.2f} < {oversold:g} (sobreventa)"
    if value > overbought:
        return SELL, f"RSI {value:.2f} > {overbought:g} (sobrecompra)"
    return NEUTRAL, f"RSI {value:.2f} (neutral: {oversold:g}-{overbought:g})"


def macd_signal(prev_macd: float, prev_signal: float, macd: float, signal: float,
                histogram: float) -> Tuple[str, str]:
    crossed_above = macd > signal and prev_macd <= prev_signal
    crossed_below = macd < signal and prev_macd >= prev_signal

    if crossed_above:
        return BUY, "Cruce alcista (MACD cruzó por encima de la señal)"
    if crossed_below:
        return SELL, "Cruce bajista (MACD cruzó por debajo de la señal)"
    if macd > signal and histogram > 0:
        return BUY, "Momentum alcista (histograma positivo)"
    if macd < signal and histogram < 0:
        return SELL, "Momentum bajista (histograma negativo)"
    return NEUTRAL, "Sin cruce reciente"


def percent_b(close: float, lower: float, upper: float) -> float:
    width = upper - lower
    if width <= 0:
        return 0.5
    return (close - lower) / width


def bollinger_signal(close: float, lower: float, upper: float) -> Tuple[str, str]:
    pb = percent_b(close, lower, upper)
    if close <= lower or pb < BB_EDGE:
        return BUY, "Precio en la banda inferior (posible rebote alcista)"
    if close >= upper or pb > 1 - BB_EDGE:
        return SELL, "Precio en la banda superior (posible giro bajista)"
    if pb < BB_NEAR:
        return NEUTRAL, "Cerca de la banda inferior"
    if pb > 1 - BB_NEAR:
        return NEUTRAL, "Cerca de la banda superior"
    return NEUTRAL, "Precio dentro de las bandas"


def ema_signal(prev_short: float, prev_long: float, short: float, long: float, close: float,
               short_period: int, long_period: int) -> Tuple[str, str]:
    golden_cross = short > long and prev_short <= prev_long
    death_cross = short < long and prev_short >= prev_long

    if golden_cross:
        return BUY, f"Golden Cross (EMA{short_period} cruzó por encima de EMA{long_period})"
    if death_cross:
        return SELL, f"Death Cross (EMA{short_period} cruzó por debajo de EMA{long_period})"
    if short > long and close > short:
        return BUY, "Tendencia alcista (precio sobre las EMAs)"
    if short < long and close < short:
        return SELL, "Tendencia bajista (precio bajo las EMAs)"
    return NEUTRAL, "Sin cruce reciente"
