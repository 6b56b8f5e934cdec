# analysis/fear_greed.py
"""Reglas puras del índice de Miedo y Codicia (0-100)."""
from typing import Optional, Tuple

from contracts.indicator_settings import FearGreedSettings

CLASSIFICATION_ES = {
    "Extreme Fear": "Miedo Extremo",
    "Fear": "Miedo",
    "Neutral": "Neutral",
    "Greed": "Codicia",
    "Extreme Greed": "Codicia Extrema",
}


def classify(value: float) -> str:
    if value <= 24:
        return "Extreme Fear"
    if value <= 49:
        return "Fear"
    if value == 50:
        return "Neutral"
    if value <= 74:
        return "Greed"
    return "Extreme Greed"


def classification_es(value: float) -> str:
    return CLASSIFICATION_ES[classify(value)]


def fear_greed_signal(value: float, settings: FearGreedSettings,
                      entry_value: Optional[float] = None) -> Tuple[str, str]:
    """
    buy si value <= buy_threshold. Con un valor de entrada, sell si el índice
    subió >= sell_increase_percent (take profit) o cayó >= stop_loss_percent.
    """
    label = classification_es(value)
    if value <= settings.buy_threshold:
        return "buy", f"FGI {value:g} ≤ {settings.buy_threshold:g} ({label}, señal de compra)"

    if entry_value is not None and entry_value > 0:
        change = (value - entry_value) / entry_value * 100
        if change >= settings.sell_increase_percent:
            return "sell", (
                f"FGI subió {change:.1f}% desde la entrada ({entry_value:g} → {value:g}), Take Profit"
            )
        if -change >= settings.stop_loss_percent:
            return "sell", (
                f"FGI cayó {-change:.1f}% desde la entrada ({entry_value:g} → {value:g}), Stop Loss"
            )
        return "neutral", f"FGI {value:g} (entrada: {entry_value:g}, var: {change:+.1f}%)"

    return "neutral", f"FGI {value:g} ({label})"
