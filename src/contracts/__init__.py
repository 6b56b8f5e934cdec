# contracts/__init__.py
from .market_contract import Candle, SymbolConstraints, OrderFill
from .indicator_settings import (
    IndicatorSettings,
    RsiSettings,
    MacdSettings,
    BollingerSettings,
    EmaSettings,
    FearGreedSettings,
    ValidatedIndicatorSettings,
)
from .bot_config import BotConfig, ValidatedBotConfig, INTERVAL_MS

__all__ = [
    'Candle',
    'SymbolConstraints',
    'OrderFill',
    'IndicatorSettings',
    'RsiSettings',
    'MacdSettings',
    'BollingerSettings',
    'EmaSettings',
    'FearGreedSettings',
    'ValidatedIndicatorSettings',
    'BotConfig',
    'ValidatedBotConfig',
    'INTERVAL_MS',
]
