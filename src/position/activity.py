# position/activity.py
from typing import Optional

from utils.logger import Logger

logger = Logger.get_logger(__name__)


def record_activity(storage, bot, type_: str, message: str, analysis=None, indicators=None):
    """Registra una actividad del bot; con un análisis adjunta conteos y snapshot."""
    if analysis is not None:
        buy_signals: Optional[int] = analysis.buy_count
        sell_signals: Optional[int] = analysis.sell_count
        indicators = analysis.snapshot() if indicators is None else indicators
    else:
        buy_signals = sell_signals = None

    log = logger.error if type_ == "error" else logger.info
    log(f"[{bot.name}] {message}")
    return storage.add_activity(
        bot_id=bot.id,
        bot_name=bot.name,
        symbol=bot.symbol,
        type=type_,
        message=message,
        buy_signals=buy_signals,
        sell_signals=sell_signals,
        indicators=indicators or [],
    )
