from .db_exceptions import DatabaseError
from .trading_exceptions import (
    TradingError,
    ConnectivityError,
    ValidationError,
    InsufficientDataError,
    InsufficientBalanceError,
    MarketDataError,
    OrderExecutionError,
    BotNotFoundError,
)

__all__ = [
    'DatabaseError',
    'TradingError',
    'ConnectivityError',
    'ValidationError',
    'InsufficientDataError',
    'InsufficientBalanceError',
    'MarketDataError',
    'OrderExecutionError',
    'BotNotFoundError',
]
