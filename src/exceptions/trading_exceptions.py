class TradingError(Exception):
    """Base exception for bot cycle errors"""

    pass


class ConnectivityError(TradingError):
    """Raised when the trading venue is not connected or unreachable"""

    pass


class ValidationError(TradingError, ValueError):
    """Raised when a bot config or indicator settings are malformed"""

    pass


class InsufficientDataError(TradingError):
    """Raised when there are fewer candles than required for analysis"""

    pass


class InsufficientBalanceError(TradingError):
    """Raised when the quote balance is below the venue minimum notional"""

    pass


class MarketDataError(TradingError):
    """Raised when the venue rejects a market data request"""

    pass


class OrderExecutionError(TradingError):
    """Raised when the venue rejects or fails an order"""

    pass


class BotNotFoundError(TradingError):
    """Raised when a bot id does not exist"""

    pass
