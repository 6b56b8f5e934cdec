# contracts/market_contract.py
"""
Estructuras que intercambia el motor con el exchange.
Todas son inmutables: una vez recibidas del venue no se modifican.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Candle:
    """Vela OHLCV. `time` es el open time en milisegundos."""
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class SymbolConstraints:
    """Filtros LOT_SIZE / NOTIONAL de un símbolo."""
    min_qty: float
    step_size: float
    min_notional: float


@dataclass(frozen=True)
class OrderFill:
    """Resultado REAL de una orden de mercado (nunca la estimación previa)."""
    order_id: str
    avg_price: float
    executed_qty: float
    cumulative_quote_qty: float
    status: str = "FILLED"

    @classmethod
    def from_exchange_response(cls, response: dict, fallback_price: Optional[float] = None) -> "OrderFill":
        """
        Construye el fill desde la respuesta de Binance.
        El precio medio se deriva de cummulativeQuoteQty / executedQty; si no hay
        cantidad ejecutada se usa el promedio ponderado de `fills`.
        """
        executed_qty = float(response.get("executedQty", 0) or 0)
        cumm_quote = float(response.get("cummulativeQuoteQty", 0) or 0)

        if executed_qty <= 0 or cumm_quote <= 0:
            fills = response.get("fills") or []
            total_qty = sum(float(f.get("qty", 0) or 0) for f in fills)
            total_quote = sum(float(f.get("price", 0) or 0) * float(f.get("qty", 0) or 0) for f in fills)
            if total_qty > 0:
                executed_qty = executed_qty or total_qty
                cumm_quote = cumm_quote or total_quote

        if executed_qty > 0 and cumm_quote > 0:
            avg_price = cumm_quote / executed_qty
        else:
            avg_price = float(fallback_price or 0.0)
            cumm_quote = avg_price * executed_qty

        return cls(
            order_id=str(response.get("orderId", "")),
            avg_price=avg_price,
            executed_qty=executed_qty,
            cumulative_quote_qty=cumm_quote,
            status=str(response.get("status", "FILLED")),
        )
