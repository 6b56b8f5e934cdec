# position/sizing.py
"""Aritmética de órdenes: ajuste a stepSize, P&L y umbral de señales."""
from decimal import Decimal, ROUND_DOWN


def floor_to_step(quantity: float, step_size: float) -> float:
    """Ajusta la cantidad hacia abajo al múltiplo de step_size (Decimal evita errores de coma flotante)."""
    if quantity <= 0:
        return 0.0
    q = Decimal(str(quantity))
    step = Decimal(str(step_size))
    if step <= 0:
        return float(q)
    adjusted = (q / step).to_integral_value(rounding=ROUND_DOWN) * step
    return float(adjusted)


def effective_min_signals(min_signals: int, enabled_count: int) -> int:
    """
    min_signals acotado a [1, enabled_count]. Sin indicadores habilitados se
    devuelve min_signals sin modificar.
    """
    if enabled_count <= 0:
        return min_signals
    return max(1, min(min_signals, enabled_count))


def pnl_percent(current_price: float, avg_entry_price: float) -> float:
    if avg_entry_price <= 0:
        return 0.0
    return (current_price - avg_entry_price) / avg_entry_price * 100


def weighted_average(old_price: float, old_qty: float, new_price: float, new_qty: float) -> float:
    total = old_qty + new_qty
    if total <= 0:
        return 0.0
    return (old_price * old_qty + new_price * new_qty) / total
