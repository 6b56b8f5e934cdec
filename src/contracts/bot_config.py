# contracts/bot_config.py
"""
Configuración de un bot validada en el borde.

El símbolo se expresa como `BASE/QUOTE` (ej: BTC/USDT). El exchange recibe la
forma compacta (BTCUSDT) mediante `venue_symbol`.
"""
from dataclasses import dataclass, field, asdict
from typing import Any, Dict

from contracts.indicator_settings import (
    IndicatorSettings,
    ValidatedIndicatorSettings,
    coerce_number,
)
from exceptions.trading_exceptions import ValidationError


# Intervalos soportados y su duración en milisegundos
INTERVAL_MS = {
    "1m": 60 * 1000,
    "5m": 5 * 60 * 1000,
    "15m": 15 * 60 * 1000,
    "30m": 30 * 60 * 1000,
    "1h": 60 * 60 * 1000,
    "4h": 4 * 60 * 60 * 1000,
    "1d": 24 * 60 * 60 * 1000,
}


def interval_to_seconds(interval: str) -> float:
    if interval not in INTERVAL_MS:
        raise ValidationError(f"❌ Intervalo no soportado: {interval}")
    return INTERVAL_MS[interval] / 1000


def split_symbol(symbol: str):
    base, _, quote = symbol.partition("/")
    return base, quote


def base_asset(symbol: str) -> str:
    return split_symbol(symbol)[0]


def quote_asset(symbol: str) -> str:
    return split_symbol(symbol)[1]


def venue_symbol(symbol: str) -> str:
    return symbol.replace("/", "").upper()


@dataclass(frozen=True)
class BotConfig:
    name: str
    symbol: str
    investment: float
    stop_loss_percent: float = 5
    take_profit_percent: float = 10
    trailing_stop_percent: float = 0
    cooldown_minutes: int = 0
    min_signals: int = 2
    interval: str = "1h"
    indicator_settings: IndicatorSettings = field(default_factory=IndicatorSettings)

    def to_record(self) -> Dict[str, Any]:
        """Forma plana lista para persistir (settings como dict JSON)."""
        record = asdict(self)
        record["indicator_settings"] = self.indicator_settings.to_dict()
        return record


# (tipo, mínimo, máximo)
_NUMERIC_FIELDS = {
    "investment": (float, 1, None),
    "stop_loss_percent": (float, 0, 100),
    "take_profit_percent": (float, 0, 1000),
    "trailing_stop_percent": (float, 0, 100),
    "cooldown_minutes": (int, 0, None),
    "min_signals": (int, 1, 5),
}

_ALLOWED_FIELDS = set(_NUMERIC_FIELDS) | {"name", "symbol", "interval", "indicator_settings"}


class ValidatedBotConfig:
    """Valida la configuración completa o parcial de un bot."""

    @staticmethod
    def validate(data: Dict[str, Any]) -> BotConfig:
        if not isinstance(data, dict):
            raise ValidationError("❌ Configuración de bot inválida: se esperaba un objeto")
        for required in ("name", "symbol", "investment"):
            if required not in data:
                raise ValidationError(f"❌ Campo obligatorio ausente: '{required}'")

        values = ValidatedBotConfig.validate_update(data)
        if "indicator_settings" not in values:
            values["indicator_settings"] = ValidatedIndicatorSettings.default()
        return BotConfig(**values)

    @staticmethod
    def validate_update(changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Valida solo los campos presentes. Devuelve un dict normalizado donde
        `indicator_settings` es un IndicatorSettings.
        """
        if not isinstance(changes, dict):
            raise ValidationError("❌ Cambios inválidos: se esperaba un objeto")

        unknown = set(changes) - _ALLOWED_FIELDS
        if unknown:
            raise ValidationError(f"❌ Campos desconocidos: {sorted(unknown)}")

        values: Dict[str, Any] = {}

        if "name" in changes:
            name = changes["name"]
            if not isinstance(name, str) or not name.strip():
                raise ValidationError("❌ El nombre es obligatorio")
            if len(name.strip()) > 50:
                raise ValidationError("❌ El nombre no puede superar 50 caracteres")
            values["name"] = name.strip()

        if "symbol" in changes:
            values["symbol"] = ValidatedBotConfig._validate_symbol(changes["symbol"])

        if "interval" in changes:
            if changes["interval"] not in INTERVAL_MS:
                raise ValidationError(
                    f"❌ Intervalo inválido: {changes['interval']} (válidos: {', '.join(INTERVAL_MS)})"
                )
            values["interval"] = changes["interval"]

        for name, (kind, minimum, maximum) in _NUMERIC_FIELDS.items():
            if name in changes:
                values[name] = coerce_number("bot", name, changes[name], kind, minimum, maximum)

        if "indicator_settings" in changes:
            values["indicator_settings"] = ValidatedIndicatorSettings.validate(changes["indicator_settings"])

        return values

    @staticmethod
    def _validate_symbol(symbol: Any) -> str:
        if not isinstance(symbol, str):
            raise ValidationError("❌ El símbolo debe ser texto")
        base, sep, quote = symbol.strip().upper().partition("/")
        if not sep or not base.isalnum() or not quote.isalnum():
            raise ValidationError(f"❌ Símbolo inválido: {symbol} (formato esperado BASE/QUOTE)")
        return f"{base}/{quote}"
