# contracts/indicator_settings.py
"""
Configuración tipada de indicadores por bot.

La validación es estricta y ocurre en el borde (creación / actualización del
bot). Una vez persistido, el motor de ciclos recibe siempre un
`IndicatorSettings` completo y nunca necesita valores de respaldo por campo.
"""
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional

from exceptions.trading_exceptions import ValidationError


@dataclass(frozen=True)
class RsiSettings:
    enabled: bool = True
    period: int = 14
    overbought: float = 70
    oversold: float = 30


@dataclass(frozen=True)
class MacdSettings:
    enabled: bool = True
    fast_period: int = 12
    slow_period: int = 26
    signal_period: int = 9


@dataclass(frozen=True)
class BollingerSettings:
    enabled: bool = True
    period: int = 20
    std_dev: float = 2.0


@dataclass(frozen=True)
class EmaSettings:
    enabled: bool = True
    short_period: int = 12
    long_period: int = 26


@dataclass(frozen=True)
class FearGreedSettings:
    enabled: bool = False
    buy_threshold: float = 25
    sell_increase_percent: float = 50
    stop_loss_percent: float = 30


@dataclass(frozen=True)
class IndicatorSettings:
    rsi: RsiSettings = field(default_factory=RsiSettings)
    macd: MacdSettings = field(default_factory=MacdSettings)
    bollinger_bands: BollingerSettings = field(default_factory=BollingerSettings)
    ema: EmaSettings = field(default_factory=EmaSettings)
    fear_greed: FearGreedSettings = field(default_factory=FearGreedSettings)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def active_indicator_names(self):
        names = []
        if self.rsi.enabled:
            names.append("RSI")
        if self.macd.enabled:
            names.append("MACD")
        if self.bollinger_bands.enabled:
            names.append("Bollinger Bands")
        if self.ema.enabled:
            names.append("EMA")
        if self.fear_greed.enabled:
            names.append("FGI")
        return names


# (tipo, mínimo, máximo) por campo numérico; None = sin límite
_SECTION_SCHEMAS = {
    "rsi": (RsiSettings, {
        "period": (int, 2, 100),
        "overbought": (float, 1, 99),
        "oversold": (float, 1, 99),
    }),
    "macd": (MacdSettings, {
        "fast_period": (int, 2, 50),
        "slow_period": (int, 5, 100),
        "signal_period": (int, 2, 50),
    }),
    "bollinger_bands": (BollingerSettings, {
        "period": (int, 5, 100),
        "std_dev": (float, 0.5, 5),
    }),
    "ema": (EmaSettings, {
        "short_period": (int, 2, 50),
        "long_period": (int, 5, 200),
    }),
    "fear_greed": (FearGreedSettings, {
        "buy_threshold": (float, 0, 100),
        "sell_increase_percent": (float, 1, None),
        "stop_loss_percent": (float, 1, None),
    }),
}

_REQUIRED_SECTIONS = ("rsi", "macd", "bollinger_bands", "ema")


def coerce_number(section: str, name: str, value: Any, kind: type,
                  minimum: Optional[float], maximum: Optional[float]):
    """Valida un número dentro de rango. Los booleanos no se aceptan como números."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"❌ {section}.{name} debe ser numérico, recibió {type(value).__name__}")
    if kind is int:
        if float(value) != int(value):
            raise ValidationError(f"❌ {section}.{name} debe ser entero, recibió {value}")
        value = int(value)
    else:
        value = float(value)
    if minimum is not None and value < minimum:
        raise ValidationError(f"❌ {section}.{name} debe ser >= {minimum}, recibió {value}")
    if maximum is not None and value > maximum:
        raise ValidationError(f"❌ {section}.{name} debe ser <= {maximum}, recibió {value}")
    return value


class ValidatedIndicatorSettings:
    """Clase para validar y normalizar la configuración de indicadores"""

    @staticmethod
    def validate(data: Any) -> IndicatorSettings:
        """
        Valida un dict (forma JSON) y devuelve un IndicatorSettings completo.

        Raises:
            ValidationError: si falta una sección obligatoria, `enabled` no es
                booleano, un valor está fuera de rango o sobrecompra <= sobreventa.
        """
        if isinstance(data, IndicatorSettings):
            return data
        if not isinstance(data, dict):
            raise ValidationError("❌ Configuración de indicadores inválida: se esperaba un objeto")

        unknown = set(data) - set(_SECTION_SCHEMAS)
        if unknown:
            raise ValidationError(f"❌ Indicadores desconocidos: {sorted(unknown)}")

        for section in _REQUIRED_SECTIONS:
            if section not in data:
                raise ValidationError(f"❌ Configuración de indicadores inválida: falta '{section}'")

        sections = {}
        for section, (section_cls, numeric_fields) in _SECTION_SCHEMAS.items():
            raw = data.get(section)
            if raw is None:
                continue
            sections[section] = ValidatedIndicatorSettings._validate_section(
                section, raw, section_cls, numeric_fields
            )

        rsi = sections["rsi"]
        if rsi.overbought <= rsi.oversold:
            raise ValidationError("❌ Sobrecompra debe ser mayor que Sobreventa")

        return IndicatorSettings(**sections)

    @staticmethod
    def _validate_section(section: str, raw: Any, section_cls, numeric_fields: dict):
        if not isinstance(raw, dict):
            raise ValidationError(f"❌ '{section}' debe ser un objeto")
        if "enabled" not in raw:
            raise ValidationError(f"❌ '{section}.enabled' es obligatorio")
        if not isinstance(raw["enabled"], bool):
            raise ValidationError(f"❌ '{section}.enabled' debe ser booleano")

        unknown = set(raw) - set(numeric_fields) - {"enabled"}
        if unknown:
            raise ValidationError(f"❌ Campos desconocidos en '{section}': {sorted(unknown)}")

        values = {"enabled": raw["enabled"]}
        for name, (kind, minimum, maximum) in numeric_fields.items():
            if name in raw:
                values[name] = coerce_number(section, name, raw[name], kind, minimum, maximum)
        return section_cls(**values)

    @staticmethod
    def default() -> IndicatorSettings:
        return IndicatorSettings()
